"""Shared fixtures: in-memory database and API client."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from remote_config.api.app import app
from remote_config.api.deps import get_db
from remote_config.core.configs.models import ConfigCreate
from remote_config.core.configs.repository import ConfigRepository
from remote_config.core.rules.models import DataType
from remote_config.db.database import create_db_engine
from remote_config.db.models import Base


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_db_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def coins_config(db):
    """The daily_reward_coins number config with default 100."""
    return ConfigRepository(db).create(
        ConfigCreate(
            game_id="game-1",
            key="daily_reward_coins",
            value=100,
            data_type=DataType.NUMBER,
        )
    )


@pytest.fixture
def client(session_factory):
    """API client bound to the in-memory database."""

    def override_get_db():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()
