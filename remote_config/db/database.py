"""Engine and unit-of-work sessions for the config store.

Every admin write (a config, a rule and its audit row) runs inside one
``get_db()`` block and commits as a unit. The rule priority constraint is
checked by the database at flush time, so a rejected write leaves nothing
behind.
"""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from remote_config.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def create_db_engine(url: str, **kwargs) -> Engine:
    """Build an engine for ``url``.

    SQLite connections are shared between the API worker threads.
    """
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args, **kwargs)


engine = create_db_engine(settings.database_url)

# Rows handed back by repositories stay readable after the block commits
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@contextmanager
def get_db() -> Generator[Session, None, None]:
    """Open a session that commits on exit and rolls back on any error.

    Usage:
        with get_db() as db:
            RuleRepository(db).create(config_id, payload)
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        logger.debug("Rolling back config store session")
        db.rollback()
        raise
    finally:
        db.close()


def init_db() -> None:
    """Create the config, rule and history tables if they are missing."""
    from .models import Base

    Base.metadata.create_all(bind=engine)
