"""SQLAlchemy ORM models."""

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship

from remote_config.core.clock import utcnow as _utcnow

Base = declarative_base()


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Get current UTC timestamp."""
    return _utcnow()


class RemoteConfig(Base):
    """A typed key/value setting scoped to a game and environment."""

    __tablename__ = "remote_configs"
    __table_args__ = (
        UniqueConstraint("game_id", "key", "environment", name="uq_config_game_key_env"),
    )

    id = Column(String, primary_key=True, default=generate_uuid)
    game_id = Column(String(100), nullable=False, index=True)
    key = Column(String(64), nullable=False)
    value = Column(JSON, nullable=False)
    data_type = Column(String(20), nullable=False)  # number, string, boolean, json
    constraints = Column(JSON, nullable=False, default=list)  # [{"kind": "min", "value": "0"}, ...]
    environment = Column(String(20), nullable=False, default="production")
    enabled = Column(Boolean, default=True, nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    rules = relationship(
        "RuleOverride",
        back_populates="config",
        cascade="all, delete-orphan",
        order_by="RuleOverride.priority",
    )
    history = relationship("ConfigHistory", back_populates="config", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<RemoteConfig(id={self.id}, key={self.key}, env={self.environment})>"


class RuleOverride(Base):
    """Prioritized override of a config's value."""

    __tablename__ = "rule_overrides"
    # Race-safe priority guard: concurrent writers cannot both commit a priority
    __table_args__ = (
        UniqueConstraint("config_id", "priority", name="uq_rule_config_priority"),
    )

    id = Column(String, primary_key=True, default=generate_uuid)
    config_id = Column(String, ForeignKey("remote_configs.id"), nullable=False, index=True)
    priority = Column(Integer, nullable=False)
    override_value = Column(JSON, nullable=False)
    enabled = Column(Boolean, default=True, nullable=False)

    # Conditions (NULL = any)
    platform_condition = Column(String(20), nullable=True)
    version_operator = Column(String(20), nullable=True)
    version_value = Column(String(50), nullable=True)
    country_condition = Column(String(2), nullable=True)
    segment_condition = Column(String(100), nullable=True)
    active_after = Column(DateTime, nullable=True)
    active_between_start = Column(DateTime, nullable=True)
    active_between_end = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    config = relationship("RemoteConfig", back_populates="rules")

    def __repr__(self) -> str:
        return f"<RuleOverride(id={self.id}, config_id={self.config_id}, priority={self.priority})>"


class ConfigHistory(Base):
    """Audit trail of config changes."""

    __tablename__ = "config_history"

    id = Column(String, primary_key=True, default=generate_uuid)
    config_id = Column(String, ForeignKey("remote_configs.id"), nullable=False, index=True)
    change_type = Column(String(20), nullable=False)  # created, updated, deleted
    previous_value = Column(JSON, nullable=True)
    new_value = Column(JSON, nullable=True)
    changed_by = Column(String(255), nullable=False, default="system")
    changed_at = Column(DateTime, default=utcnow, nullable=False)

    config = relationship("RemoteConfig", back_populates="history")

    def __repr__(self) -> str:
        return f"<ConfigHistory(config_id={self.config_id}, change={self.change_type})>"


class RuleHistory(Base):
    """Audit trail of rule changes.

    Not linked to the rule by foreign key so entries survive deletion.
    """

    __tablename__ = "rule_history"

    id = Column(String, primary_key=True, default=generate_uuid)
    rule_id = Column(String, nullable=True, index=True)
    config_id = Column(String, nullable=False, index=True)
    action = Column(String(20), nullable=False)  # created, updated, deleted, reordered
    previous_state = Column(JSON, nullable=True)
    new_state = Column(JSON, nullable=True)
    changed_by = Column(String(255), nullable=False, default="system")
    changed_at = Column(DateTime, default=utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<RuleHistory(rule_id={self.rule_id}, action={self.action})>"
