"""Configuration repository for CRUD operations."""

from __future__ import annotations

import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from remote_config.core.errors import ConfigNotFoundError, DuplicateConfigKeyError
from remote_config.core.rules.constraints import dump_constraints
from remote_config.core.rules.models import DataType
from remote_config.db.models import ConfigHistory, RemoteConfig
from .models import ConfigCreate, ConfigUpdate
from .validation import validate_config_value, validate_key

logger = logging.getLogger(__name__)


class ConfigRepository:
    """Repository for RemoteConfig CRUD operations."""

    def __init__(self, db: Session):
        """Initialize repository with database session."""
        self.db = db

    def get_all(
        self,
        game_id: Optional[str] = None,
        environment: Optional[str] = None,
        enabled_only: bool = False,
    ) -> List[RemoteConfig]:
        """Get configs, optionally filtered by game and environment."""
        query = self.db.query(RemoteConfig)
        if game_id is not None:
            query = query.filter_by(game_id=game_id)
        if environment is not None:
            query = query.filter_by(environment=environment)
        if enabled_only:
            query = query.filter_by(enabled=True)
        return query.order_by(RemoteConfig.key).all()

    def get_by_id(self, config_id: str) -> Optional[RemoteConfig]:
        """Get a config by ID."""
        return self.db.query(RemoteConfig).filter_by(id=config_id).first()

    def get_by_key(self, game_id: str, key: str, environment: str = "production") -> Optional[RemoteConfig]:
        """Get a config by its (game, key, environment) identity."""
        return (
            self.db.query(RemoteConfig)
            .filter_by(game_id=game_id, key=key, environment=environment)
            .first()
        )

    def require(self, config_id: str) -> RemoteConfig:
        """Get a config by ID or raise ConfigNotFoundError."""
        config = self.get_by_id(config_id)
        if not config:
            raise ConfigNotFoundError(config_id)
        return config

    def create(self, payload: ConfigCreate, changed_by: str = "system") -> RemoteConfig:
        """Validate and store a new config.

        Args:
            payload: Config fields
            changed_by: Actor recorded in the audit trail

        Returns:
            Created config

        Raises:
            InvalidConfigKeyError: If the key is malformed
            TypeMismatchError: If the value does not match the data type
            ConstraintViolationError: If the value breaks one of the constraints
            ConfigValueTooLargeError: If the value exceeds 100KB
            DuplicateConfigKeyError: If the key already exists for the game and environment
        """
        validate_key(payload.key)
        value = validate_config_value(payload.value, payload.data_type, payload.constraints)

        if self.get_by_key(payload.game_id, payload.key, payload.environment):
            raise DuplicateConfigKeyError(payload.key, payload.environment)

        config = RemoteConfig(
            game_id=payload.game_id,
            key=payload.key,
            value=value,
            data_type=DataType(payload.data_type).value,
            environment=payload.environment,
            enabled=payload.enabled,
            description=payload.description,
            constraints=dump_constraints(payload.constraints),
        )
        self.db.add(config)
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateConfigKeyError(payload.key, payload.environment)

        self.db.add(
            ConfigHistory(
                config_id=config.id,
                change_type="created",
                new_value=config.value,
                changed_by=changed_by,
            )
        )
        self.db.flush()

        logger.info(f"Config created: {config.key} ({config.game_id}/{config.environment})")
        return config

    def update(self, config_id: str, payload: ConfigUpdate, changed_by: str = "system") -> RemoteConfig:
        """Apply the fields present in ``payload``.

        Raises:
            ConfigNotFoundError: If the config does not exist
            TypeMismatchError: If a new value does not match the data type
            ConstraintViolationError: If the value breaks the (new) constraints
            ConfigValueTooLargeError: If a new value exceeds 100KB
        """
        config = self.require(config_id)
        fields_set = payload.model_fields_set
        previous = config.value

        constraints = config.constraints
        if "constraints" in fields_set:
            constraints = dump_constraints(payload.constraints or [])
        if {"value", "constraints"} & fields_set:
            # New constraints apply to the stored value as well as to a new one
            value = payload.value if "value" in fields_set else config.value
            config.value = validate_config_value(value, DataType(config.data_type), constraints)
            config.constraints = constraints
        if "enabled" in fields_set and payload.enabled is not None:
            config.enabled = payload.enabled
        if "description" in fields_set:
            config.description = payload.description

        self.db.add(
            ConfigHistory(
                config_id=config.id,
                change_type="updated",
                previous_value=previous,
                new_value=config.value,
                changed_by=changed_by,
            )
        )
        self.db.flush()

        logger.info(f"Config updated: {config.key} ({config.game_id}/{config.environment})")
        return config

    def delete(self, config_id: str, changed_by: str = "system") -> None:
        """Delete a config together with its rules and history.

        Raises:
            ConfigNotFoundError: If the config does not exist
        """
        config = self.require(config_id)
        self.db.delete(config)
        self.db.flush()

        logger.info(f"Config deleted: {config.key} ({config.game_id}/{config.environment}) by {changed_by}")

    def history(self, config_id: str, limit: int = 50) -> List[ConfigHistory]:
        """Most recent changes to a config, newest first."""
        self.require(config_id)
        return (
            self.db.query(ConfigHistory)
            .filter_by(config_id=config_id)
            .order_by(ConfigHistory.changed_at.desc())
            .limit(limit)
            .all()
        )
