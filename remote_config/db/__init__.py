"""Database module."""

from .database import get_db, init_db, engine, SessionLocal
from .models import Base, RemoteConfig, RuleOverride, ConfigHistory, RuleHistory

__all__ = [
    "get_db",
    "init_db",
    "engine",
    "SessionLocal",
    "Base",
    "RemoteConfig",
    "RuleOverride",
    "ConfigHistory",
    "RuleHistory",
]
