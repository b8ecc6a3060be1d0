"""Configuration management: storage, validation and client fetch."""

from .models import (
    ConfigCreate,
    ConfigUpdate,
    ConfigResponse,
    ConfigHistoryResponse,
    FetchContext,
    FetchResult,
    ConfigStats,
)
from .repository import ConfigRepository
from .service import ConfigFetchService

__all__ = [
    "ConfigCreate",
    "ConfigUpdate",
    "ConfigResponse",
    "ConfigHistoryResponse",
    "FetchContext",
    "FetchResult",
    "ConfigStats",
    "ConfigRepository",
    "ConfigFetchService",
]
