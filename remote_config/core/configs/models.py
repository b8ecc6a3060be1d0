"""Pydantic schemas for configuration operations."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from remote_config.core.rules.models import DataType, Resolution, ValueConstraint

Environment = Literal["development", "staging", "production"]


class ConfigCreate(BaseModel):
    """Schema for creating a new configuration."""

    game_id: str = Field(..., min_length=1, max_length=100)
    key: str = Field(..., description="Alphanumeric and underscores, max 64 characters")
    value: Any = Field(..., description="Must match data_type")
    data_type: DataType
    environment: Environment = "production"
    enabled: bool = True
    description: Optional[str] = Field(None, max_length=500)
    constraints: List[ValueConstraint] = Field(default_factory=list, max_length=20)


class ConfigUpdate(BaseModel):
    """Schema for updating a configuration. The key and data type are fixed.

    A ``constraints`` list replaces the stored one; null removes them all.
    """

    value: Optional[Any] = None
    enabled: Optional[bool] = None
    description: Optional[str] = Field(None, max_length=500)
    constraints: Optional[List[ValueConstraint]] = Field(None, max_length=20)


class ConfigResponse(BaseModel):
    """Schema for configuration response."""

    id: str
    game_id: str
    key: str
    value: Any
    data_type: DataType
    environment: Environment
    enabled: bool
    description: Optional[str]
    constraints: List[ValueConstraint] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ConfigHistoryResponse(BaseModel):
    id: str
    config_id: str
    change_type: str
    previous_value: Optional[Any]
    new_value: Optional[Any]
    changed_by: str
    changed_at: datetime

    class Config:
        from_attributes = True


class FetchContext(BaseModel):
    """Request attributes for a validate (dry-run) call."""

    environment: Environment = "production"
    platform: Optional[str] = None
    version: Optional[str] = None
    country: Optional[str] = None
    segment: Optional[str] = None
    evaluation_time: Optional[datetime] = None


class FetchMetadata(BaseModel):
    game_id: str
    environment: str
    fetched_at: datetime
    evaluated_at: datetime
    total_configs: int


class FetchResult(BaseModel):
    """Resolved values for every enabled configuration of a game."""

    configs: Dict[str, Any]
    evaluations: List[Resolution]
    metadata: FetchMetadata


class ConfigStats(BaseModel):
    total_configs: int
    enabled_configs: int
    total_rules: int
    enabled_rules: int
    configs_by_type: Dict[str, int]
