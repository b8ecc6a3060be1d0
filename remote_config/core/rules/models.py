"""Rule types, evaluation inputs, and Pydantic schemas for rule operations."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from remote_config.core.clock import to_utc, utcnow


class DataType(str, Enum):
    """Supported configuration value types."""

    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"
    JSON = "json"


class VersionOperator(str, Enum):
    """Version comparison operators."""

    EQUAL = "equal"
    NOT_EQUAL = "not_equal"
    GREATER_THAN = "greater_than"
    GREATER_OR_EQUAL = "greater_or_equal"
    LESS_THAN = "less_than"
    LESS_OR_EQUAL = "less_or_equal"

    @property
    def symbol(self) -> str:
        """Short mathematical form, for display."""
        symbols = {
            self.EQUAL: "==",
            self.NOT_EQUAL: "!=",
            self.GREATER_THAN: ">",
            self.GREATER_OR_EQUAL: ">=",
            self.LESS_THAN: "<",
            self.LESS_OR_EQUAL: "<=",
        }
        return symbols[self]


class Platform(str, Enum):
    """Client platforms a rule may target."""

    IOS = "iOS"
    ANDROID = "Android"
    WEB = "Web"


PLATFORMS = tuple(p.value for p in Platform)


class ConstraintKind(str, Enum):
    """Checks a configuration can place on its base and override values.

    ``min`` and ``max`` apply to number values, ``regex`` and
    ``max_length`` to string values. A constraint on any other type is
    ignored.
    """

    MIN = "min"
    MAX = "max"
    REGEX = "regex"
    MAX_LENGTH = "max_length"


class ValueConstraint(BaseModel):
    """One constraint on a configuration's values."""

    kind: ConstraintKind
    value: str = Field(..., min_length=1, max_length=500, description="Bound, pattern or length")

    @field_validator("value", mode="before")
    @classmethod
    def stringify_numbers(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @model_validator(mode="after")
    def validate_operand(self) -> "ValueConstraint":
        """Bounds must be finite numbers, lengths whole numbers, patterns compilable."""
        if self.kind in (ConstraintKind.MIN, ConstraintKind.MAX):
            try:
                bound = float(self.value)
            except ValueError:
                raise ValueError(f"{self.kind.value} needs a number, got {self.value!r}")
            if not math.isfinite(bound):
                raise ValueError(f"{self.kind.value} needs a finite number, got {self.value!r}")
        elif self.kind == ConstraintKind.MAX_LENGTH:
            if not self.value.isdigit():
                raise ValueError(f"max_length needs a non-negative integer, got {self.value!r}")
        elif self.kind == ConstraintKind.REGEX:
            try:
                re.compile(self.value)
            except re.error as e:
                raise ValueError(f"Invalid regex {self.value!r}: {e}")
        return self


# ===========================================
# Evaluation inputs (immutable)
# ===========================================


@dataclass(frozen=True)
class VersionCondition:
    """Version constraint: client version <operator> value."""

    operator: VersionOperator
    value: str

    def __str__(self) -> str:
        return f"{self.operator.symbol} {self.value}"


@dataclass(frozen=True)
class DateWindow:
    """Closed interval [start, end] in UTC."""

    start: datetime
    end: datetime

    def __post_init__(self):
        object.__setattr__(self, "start", to_utc(self.start))
        object.__setattr__(self, "end", to_utc(self.end))

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


@dataclass(frozen=True)
class OverrideRule:
    """A prioritized override as seen by the evaluation path.

    Every condition is optional; a rule without conditions always matches.
    """

    priority: int
    override_value: Any
    enabled: bool = True
    platform: Optional[str] = None
    version: Optional[VersionCondition] = None
    country: Optional[str] = None
    segment: Optional[str] = None
    active_after: Optional[datetime] = None
    active_between: Optional[DateWindow] = None
    id: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self):
        if self.active_after is not None:
            object.__setattr__(self, "active_after", to_utc(self.active_after))
        if self.created_at is not None:
            object.__setattr__(self, "created_at", to_utc(self.created_at))

    @property
    def has_conditions(self) -> bool:
        return any(
            c is not None
            for c in (
                self.platform,
                self.version,
                self.country,
                self.segment,
                self.active_after,
                self.active_between,
            )
        )


@dataclass(frozen=True)
class ConfigSnapshot:
    """The base value of a configuration and its declared type."""

    value: Any
    data_type: DataType
    key: Optional[str] = None


@dataclass(frozen=True)
class EvaluationContext:
    """Request attributes that rules are matched against.

    ``evaluation_instant`` defaults to the current time. Pass an explicit
    instant to evaluate date-windowed rules deterministically.
    """

    platform: Optional[str] = None
    version: Optional[str] = None
    country: Optional[str] = None
    segment: Optional[str] = None
    evaluation_instant: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        object.__setattr__(self, "evaluation_instant", to_utc(self.evaluation_instant))

    @classmethod
    def at(cls, instant: datetime, **attributes: Optional[str]) -> "EvaluationContext":
        """Build a context pinned to ``instant``."""
        return cls(evaluation_instant=instant, **attributes)


@dataclass
class EvaluationMetrics:
    """Counters filled in by a single resolver pass."""

    total_rules: int = 0
    evaluated_rules: int = 0
    matched_priority: Optional[int] = None
    evaluation_time_ms: float = 0.0


class Resolution(BaseModel):
    """Result of resolving one configuration for a context."""

    key: Optional[str] = None
    value: Any
    data_type: DataType
    source: str  # 'default' or 'rule'
    matched_rule_id: Optional[str] = None
    matched_rule_priority: Optional[int] = None


# ===========================================
# API schemas
# ===========================================


class RuleConditions(BaseModel):
    """Condition fields shared by create and update payloads."""

    platform_condition: Optional[str] = Field(None, max_length=20)
    version_operator: Optional[VersionOperator] = None
    version_value: Optional[str] = Field(None, max_length=50)
    country_condition: Optional[str] = Field(None, max_length=10)
    segment_condition: Optional[str] = Field(None, min_length=1, max_length=100)
    active_after: Optional[datetime] = None
    active_between_start: Optional[datetime] = None
    active_between_end: Optional[datetime] = None


class RuleCreate(RuleConditions):
    """Schema for creating a new rule."""

    priority: int = Field(..., description="Lower value is evaluated first")
    override_value: Any = Field(..., description="Must match the config's data type")
    enabled: bool = True

    @model_validator(mode="after")
    def validate_paired_fields(self) -> "RuleCreate":
        """Version operator/value and window start/end come in pairs."""
        if (self.version_operator is None) != (self.version_value is None):
            raise ValueError("version_operator and version_value must both be provided or both be null")
        if (self.active_between_start is None) != (self.active_between_end is None):
            raise ValueError("active_between_start and active_between_end must both be provided or both be null")
        return self


class RuleUpdate(RuleConditions):
    """Schema for updating a rule.

    Only fields present in the payload are applied; an explicit null clears
    a condition. Either half of the version or window pair may be sent
    alone, the other half is kept from the stored rule.
    """

    priority: Optional[int] = None
    override_value: Optional[Any] = None
    enabled: Optional[bool] = None


class RuleResponse(BaseModel):
    """Schema for rule response."""

    id: str
    config_id: str
    priority: int
    override_value: Any
    enabled: bool
    platform_condition: Optional[str]
    version_operator: Optional[VersionOperator]
    version_value: Optional[str]
    country_condition: Optional[str]
    segment_condition: Optional[str]
    active_after: Optional[datetime]
    active_between_start: Optional[datetime]
    active_between_end: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ReorderItem(BaseModel):
    rule_id: str
    new_priority: int


class ReorderRequest(BaseModel):
    """Schema for reassigning priorities of a config's rules."""

    rule_order: List[ReorderItem] = Field(..., min_length=1)
