"""Rule evaluation engine: condition matching, resolution and validation."""

from .models import (
    DataType,
    VersionOperator,
    Platform,
    ConstraintKind,
    ValueConstraint,
    VersionCondition,
    DateWindow,
    OverrideRule,
    ConfigSnapshot,
    EvaluationContext,
    EvaluationMetrics,
    Resolution,
    RuleCreate,
    RuleUpdate,
    RuleResponse,
    ReorderRequest,
)
from .values import CODECS, get_codec, coerce_value
from .constraints import CHECKS, check_constraints
from .conditions import MATCHERS, ConditionMatcher, matches, conditions_summary
from .resolver import RuleResolver, resolve, evaluate, matching_rules
from .validation import validate_rule, validate_update
from .repository import RuleRepository

__all__ = [
    "DataType",
    "VersionOperator",
    "Platform",
    "ConstraintKind",
    "ValueConstraint",
    "VersionCondition",
    "DateWindow",
    "OverrideRule",
    "ConfigSnapshot",
    "EvaluationContext",
    "EvaluationMetrics",
    "Resolution",
    "RuleCreate",
    "RuleUpdate",
    "RuleResponse",
    "ReorderRequest",
    "CODECS",
    "get_codec",
    "coerce_value",
    "CHECKS",
    "check_constraints",
    "MATCHERS",
    "ConditionMatcher",
    "matches",
    "conditions_summary",
    "RuleResolver",
    "resolve",
    "evaluate",
    "matching_rules",
    "validate_rule",
    "validate_update",
    "RuleRepository",
]
