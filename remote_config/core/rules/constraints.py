"""Per-configuration value constraints (min, max, regex, max_length)."""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from remote_config.core.errors import ConstraintViolationError
from .models import ConstraintKind, DataType, ValueConstraint

logger = logging.getLogger(__name__)

# A check returns a violation message, or None when the value passes
ConstraintCheck = Callable[[Any, str], Optional[str]]


def _check_min(value: Any, bound: str) -> Optional[str]:
    if value < float(bound):
        return f"must be at least {bound}"
    return None


def _check_max(value: Any, bound: str) -> Optional[str]:
    if value > float(bound):
        return f"must be at most {bound}"
    return None


def _check_regex(value: Any, pattern: str) -> Optional[str]:
    try:
        found = re.search(pattern, value)
    except re.error:
        return f"has an invalid pattern {pattern!r}"
    if found is None:
        return f"must match pattern {pattern!r}"
    return None


def _check_max_length(value: Any, length: str) -> Optional[str]:
    if len(value) > int(length):
        return f"must be at most {length} characters"
    return None


# Registry mapping constraint kinds to the data type they apply to and their check
CHECKS: Dict[ConstraintKind, Tuple[DataType, ConstraintCheck]] = {
    ConstraintKind.MIN: (DataType.NUMBER, _check_min),
    ConstraintKind.MAX: (DataType.NUMBER, _check_max),
    ConstraintKind.REGEX: (DataType.STRING, _check_regex),
    ConstraintKind.MAX_LENGTH: (DataType.STRING, _check_max_length),
}


def parse_constraints(raw: Optional[Iterable[Any]]) -> List[ValueConstraint]:
    """Load constraints as stored (dicts) or as passed in (models)."""
    return [ValueConstraint.model_validate(item) for item in raw or []]


def dump_constraints(constraints: Iterable[ValueConstraint]) -> List[Dict[str, str]]:
    """JSON-safe form for storage."""
    return [c.model_dump(mode="json") for c in constraints]


def constraint_violations(
    value: Any,
    data_type: DataType,
    constraints: Iterable[ValueConstraint],
) -> List[str]:
    """Messages for every constraint the value breaks.

    ``value`` must already be valid for ``data_type``.
    """
    violations = []
    for constraint in constraints:
        applies_to, check = CHECKS[constraint.kind]
        if DataType(data_type) != applies_to:
            continue
        message = check(value, constraint.value)
        if message:
            violations.append(f"{constraint.kind.value}: value {message}")
    return violations


def check_constraints(
    value: Any,
    data_type: DataType,
    constraints: Optional[Iterable[Any]],
    field: str = "value",
) -> None:
    """Raise ConstraintViolationError listing every constraint the value breaks."""
    violations = constraint_violations(value, data_type, parse_constraints(constraints))
    if violations:
        logger.debug(f"{field} rejected by {len(violations)} constraint(s)")
        raise ConstraintViolationError(field, violations)
