"""Write-time validation for override rules.

Checks run in a fixed order and the first failure is raised:

1. override value matches the configuration's data type and its value
   constraints
2. priority is not already taken by another rule of the configuration
3. country condition is an ISO 3166-1 alpha-2 code
4. active_between end is strictly after its start
5. version condition value is MAJOR.MINOR.PATCH
6. priority lies in the accepted range
7. platform condition names a known platform

The resolver trusts stored rules and never re-runs these checks.
"""

from __future__ import annotations

import dataclasses
import logging
import re
from typing import Any, Collection, Dict, Iterable, Optional, Sequence, Tuple

from remote_config.core.errors import (
    DuplicatePriorityError,
    InvalidCountryCodeError,
    InvalidDateRangeError,
    InvalidPlatformError,
    InvalidPriorityError,
    InvalidVersionFormatError,
    MaxRulesExceededError,
    RuleNotFoundError,
)
from .constraints import check_constraints
from .models import PLATFORMS, DataType, OverrideRule
from .values import coerce_value
from .versions import is_valid_version

logger = logging.getLogger(__name__)

MIN_PRIORITY = 1
MAX_PRIORITY = 1000

_COUNTRY_RE = re.compile(r"[A-Z]{2}")


def validate_override_value(
    value: Any,
    data_type: DataType,
    constraints: Optional[Iterable[Any]] = None,
) -> Any:
    """Raise unless the value fits the data type and the configuration's constraints.

    Raises:
        TypeMismatchError: If the value does not fit the data type
        ConstraintViolationError: If the value breaks a constraint
    """
    value = coerce_value(data_type, value, field="override_value")
    check_constraints(value, data_type, constraints, field="override_value")
    return value


def validate_unique_priority(
    priority: int,
    existing_rules: Iterable[OverrideRule],
    rule_id: Optional[str] = None,
    config_id: Optional[str] = None,
) -> None:
    """Reject a priority already used by another rule.

    Args:
        priority: Candidate priority
        existing_rules: Rules currently stored for the configuration
        rule_id: Id of the rule being updated, excluded from the check
        config_id: Used in the error message only
    """
    for rule in existing_rules:
        if rule_id is not None and rule.id == rule_id:
            continue
        if rule.priority == priority:
            raise DuplicatePriorityError(priority, config_id)


def validate_country_code(
    country: Optional[str],
    known_codes: Optional[Collection[str]] = None,
) -> None:
    """Reject anything but two uppercase letters.

    When ``known_codes`` is supplied the code must also be one of them.
    """
    if country is None:
        return
    if not isinstance(country, str) or not _COUNTRY_RE.fullmatch(country):
        raise InvalidCountryCodeError(country)
    if known_codes is not None and country not in known_codes:
        raise InvalidCountryCodeError(country)


def validate_date_range(rule: OverrideRule) -> None:
    window = rule.active_between
    if window is not None and window.end <= window.start:
        raise InvalidDateRangeError(window.start, window.end)


def validate_version_condition(rule: OverrideRule) -> None:
    if rule.version is not None and not is_valid_version(rule.version.value):
        raise InvalidVersionFormatError(rule.version.value)


def validate_priority_range(priority: Any) -> None:
    if isinstance(priority, bool) or not isinstance(priority, int):
        raise InvalidPriorityError(priority, MIN_PRIORITY, MAX_PRIORITY)
    if not MIN_PRIORITY <= priority <= MAX_PRIORITY:
        raise InvalidPriorityError(priority, MIN_PRIORITY, MAX_PRIORITY)


def validate_platform(platform: Optional[str]) -> None:
    if platform is not None and platform not in PLATFORMS:
        raise InvalidPlatformError(platform, PLATFORMS)


def validate_rule(
    candidate: OverrideRule,
    existing_rules: Iterable[OverrideRule],
    data_type: DataType,
    rule_id: Optional[str] = None,
    config_id: Optional[str] = None,
    known_country_codes: Optional[Collection[str]] = None,
    constraints: Optional[Iterable[Any]] = None,
) -> None:
    """Validate a rule before it is stored.

    Args:
        candidate: Rule to create, or the merged result of an update
        existing_rules: Rules currently stored for the same configuration
        data_type: The configuration's declared data type
        rule_id: Id of the rule being updated (None on create)
        config_id: Owning configuration, for error messages
        known_country_codes: Optional authoritative set of country codes
        constraints: The configuration's value constraints

    Raises:
        RuleValidationError: The first failing check
        ConstraintViolationError: If the override value breaks a constraint
    """
    validate_override_value(candidate.override_value, data_type, constraints)
    validate_unique_priority(candidate.priority, existing_rules, rule_id=rule_id, config_id=config_id)
    validate_country_code(candidate.country, known_country_codes)
    validate_date_range(candidate)
    validate_version_condition(candidate)
    validate_priority_range(candidate.priority)
    validate_platform(candidate.platform)

    logger.debug(f"Rule validation passed (priority {candidate.priority})")


def validate_update(
    existing: Optional[OverrideRule],
    changes: Dict[str, Any],
    siblings: Iterable[OverrideRule],
    data_type: DataType,
    rule_id: Optional[str] = None,
    config_id: Optional[str] = None,
    known_country_codes: Optional[Collection[str]] = None,
    constraints: Optional[Iterable[Any]] = None,
) -> OverrideRule:
    """Apply ``changes`` to an existing rule and validate the result.

    Args:
        existing: The stored rule, or None if the lookup found nothing
        changes: OverrideRule field names mapped to new values
        siblings: All rules of the configuration (may include ``existing``)
        data_type: The configuration's declared data type
        rule_id: Requested rule id, used when ``existing`` is None

    Returns:
        The merged rule

    Raises:
        RuleNotFoundError: If ``existing`` is None
        RuleValidationError: The first failing check on the merged rule
    """
    if existing is None:
        raise RuleNotFoundError(rule_id or "unknown")

    merged = dataclasses.replace(existing, **changes)
    validate_rule(
        merged,
        siblings,
        data_type,
        rule_id=existing.id,
        config_id=config_id,
        known_country_codes=known_country_codes,
        constraints=constraints,
    )
    return merged


def validate_rule_count(current_count: int, config_id: str, max_rules: int) -> None:
    """Reject creating a rule once the configuration holds ``max_rules``."""
    if current_count >= max_rules:
        raise MaxRulesExceededError(config_id, max_rules)


def validate_reorder(
    rules: Sequence[OverrideRule],
    ordering: Iterable[Tuple[str, int]],
    config_id: Optional[str] = None,
) -> Dict[str, int]:
    """Check a priority reassignment and return the final priority per rule id.

    Rules not mentioned in ``ordering`` keep their current priority.

    Raises:
        RuleNotFoundError: If an id does not belong to the configuration
        InvalidPriorityError: If a new priority is out of range
        DuplicatePriorityError: If two rules would end up sharing a priority
    """
    final: Dict[str, int] = {rule.id: rule.priority for rule in rules}
    for rule_id, new_priority in ordering:
        if rule_id not in final:
            raise RuleNotFoundError(rule_id)
        validate_priority_range(new_priority)
        final[rule_id] = new_priority

    seen = set()
    for priority in final.values():
        if priority in seen:
            raise DuplicatePriorityError(priority, config_id)
        seen.add(priority)
    return final
