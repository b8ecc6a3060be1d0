"""Dotted MAJOR.MINOR.PATCH version parsing and comparison."""

from __future__ import annotations

import logging
import re
from typing import Callable, Dict, Tuple

from remote_config.core.errors import InvalidVersionFormatError
from .models import VersionOperator

logger = logging.getLogger(__name__)

VersionTuple = Tuple[int, int, int]

_VERSION_RE = re.compile(r"([0-9]+)\.([0-9]+)\.([0-9]+)")

_COMPARATORS: Dict[VersionOperator, Callable[[VersionTuple, VersionTuple], bool]] = {
    VersionOperator.EQUAL: lambda a, b: a == b,
    VersionOperator.NOT_EQUAL: lambda a, b: a != b,
    VersionOperator.GREATER_THAN: lambda a, b: a > b,
    VersionOperator.GREATER_OR_EQUAL: lambda a, b: a >= b,
    VersionOperator.LESS_THAN: lambda a, b: a < b,
    VersionOperator.LESS_OR_EQUAL: lambda a, b: a <= b,
}


def parse_version(version: str) -> VersionTuple:
    """Parse ``"1.2.3"`` into ``(1, 2, 3)``.

    Args:
        version: Version string

    Returns:
        (major, minor, patch) tuple

    Raises:
        InvalidVersionFormatError: If the string is not three non-negative
            integers separated by dots
    """
    if not isinstance(version, str):
        raise InvalidVersionFormatError(version)
    match = _VERSION_RE.fullmatch(version)
    if not match:
        raise InvalidVersionFormatError(version)
    major, minor, patch = (int(part) for part in match.groups())
    return major, minor, patch


def is_valid_version(version: object) -> bool:
    """Check whether a value is a well-formed version string."""
    try:
        parse_version(version)  # type: ignore[arg-type]
    except InvalidVersionFormatError:
        return False
    return True


def compare_versions(
    target_version: str,
    operator: VersionOperator,
    constraint_version: str,
) -> bool:
    """Compare a client version against a constraint.

    Components are compared numerically, so ``2.0.0 > 1.9.9`` and
    ``1.10.0 > 1.9.0``.

    Raises:
        InvalidVersionFormatError: If either version is malformed
    """
    target = parse_version(target_version)
    constraint = parse_version(constraint_version)
    result = _COMPARATORS[VersionOperator(operator)](target, constraint)
    logger.debug(f"Version comparison: {target_version} {VersionOperator(operator).value} {constraint_version} = {result}")
    return result
