"""Write-time validation for configurations."""

from __future__ import annotations

import re
from typing import Any, Iterable, Optional

from remote_config.core.errors import ConfigValueTooLargeError, InvalidConfigKeyError
from remote_config.core.rules.constraints import check_constraints
from remote_config.core.rules.models import DataType
from remote_config.core.rules.values import coerce_value, serialized_size

MAX_KEY_LENGTH = 64
MAX_VALUE_SIZE = 100 * 1024  # 100KB

_KEY_RE = re.compile(r"[A-Za-z0-9_]+")


def validate_key(key: str) -> None:
    """Keys are 1-64 characters of letters, digits and underscores."""
    if not key:
        raise InvalidConfigKeyError("Key is required")
    if len(key) > MAX_KEY_LENGTH:
        raise InvalidConfigKeyError(f"Key must be max {MAX_KEY_LENGTH} characters")
    if not _KEY_RE.fullmatch(key):
        raise InvalidConfigKeyError("Key must contain only alphanumeric characters and underscores")


def validate_config_value(
    value: Any,
    data_type: DataType,
    constraints: Optional[Iterable[Any]] = None,
) -> Any:
    """Check type, constraints and size of a configuration's base value.

    Raises:
        TypeMismatchError: If the value does not fit the data type
        ConstraintViolationError: If the value breaks one of ``constraints``
        ConfigValueTooLargeError: If the JSON encoding exceeds 100KB
    """
    value = coerce_value(data_type, value)
    check_constraints(value, data_type, constraints)
    size = serialized_size(value)
    if size > MAX_VALUE_SIZE:
        raise ConfigValueTooLargeError(size, MAX_VALUE_SIZE)
    return value
