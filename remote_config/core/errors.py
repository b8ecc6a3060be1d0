"""Error kinds raised by configuration and rule operations.

Every error carries a stable ``code`` so the HTTP layer and the CLI can
report the rejection without inspecting message text.
"""

from __future__ import annotations

from typing import List, Optional


class RemoteConfigError(Exception):
    """Base class for expected, recoverable rejections."""

    code = "remote_config_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class RuleValidationError(RemoteConfigError):
    """A rule candidate violates a write-time invariant."""

    code = "rule_validation_error"


class TypeMismatchError(RuleValidationError):
    code = "type_mismatch"

    def __init__(self, data_type: str, value: object, field: str = "value"):
        super().__init__(f"{field} {value!r} is not a valid {data_type}")
        self.data_type = data_type
        self.value = value
        self.field = field


class DuplicatePriorityError(RuleValidationError):
    code = "duplicate_priority"

    def __init__(self, priority: int, config_id: Optional[str] = None):
        target = f" for config {config_id}" if config_id else ""
        super().__init__(f"Rule priority {priority} already exists{target}")
        self.priority = priority
        self.config_id = config_id


class InvalidCountryCodeError(RuleValidationError):
    code = "invalid_country_code"

    def __init__(self, country: str):
        super().__init__(
            f"country must be an ISO 3166-1 alpha-2 code (e.g. US, DE, JP), got: {country!r}"
        )
        self.country = country


class InvalidDateRangeError(RuleValidationError):
    code = "invalid_date_range"

    def __init__(self, start: object, end: object):
        super().__init__(f"active_between end {end} must be after start {start}")
        self.start = start
        self.end = end


class InvalidVersionFormatError(RuleValidationError):
    code = "invalid_version_format"

    def __init__(self, version: object):
        super().__init__(f"Invalid version format: {version!r} (expected MAJOR.MINOR.PATCH)")
        self.version = version


class IncompleteConditionError(RuleValidationError):
    code = "incomplete_condition"

    def __init__(self, condition: str, missing: str):
        super().__init__(f"{condition} condition is missing {missing}")
        self.condition = condition
        self.missing = missing


class InvalidPriorityError(RuleValidationError):
    code = "invalid_priority"

    def __init__(self, priority: object, minimum: int, maximum: int):
        super().__init__(f"priority must be an integer between {minimum} and {maximum}, got {priority!r}")
        self.priority = priority


class InvalidPlatformError(RuleValidationError):
    code = "invalid_platform"

    def __init__(self, platform: str, allowed: tuple):
        super().__init__(f"platform must be one of: {', '.join(allowed)}, got {platform!r}")
        self.platform = platform


class MaxRulesExceededError(RuleValidationError):
    code = "max_rules_exceeded"

    def __init__(self, config_id: str, max_rules: int):
        super().__init__(f"Config {config_id} has reached maximum of {max_rules} rules")
        self.config_id = config_id
        self.max_rules = max_rules


class RuleNotFoundError(RemoteConfigError):
    code = "rule_not_found"

    def __init__(self, rule_id: str):
        super().__init__(f"Rule {rule_id} not found")
        self.rule_id = rule_id


class ConfigNotFoundError(RemoteConfigError):
    code = "config_not_found"

    def __init__(self, config_id: str):
        super().__init__(f"Config {config_id} not found")
        self.config_id = config_id


class DuplicateConfigKeyError(RemoteConfigError):
    code = "duplicate_config_key"

    def __init__(self, key: str, environment: str):
        super().__init__(f"Config key already exists: {key} (environment: {environment})")
        self.key = key
        self.environment = environment


class InvalidConfigKeyError(RemoteConfigError):
    code = "invalid_config_key"


class ConstraintViolationError(RemoteConfigError):
    """A value breaks one or more of its configuration's value constraints."""

    code = "constraint_violation"

    def __init__(self, field: str, violations: List[str]):
        super().__init__(f"{field} violates constraints: {'; '.join(violations)}")
        self.field = field
        self.violations = violations


class ConfigValueTooLargeError(RemoteConfigError):
    code = "config_value_too_large"

    def __init__(self, size: int, max_size: int):
        super().__init__(f"Config value size {size} bytes exceeds maximum {max_size} bytes")
        self.size = size
        self.max_size = max_size
