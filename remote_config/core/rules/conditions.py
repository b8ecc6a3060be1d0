"""Condition matchers for the predicates a rule can declare."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Dict, List

from remote_config.core.clock import format_instant
from remote_config.core.errors import InvalidVersionFormatError
from .models import EvaluationContext, OverrideRule
from .versions import compare_versions

logger = logging.getLogger(__name__)


class ConditionMatcher(ABC):
    """Abstract base class for condition matchers."""

    name: str

    @abstractmethod
    def declared(self, rule: OverrideRule) -> bool:
        """Whether the rule declares this condition at all."""
        ...

    @abstractmethod
    def evaluate(self, rule: OverrideRule, context: EvaluationContext) -> bool:
        """Evaluate the declared condition against the context.

        Only called when ``declared(rule)`` is true.

        Args:
            rule: Rule carrying the condition
            context: Request attributes and evaluation instant

        Returns:
            True if the condition holds
        """
        ...

    @abstractmethod
    def describe(self, rule: OverrideRule) -> str:
        """Human-readable form of the condition (or of its absence)."""
        ...

    def matches(self, rule: OverrideRule, context: EvaluationContext) -> bool:
        """Absent conditions always hold."""
        if not self.declared(rule):
            return True
        return self.evaluate(rule, context)


class PlatformMatcher(ConditionMatcher):
    """Case-sensitive exact match on the client platform."""

    name = "platform"

    def declared(self, rule: OverrideRule) -> bool:
        return rule.platform is not None

    def evaluate(self, rule: OverrideRule, context: EvaluationContext) -> bool:
        if context.platform is None:
            return False
        return context.platform == rule.platform

    def describe(self, rule: OverrideRule) -> str:
        return rule.platform or "any"


class VersionMatcher(ConditionMatcher):
    """Numeric MAJOR.MINOR.PATCH comparison against the client version."""

    name = "version"

    def declared(self, rule: OverrideRule) -> bool:
        return rule.version is not None

    def evaluate(self, rule: OverrideRule, context: EvaluationContext) -> bool:
        if not context.version:
            return False
        try:
            return compare_versions(context.version, rule.version.operator, rule.version.value)
        except InvalidVersionFormatError:
            logger.debug(
                f"Unparseable version for rule {rule.id}: "
                f"client={context.version!r} constraint={rule.version.value!r}"
            )
            return False

    def describe(self, rule: OverrideRule) -> str:
        return str(rule.version) if rule.version else "any"


class CountryMatcher(ConditionMatcher):
    """ISO 3166-1 alpha-2 match, ignoring the case of the client's value."""

    name = "country"

    def declared(self, rule: OverrideRule) -> bool:
        return rule.country is not None

    def evaluate(self, rule: OverrideRule, context: EvaluationContext) -> bool:
        if not context.country:
            return False
        return context.country.upper() == rule.country.upper()

    def describe(self, rule: OverrideRule) -> str:
        return rule.country or "any"


class SegmentMatcher(ConditionMatcher):
    """Exact match on the audience segment identifier."""

    name = "segment"

    def declared(self, rule: OverrideRule) -> bool:
        return rule.segment is not None

    def evaluate(self, rule: OverrideRule, context: EvaluationContext) -> bool:
        if context.segment is None:
            return False
        return context.segment == rule.segment

    def describe(self, rule: OverrideRule) -> str:
        return rule.segment or "any"


class ActiveAfterMatcher(ConditionMatcher):
    """Active from ``active_after`` (inclusive) with no expiry."""

    name = "active_after"

    def declared(self, rule: OverrideRule) -> bool:
        return rule.active_after is not None

    def evaluate(self, rule: OverrideRule, context: EvaluationContext) -> bool:
        return context.evaluation_instant >= rule.active_after

    def describe(self, rule: OverrideRule) -> str:
        return format_instant(rule.active_after) if rule.active_after else "never"


class ActiveBetweenMatcher(ConditionMatcher):
    """Active inside [start, end], both boundaries included."""

    name = "active_between"

    def declared(self, rule: OverrideRule) -> bool:
        return rule.active_between is not None

    def evaluate(self, rule: OverrideRule, context: EvaluationContext) -> bool:
        return rule.active_between.contains(context.evaluation_instant)

    def describe(self, rule: OverrideRule) -> str:
        window = rule.active_between
        if window is None:
            return "never"
        return f"{format_instant(window.start)} - {format_instant(window.end)}"


# Every matcher a rule is checked against; all must hold
MATCHERS: List[ConditionMatcher] = [
    PlatformMatcher(),
    VersionMatcher(),
    CountryMatcher(),
    SegmentMatcher(),
    ActiveAfterMatcher(),
    ActiveBetweenMatcher(),
]


def matches(rule: OverrideRule, context: EvaluationContext) -> bool:
    """Check whether every condition the rule declares holds for the context.

    A disabled rule never matches. A rule without conditions always does.
    """
    if not rule.enabled:
        return False
    for matcher in MATCHERS:
        if not matcher.matches(rule, context):
            return False
    return True


def conditions_summary(rule: OverrideRule) -> Dict[str, str]:
    """Readable description of every condition slot of a rule."""
    return {matcher.name: matcher.describe(rule) for matcher in MATCHERS}
