"""Rule resolver: picks the value a client receives for one configuration."""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Iterable, List, Optional, Tuple

from .conditions import matches
from .models import (
    ConfigSnapshot,
    EvaluationContext,
    EvaluationMetrics,
    OverrideRule,
    Resolution,
)

logger = logging.getLogger(__name__)

# Rules without a creation time sort after those with one on a priority tie
_NO_CREATED_AT = datetime.max


def _order_key(rule: OverrideRule) -> Tuple[int, datetime, str]:
    return (rule.priority, rule.created_at or _NO_CREATED_AT, rule.id or "")


def evaluation_order(rules: Iterable[OverrideRule]) -> List[OverrideRule]:
    """Enabled rules sorted by priority, lowest first.

    Stored priorities are unique per configuration. If two rules share one
    anyway, the older rule (then the lower id) goes first and the collision
    is logged.
    """
    ordered = sorted((rule for rule in rules if rule.enabled), key=_order_key)
    for previous, current in zip(ordered, ordered[1:]):
        if previous.priority == current.priority:
            logger.warning(
                f"Duplicate rule priority {current.priority}: "
                f"rule {previous.id} evaluated before rule {current.id}"
            )
    return ordered


def matching_rules(rules: Iterable[OverrideRule], context: EvaluationContext) -> List[OverrideRule]:
    """All enabled rules matching the context, in evaluation order."""
    return [rule for rule in evaluation_order(rules) if matches(rule, context)]


class RuleResolver:
    """Resolves a configuration's value against its rule set."""

    def __init__(self, slow_evaluation_ms: Optional[float] = 50.0):
        """Initialize the resolver.

        Args:
            slow_evaluation_ms: Log a warning when a single resolution takes
                longer than this. None disables the check.
        """
        self.slow_evaluation_ms = slow_evaluation_ms

    def evaluate(
        self,
        config: ConfigSnapshot,
        rules: Iterable[OverrideRule],
        context: EvaluationContext,
        metrics: Optional[EvaluationMetrics] = None,
    ) -> Resolution:
        """Resolve a configuration and report where the value came from.

        Args:
            config: Base value and data type
            rules: The configuration's rules, in any order
            context: Request attributes and evaluation instant
            metrics: Optional metrics object to populate

        Returns:
            Resolution with the value and, if a rule matched, its id and priority
        """
        rules = list(rules)
        start = time.perf_counter()
        evaluated = 0
        matched: Optional[OverrideRule] = None

        for rule in evaluation_order(rules):
            evaluated += 1
            if matches(rule, context):
                matched = rule
                break

        elapsed_ms = (time.perf_counter() - start) * 1000

        if metrics is not None:
            metrics.total_rules = len(rules)
            metrics.evaluated_rules = evaluated
            metrics.matched_priority = matched.priority if matched else None
            metrics.evaluation_time_ms = elapsed_ms

        if self.slow_evaluation_ms is not None and elapsed_ms > self.slow_evaluation_ms:
            logger.warning(
                f"Slow rule evaluation for {config.key or 'config'}: {elapsed_ms:.1f}ms "
                f"({evaluated}/{len(rules)} rules evaluated)"
            )

        if matched is None:
            logger.debug(f"No rule matched for {config.key or 'config'} ({evaluated} evaluated)")
            return Resolution(
                key=config.key,
                value=config.value,
                data_type=config.data_type,
                source="default",
            )

        logger.debug(f"Rule {matched.id} (priority {matched.priority}) matched for {config.key or 'config'}")
        return Resolution(
            key=config.key,
            value=matched.override_value,
            data_type=config.data_type,
            source="rule",
            matched_rule_id=matched.id,
            matched_rule_priority=matched.priority,
        )

    def resolve(
        self,
        config: ConfigSnapshot,
        rules: Iterable[OverrideRule],
        context: EvaluationContext,
    ) -> Any:
        """Return the value the client should receive."""
        return self.evaluate(config, rules, context).value


default_resolver = RuleResolver()


def resolve(config: ConfigSnapshot, rules: Iterable[OverrideRule], context: EvaluationContext) -> Any:
    """Value of ``config`` for ``context``: first matching rule's override, else the default."""
    return default_resolver.resolve(config, rules, context)


def evaluate(
    config: ConfigSnapshot,
    rules: Iterable[OverrideRule],
    context: EvaluationContext,
    metrics: Optional[EvaluationMetrics] = None,
) -> Resolution:
    """Like :func:`resolve`, but returns the full :class:`Resolution`."""
    return default_resolver.evaluate(config, rules, context, metrics)
