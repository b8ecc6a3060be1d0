"""Config fetch service - resolves every configuration of a game for a client."""

from __future__ import annotations

import logging
from collections import Counter
from typing import List, Optional

from sqlalchemy.orm import Session

from remote_config.config import get_settings
from remote_config.core.clock import utcnow
from remote_config.core.rules.models import (
    ConfigSnapshot,
    DataType,
    EvaluationContext,
    EvaluationMetrics,
    OverrideRule,
    Resolution,
)
from remote_config.core.rules.repository import rule_from_row
from remote_config.core.rules.resolver import RuleResolver
from remote_config.db.models import RemoteConfig, RuleOverride
from .models import ConfigStats, FetchMetadata, FetchResult
from .repository import ConfigRepository

logger = logging.getLogger(__name__)

settings = get_settings()


def snapshot_from_row(config: RemoteConfig) -> ConfigSnapshot:
    """Base value and type of a stored config."""
    return ConfigSnapshot(value=config.value, data_type=DataType(config.data_type), key=config.key)


class ConfigFetchService:
    """Resolves configs for client requests."""

    def __init__(self, db: Session, resolver: Optional[RuleResolver] = None):
        """Initialize the fetch service.

        Args:
            db: Database session
            resolver: Rule resolver (defaults to one using the configured
                slow-evaluation threshold)
        """
        self.db = db
        self.repo = ConfigRepository(db)
        self.resolver = resolver or RuleResolver(slow_evaluation_ms=settings.slow_evaluation_ms)

    def _rules(self, config: RemoteConfig) -> List[OverrideRule]:
        rows = self.db.query(RuleOverride).filter_by(config_id=config.id).all()
        return [rule_from_row(row) for row in rows]

    def resolve_config(self, config: RemoteConfig, context: EvaluationContext) -> Resolution:
        """Resolve a single stored config."""
        rules = self._rules(config)
        return self.resolver.evaluate(snapshot_from_row(config), rules, context)

    def fetch(
        self,
        game_id: str,
        context: EvaluationContext,
        environment: str = "production",
    ) -> FetchResult:
        """Resolve every enabled config of a game.

        Args:
            game_id: Game identifier
            context: Request attributes and evaluation instant
            environment: Config environment

        Returns:
            FetchResult with a key -> value map and per-key evaluations
        """
        configs = self.repo.get_all(game_id=game_id, environment=environment, enabled_only=True)

        values = {}
        evaluations: List[Resolution] = []
        total = EvaluationMetrics()

        for config in configs:
            metrics = EvaluationMetrics()
            rules = self._rules(config)
            resolution = self.resolver.evaluate(snapshot_from_row(config), rules, context, metrics)
            values[config.key] = resolution.value
            evaluations.append(resolution)

            total.total_rules += metrics.total_rules
            total.evaluated_rules += metrics.evaluated_rules
            total.evaluation_time_ms += metrics.evaluation_time_ms

        logger.info(
            f"Config fetched: {game_id}/{environment} - {len(values)} config(s), "
            f"{total.evaluated_rules}/{total.total_rules} rule(s) evaluated "
            f"in {total.evaluation_time_ms:.1f}ms"
        )

        return FetchResult(
            configs=values,
            evaluations=evaluations,
            metadata=FetchMetadata(
                game_id=game_id,
                environment=environment,
                fetched_at=utcnow(),
                evaluated_at=context.evaluation_instant,
                total_configs=len(values),
            ),
        )

    def stats(self, game_id: str, environment: str = "production") -> ConfigStats:
        """Counts of configs and rules for monitoring."""
        configs = self.repo.get_all(game_id=game_id, environment=environment)
        by_type = Counter(config.data_type for config in configs)
        rules = [rule for config in configs for rule in self._rules(config)]

        return ConfigStats(
            total_configs=len(configs),
            enabled_configs=sum(1 for c in configs if c.enabled),
            total_rules=len(rules),
            enabled_rules=sum(1 for r in rules if r.enabled),
            configs_by_type={dt.value: by_type.get(dt.value, 0) for dt in DataType},
        )
