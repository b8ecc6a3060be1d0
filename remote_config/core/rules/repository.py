"""Rule repository for CRUD operations."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Collection, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from remote_config.config import get_settings
from remote_config.core.clock import to_utc
from remote_config.core.errors import (
    ConfigNotFoundError,
    DuplicatePriorityError,
    IncompleteConditionError,
    RuleNotFoundError,
)
from remote_config.db.models import RemoteConfig, RuleHistory, RuleOverride
from .models import (
    DataType,
    DateWindow,
    OverrideRule,
    RuleCreate,
    RuleUpdate,
    VersionOperator,
    VersionCondition,
)
from .validation import (
    validate_reorder,
    validate_rule,
    validate_rule_count,
    validate_update,
)

logger = logging.getLogger(__name__)

settings = get_settings()


def _utc(instant: Optional[datetime]) -> Optional[datetime]:
    return to_utc(instant) if instant is not None else None


def rule_from_row(row: RuleOverride) -> OverrideRule:
    """Convert a stored rule into the evaluation-path representation."""
    version = None
    if row.version_operator and row.version_value:
        version = VersionCondition(VersionOperator(row.version_operator), row.version_value)

    window = None
    if row.active_between_start and row.active_between_end:
        window = DateWindow(row.active_between_start, row.active_between_end)

    return OverrideRule(
        id=row.id,
        priority=row.priority,
        override_value=row.override_value,
        enabled=row.enabled,
        platform=row.platform_condition,
        version=version,
        country=row.country_condition,
        segment=row.segment_condition,
        active_after=row.active_after,
        active_between=window,
        created_at=row.created_at,
    )


def rule_from_payload(payload: RuleCreate) -> OverrideRule:
    """Build a candidate rule from a create payload."""
    version = None
    if payload.version_operator is not None:
        version = VersionCondition(payload.version_operator, payload.version_value)

    window = None
    if payload.active_between_start is not None:
        window = DateWindow(payload.active_between_start, payload.active_between_end)

    return OverrideRule(
        priority=payload.priority,
        override_value=payload.override_value,
        enabled=payload.enabled,
        platform=payload.platform_condition,
        version=version,
        country=payload.country_condition,
        segment=payload.segment_condition,
        active_after=_utc(payload.active_after),
        active_between=window,
    )


def _merged_pair(
    payload: RuleUpdate,
    names: Tuple[str, str],
    stored: Tuple[Any, Any],
) -> Tuple[Any, Any]:
    """Take each half of a paired condition from the payload if sent, else from storage."""
    fields_set = payload.model_fields_set
    return tuple(
        getattr(payload, name) if name in fields_set else current
        for name, current in zip(names, stored)
    )


def changes_from_update(payload: RuleUpdate, current: Optional[OverrideRule] = None) -> Dict[str, Any]:
    """Map the fields present in an update payload to OverrideRule fields.

    Explicit nulls clear conditions. ``priority`` and ``enabled`` cannot be
    cleared, so a null for them is ignored. When only one half of the
    version or window pair is sent, the other half comes from ``current``.

    Raises:
        IncompleteConditionError: If a pair ends up with exactly one half
    """
    fields_set = payload.model_fields_set
    changes: Dict[str, Any] = {}

    if "priority" in fields_set and payload.priority is not None:
        changes["priority"] = payload.priority
    if "enabled" in fields_set and payload.enabled is not None:
        changes["enabled"] = payload.enabled
    if "override_value" in fields_set:
        changes["override_value"] = payload.override_value

    if "platform_condition" in fields_set:
        changes["platform"] = payload.platform_condition
    if "country_condition" in fields_set:
        changes["country"] = payload.country_condition
    if "segment_condition" in fields_set:
        changes["segment"] = payload.segment_condition
    if "active_after" in fields_set:
        changes["active_after"] = _utc(payload.active_after)

    if {"version_operator", "version_value"} & fields_set:
        version = current.version if current else None
        operator, value = _merged_pair(
            payload,
            ("version_operator", "version_value"),
            (version.operator, version.value) if version else (None, None),
        )
        if operator is None and value is None:
            changes["version"] = None
        elif operator is None:
            raise IncompleteConditionError("version", "version_operator")
        elif value is None:
            raise IncompleteConditionError("version", "version_value")
        else:
            changes["version"] = VersionCondition(operator, value)

    if {"active_between_start", "active_between_end"} & fields_set:
        window = current.active_between if current else None
        start, end = _merged_pair(
            payload,
            ("active_between_start", "active_between_end"),
            (window.start, window.end) if window else (None, None),
        )
        if start is None and end is None:
            changes["active_between"] = None
        elif start is None:
            raise IncompleteConditionError("active_between", "active_between_start")
        elif end is None:
            raise IncompleteConditionError("active_between", "active_between_end")
        else:
            changes["active_between"] = DateWindow(start, end)
    return changes


def _apply(row: RuleOverride, rule: OverrideRule) -> None:
    """Copy a validated rule onto its ORM row."""
    row.priority = rule.priority
    row.override_value = rule.override_value
    row.enabled = rule.enabled
    row.platform_condition = rule.platform
    row.version_operator = rule.version.operator.value if rule.version else None
    row.version_value = rule.version.value if rule.version else None
    row.country_condition = rule.country
    row.segment_condition = rule.segment
    row.active_after = rule.active_after
    row.active_between_start = rule.active_between.start if rule.active_between else None
    row.active_between_end = rule.active_between.end if rule.active_between else None


def rule_state(row: RuleOverride) -> Dict[str, Any]:
    """JSON-safe snapshot of a rule for the audit trail."""

    def iso(instant: Optional[datetime]) -> Optional[str]:
        return instant.isoformat() if instant else None

    return {
        "id": row.id,
        "config_id": row.config_id,
        "priority": row.priority,
        "override_value": row.override_value,
        "enabled": row.enabled,
        "platform_condition": row.platform_condition,
        "version_operator": row.version_operator,
        "version_value": row.version_value,
        "country_condition": row.country_condition,
        "segment_condition": row.segment_condition,
        "active_after": iso(row.active_after),
        "active_between_start": iso(row.active_between_start),
        "active_between_end": iso(row.active_between_end),
    }


class RuleRepository:
    """Repository for RuleOverride CRUD operations."""

    def __init__(
        self,
        db: Session,
        max_rules_per_config: Optional[int] = None,
        known_country_codes: Optional[Collection[str]] = None,
    ):
        """Initialize repository with database session.

        Args:
            db: Database session
            max_rules_per_config: Rule cap per config (defaults to settings)
            known_country_codes: Optional authoritative set of country codes
        """
        self.db = db
        self.max_rules_per_config = max_rules_per_config or settings.max_rules_per_config
        self.known_country_codes = known_country_codes

    def _get_config(self, config_id: str) -> RemoteConfig:
        config = self.db.query(RemoteConfig).filter_by(id=config_id).first()
        if not config:
            raise ConfigNotFoundError(config_id)
        return config

    def _rows(self, config_id: str) -> List[RuleOverride]:
        return (
            self.db.query(RuleOverride)
            .filter_by(config_id=config_id)
            .order_by(RuleOverride.priority, RuleOverride.created_at)
            .all()
        )

    def get_for_config(self, config_id: str) -> List[RuleOverride]:
        """Get all rules of a config ordered by priority.

        Raises:
            ConfigNotFoundError: If the config does not exist
        """
        self._get_config(config_id)
        return self._rows(config_id)

    def get_by_id(self, rule_id: str, config_id: Optional[str] = None) -> Optional[RuleOverride]:
        """Get a rule by ID, optionally requiring it to belong to ``config_id``."""
        query = self.db.query(RuleOverride).filter_by(id=rule_id)
        if config_id is not None:
            query = query.filter_by(config_id=config_id)
        return query.first()

    def _flush(self, priority: int, config_id: str) -> None:
        """Flush pending changes, mapping the priority constraint to a rejection."""
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            logger.warning(f"Priority {priority} collided at the storage boundary for config {config_id}")
            raise DuplicatePriorityError(priority, config_id)

    def _record(
        self,
        action: str,
        config_id: str,
        rule_id: Optional[str],
        changed_by: str,
        previous_state: Optional[Dict[str, Any]] = None,
        new_state: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.db.add(
            RuleHistory(
                rule_id=rule_id,
                config_id=config_id,
                action=action,
                previous_state=previous_state,
                new_state=new_state,
                changed_by=changed_by,
            )
        )

    def create(self, config_id: str, payload: RuleCreate, changed_by: str = "system") -> RuleOverride:
        """Validate and store a new rule.

        Args:
            config_id: Owning config
            payload: Rule fields
            changed_by: Actor recorded in the audit trail

        Returns:
            Created rule

        Raises:
            ConfigNotFoundError: If the config does not exist
            RuleValidationError: If the rule violates a write-time invariant
        """
        config = self._get_config(config_id)
        existing = [rule_from_row(r) for r in self._rows(config_id)]

        validate_rule_count(len(existing), config_id, self.max_rules_per_config)
        candidate = rule_from_payload(payload)
        validate_rule(
            candidate,
            existing,
            DataType(config.data_type),
            config_id=config_id,
            known_country_codes=self.known_country_codes,
            constraints=config.constraints,
        )

        row = RuleOverride(config_id=config_id)
        _apply(row, candidate)
        self.db.add(row)
        self._flush(candidate.priority, config_id)

        self._record("created", config_id, row.id, changed_by, new_state=rule_state(row))
        self.db.flush()

        logger.info(f"Rule created: {row.id} (config {config_id}, priority {row.priority})")
        return row

    def update(
        self,
        config_id: str,
        rule_id: str,
        payload: RuleUpdate,
        changed_by: str = "system",
    ) -> RuleOverride:
        """Validate and apply an update.

        Raises:
            ConfigNotFoundError: If the config does not exist
            RuleNotFoundError: If the rule does not exist under the config
            RuleValidationError: If the merged rule violates an invariant
        """
        self._get_config(config_id)
        row = self.get_by_id(rule_id, config_id=config_id)
        if not row:
            raise RuleNotFoundError(rule_id)
        changes = changes_from_update(payload, rule_from_row(row))
        return self._update(config_id, rule_id, changes, changed_by)

    def _update(
        self,
        config_id: str,
        rule_id: str,
        changes: Dict[str, Any],
        changed_by: str,
    ) -> RuleOverride:
        config = self._get_config(config_id)
        row = self.get_by_id(rule_id, config_id=config_id)
        siblings = [rule_from_row(r) for r in self._rows(config_id)]

        merged = validate_update(
            rule_from_row(row) if row else None,
            changes,
            siblings,
            DataType(config.data_type),
            rule_id=rule_id,
            config_id=config_id,
            known_country_codes=self.known_country_codes,
            constraints=config.constraints,
        )

        previous = rule_state(row)
        _apply(row, merged)
        self._flush(merged.priority, config_id)

        self._record("updated", config_id, rule_id, changed_by, previous_state=previous, new_state=rule_state(row))
        self.db.flush()

        logger.info(f"Rule updated: {rule_id} (config {config_id}, priority {row.priority})")
        return row

    def set_enabled(
        self,
        config_id: str,
        rule_id: str,
        enabled: Optional[bool] = None,
        changed_by: str = "system",
    ) -> RuleOverride:
        """Enable or disable a rule. ``enabled=None`` toggles the current state."""
        if enabled is None:
            row = self.get_by_id(rule_id, config_id=config_id)
            if not row:
                self._get_config(config_id)
                raise RuleNotFoundError(rule_id)
            enabled = not row.enabled
        return self._update(config_id, rule_id, {"enabled": enabled}, changed_by)

    def delete(self, config_id: str, rule_id: str, changed_by: str = "system") -> None:
        """Delete a rule.

        Raises:
            ConfigNotFoundError: If the config does not exist
            RuleNotFoundError: If the rule does not exist under the config
        """
        self._get_config(config_id)
        row = self.get_by_id(rule_id, config_id=config_id)
        if not row:
            raise RuleNotFoundError(rule_id)

        self._record("deleted", config_id, rule_id, changed_by, previous_state=rule_state(row))
        self.db.delete(row)
        self.db.flush()

        logger.info(f"Rule deleted: {rule_id} (config {config_id})")

    def reorder(
        self,
        config_id: str,
        ordering: List[tuple],
        changed_by: str = "system",
    ) -> List[RuleOverride]:
        """Reassign priorities of several rules at once.

        Args:
            config_id: Owning config
            ordering: (rule_id, new_priority) pairs
            changed_by: Actor recorded in the audit trail

        Returns:
            The config's rules in their new order
        """
        self._get_config(config_id)
        rows = {r.id: r for r in self._rows(config_id)}
        final = validate_reorder([rule_from_row(r) for r in rows.values()], ordering, config_id=config_id)

        moved = [rule_id for rule_id, priority in final.items() if rows[rule_id].priority != priority]
        if not moved:
            return self.get_for_config(config_id)

        # Park moved rules on negative priorities so no intermediate state collides
        for offset, rule_id in enumerate(moved, start=1):
            rows[rule_id].priority = -offset
        self._flush(-1, config_id)

        for rule_id in moved:
            rows[rule_id].priority = final[rule_id]
            self._record("reordered", config_id, rule_id, changed_by, new_state={"priority": final[rule_id]})
        self._flush(final[moved[0]], config_id)

        logger.info(f"Rules reordered for config {config_id}: {len(moved)} moved")
        return self.get_for_config(config_id)
