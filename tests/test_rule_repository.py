"""Tests for RuleRepository against an in-memory database."""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest

from remote_config.core.errors import (
    ConfigNotFoundError,
    DuplicatePriorityError,
    IncompleteConditionError,
    InvalidCountryCodeError,
    MaxRulesExceededError,
    RuleNotFoundError,
)
from remote_config.core.rules.models import RuleCreate, RuleUpdate, VersionOperator
from remote_config.core.rules.repository import RuleRepository, rule_from_row
from remote_config.db.models import RuleHistory, RuleOverride


def history(db, action):
    return db.query(RuleHistory).filter_by(action=action).all()


class TestCreate:
    """Tests for RuleRepository.create."""

    def test_creates_rule_with_conditions(self, db, coins_config):
        repo = RuleRepository(db)
        row = repo.create(
            coins_config.id,
            RuleCreate(
                priority=1,
                override_value=300,
                platform_condition="iOS",
                version_operator=VersionOperator.GREATER_OR_EQUAL,
                version_value="2.0.0",
                country_condition="DE",
                active_between_start=datetime(2026, 2, 1, tzinfo=timezone.utc),
                active_between_end=datetime(2026, 2, 14, 23, 59, 59, tzinfo=timezone.utc),
            ),
        )

        assert row.id is not None
        assert row.version_operator == "greater_or_equal"
        assert row.active_between_start == datetime(2026, 2, 1)

        rule = rule_from_row(row)
        assert rule.version.value == "2.0.0"
        assert rule.active_between.end == datetime(2026, 2, 14, 23, 59, 59)

        assert len(history(db, "created")) == 1

    def test_rejects_duplicate_priority(self, db, coins_config):
        repo = RuleRepository(db)
        repo.create(coins_config.id, RuleCreate(priority=1, override_value=300))
        with pytest.raises(DuplicatePriorityError):
            repo.create(coins_config.id, RuleCreate(priority=1, override_value=400))

    def test_storage_constraint_catches_collision(self, db, coins_config):
        """A collision that slips past validation is still rejected."""
        repo = RuleRepository(db)
        repo.create(coins_config.id, RuleCreate(priority=1, override_value=300))

        with patch("remote_config.core.rules.repository.validate_rule"):
            with pytest.raises(DuplicatePriorityError):
                repo.create(coins_config.id, RuleCreate(priority=1, override_value=400))

    def test_rejects_invalid_country(self, db, coins_config):
        repo = RuleRepository(db)
        with pytest.raises(InvalidCountryCodeError):
            repo.create(coins_config.id, RuleCreate(priority=1, override_value=300, country_condition="USA"))
        assert db.query(RuleOverride).count() == 0

    def test_rule_limit(self, db, coins_config):
        repo = RuleRepository(db, max_rules_per_config=2)
        repo.create(coins_config.id, RuleCreate(priority=1, override_value=1))
        repo.create(coins_config.id, RuleCreate(priority=2, override_value=2))
        with pytest.raises(MaxRulesExceededError):
            repo.create(coins_config.id, RuleCreate(priority=3, override_value=3))

    def test_unknown_config(self, db):
        with pytest.raises(ConfigNotFoundError):
            RuleRepository(db).create("missing", RuleCreate(priority=1, override_value=1))


class TestUpdate:
    """Tests for update, toggle and delete."""

    def test_partial_update_keeps_other_fields(self, db, coins_config):
        repo = RuleRepository(db)
        row = repo.create(coins_config.id, RuleCreate(priority=1, override_value=300, country_condition="DE"))

        updated = repo.update(coins_config.id, row.id, RuleUpdate(override_value=350))

        assert updated.override_value == 350
        assert updated.priority == 1
        assert updated.country_condition == "DE"

        entry = history(db, "updated")[0]
        assert entry.previous_state["override_value"] == 300
        assert entry.new_state["override_value"] == 350

    def test_null_clears_condition(self, db, coins_config):
        repo = RuleRepository(db)
        row = repo.create(coins_config.id, RuleCreate(priority=1, override_value=300, country_condition="DE"))

        updated = repo.update(coins_config.id, row.id, RuleUpdate(country_condition=None))
        assert updated.country_condition is None

    def test_version_value_alone_keeps_operator(self, db, coins_config):
        repo = RuleRepository(db)
        row = repo.create(
            coins_config.id,
            RuleCreate(
                priority=1,
                override_value=300,
                version_operator=VersionOperator.GREATER_OR_EQUAL,
                version_value="2.0.0",
            ),
        )

        updated = repo.update(coins_config.id, row.id, RuleUpdate(version_value="2.5.0"))

        assert updated.version_operator == "greater_or_equal"
        assert updated.version_value == "2.5.0"

    def test_clearing_one_half_of_version(self, db, coins_config):
        repo = RuleRepository(db)
        row = repo.create(
            coins_config.id,
            RuleCreate(
                priority=1,
                override_value=300,
                version_operator=VersionOperator.EQUAL,
                version_value="2.0.0",
            ),
        )

        with pytest.raises(IncompleteConditionError):
            repo.update(coins_config.id, row.id, RuleUpdate(version_value=None))

    def test_null_pair_clears_window(self, db, coins_config):
        repo = RuleRepository(db)
        row = repo.create(
            coins_config.id,
            RuleCreate(
                priority=1,
                override_value=300,
                active_between_start=datetime(2026, 2, 1, tzinfo=timezone.utc),
                active_between_end=datetime(2026, 2, 14, tzinfo=timezone.utc),
            ),
        )

        updated = repo.update(
            coins_config.id,
            row.id,
            RuleUpdate(active_between_start=None, active_between_end=None),
        )
        assert updated.active_between_start is None
        assert updated.active_between_end is None

    def test_update_onto_taken_priority(self, db, coins_config):
        repo = RuleRepository(db)
        repo.create(coins_config.id, RuleCreate(priority=1, override_value=300))
        second = repo.create(coins_config.id, RuleCreate(priority=2, override_value=400))

        with pytest.raises(DuplicatePriorityError):
            repo.update(coins_config.id, second.id, RuleUpdate(priority=1))

    def test_update_missing_rule(self, db, coins_config):
        with pytest.raises(RuleNotFoundError):
            RuleRepository(db).update(coins_config.id, "missing", RuleUpdate(priority=3))

    def test_toggle(self, db, coins_config):
        repo = RuleRepository(db)
        row = repo.create(coins_config.id, RuleCreate(priority=1, override_value=300))

        assert repo.set_enabled(coins_config.id, row.id).enabled is False
        assert repo.set_enabled(coins_config.id, row.id).enabled is True
        assert repo.set_enabled(coins_config.id, row.id, enabled=True).enabled is True

    def test_delete_keeps_history(self, db, coins_config):
        repo = RuleRepository(db)
        row = repo.create(coins_config.id, RuleCreate(priority=1, override_value=300))

        repo.delete(coins_config.id, row.id)

        assert repo.get_by_id(row.id) is None
        entry = history(db, "deleted")[0]
        assert entry.rule_id == row.id
        assert entry.previous_state["priority"] == 1

    def test_delete_missing_rule(self, db, coins_config):
        with pytest.raises(RuleNotFoundError):
            RuleRepository(db).delete(coins_config.id, "missing")


class TestReorder:
    """Tests for RuleRepository.reorder."""

    def test_swaps_priorities(self, db, coins_config):
        """Swapping two priorities must not trip the unique constraint."""
        repo = RuleRepository(db)
        first = repo.create(coins_config.id, RuleCreate(priority=1, override_value=1))
        second = repo.create(coins_config.id, RuleCreate(priority=2, override_value=2))
        third = repo.create(coins_config.id, RuleCreate(priority=3, override_value=3))

        rows = repo.reorder(coins_config.id, [(first.id, 2), (second.id, 1)])

        assert [r.id for r in rows] == [second.id, first.id, third.id]
        assert [r.priority for r in rows] == [1, 2, 3]
        assert len(history(db, "reordered")) == 2

    def test_noop_reorder(self, db, coins_config):
        repo = RuleRepository(db)
        first = repo.create(coins_config.id, RuleCreate(priority=1, override_value=1))

        rows = repo.reorder(coins_config.id, [(first.id, 1)])
        assert [r.priority for r in rows] == [1]
        assert history(db, "reordered") == []

    def test_reorder_collision(self, db, coins_config):
        repo = RuleRepository(db)
        first = repo.create(coins_config.id, RuleCreate(priority=1, override_value=1))
        repo.create(coins_config.id, RuleCreate(priority=2, override_value=2))

        with pytest.raises(DuplicatePriorityError):
            repo.reorder(coins_config.id, [(first.id, 2)])
