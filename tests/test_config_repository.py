"""Tests for ConfigRepository and ConfigFetchService."""

from datetime import datetime

import pytest

from remote_config.core.configs.models import ConfigCreate, ConfigUpdate
from remote_config.core.configs.repository import ConfigRepository
from remote_config.core.configs.service import ConfigFetchService
from remote_config.core.configs.validation import MAX_VALUE_SIZE
from remote_config.core.errors import (
    ConfigNotFoundError,
    ConfigValueTooLargeError,
    DuplicateConfigKeyError,
    InvalidConfigKeyError,
    TypeMismatchError,
)
from remote_config.core.rules.models import DataType, EvaluationContext, RuleCreate
from remote_config.core.rules.repository import RuleRepository
from remote_config.db.models import ConfigHistory, RuleOverride


def new_config(**fields) -> ConfigCreate:
    fields.setdefault("game_id", "game-1")
    fields.setdefault("key", "welcome_message")
    fields.setdefault("value", "Hello")
    fields.setdefault("data_type", DataType.STRING)
    return ConfigCreate(**fields)


class TestConfigRepository:
    """Tests for config CRUD."""

    def test_create_records_history(self, db):
        config = ConfigRepository(db).create(new_config(), changed_by="tester")

        assert config.data_type == "string"
        assert config.environment == "production"
        entry = db.query(ConfigHistory).filter_by(config_id=config.id).one()
        assert entry.change_type == "created"
        assert entry.new_value == "Hello"
        assert entry.changed_by == "tester"

    def test_same_key_in_other_environment_is_allowed(self, db):
        repo = ConfigRepository(db)
        repo.create(new_config())
        repo.create(new_config(environment="staging"))
        assert len(repo.get_all(game_id="game-1")) == 2

    def test_duplicate_key(self, db):
        repo = ConfigRepository(db)
        repo.create(new_config())
        with pytest.raises(DuplicateConfigKeyError):
            repo.create(new_config(value="Hi again"))

    @pytest.mark.parametrize("key", ["", "has-dash", "has space", "k" * 65])
    def test_invalid_key(self, db, key):
        with pytest.raises(InvalidConfigKeyError):
            ConfigRepository(db).create(new_config(key=key))

    def test_value_must_match_type(self, db):
        with pytest.raises(TypeMismatchError):
            ConfigRepository(db).create(new_config(data_type=DataType.NUMBER, value="100"))

    def test_value_size_limit(self, db):
        with pytest.raises(ConfigValueTooLargeError):
            ConfigRepository(db).create(new_config(value="x" * MAX_VALUE_SIZE))

    def test_update_value(self, db):
        repo = ConfigRepository(db)
        config = repo.create(new_config())

        updated = repo.update(config.id, ConfigUpdate(value="Welcome back"))

        assert updated.value == "Welcome back"
        entries = repo.history(config.id)
        assert {e.change_type for e in entries} == {"created", "updated"}

    def test_update_checks_type(self, db):
        repo = ConfigRepository(db)
        config = repo.create(new_config())
        with pytest.raises(TypeMismatchError):
            repo.update(config.id, ConfigUpdate(value=42))

    def test_update_missing(self, db):
        with pytest.raises(ConfigNotFoundError):
            ConfigRepository(db).update("missing", ConfigUpdate(enabled=False))

    def test_delete_removes_rules(self, db, coins_config):
        RuleRepository(db).create(coins_config.id, RuleCreate(priority=1, override_value=300))

        ConfigRepository(db).delete(coins_config.id)

        assert ConfigRepository(db).get_by_id(coins_config.id) is None
        assert db.query(RuleOverride).count() == 0
        assert db.query(ConfigHistory).count() == 0


class TestConfigFetchService:
    """Tests for resolving a whole game."""

    def _campaign(self, db, coins_config):
        rules = RuleRepository(db)
        window = dict(
            active_between_start=datetime(2026, 2, 1),
            active_between_end=datetime(2026, 2, 14, 23, 59, 59),
        )
        rules.create(coins_config.id, RuleCreate(priority=1, override_value=300, country_condition="DE", **window))
        rules.create(
            coins_config.id,
            RuleCreate(priority=10, override_value=400, platform_condition="iOS", country_condition="DE", **window),
        )
        ConfigRepository(db).create(new_config(key="show_banner", value=True, data_type=DataType.BOOLEAN))

    def test_fetch_resolves_every_config(self, db, coins_config):
        self._campaign(db, coins_config)
        service = ConfigFetchService(db)
        instant = datetime(2026, 2, 7, 12, 0, 0)

        result = service.fetch("game-1", EvaluationContext.at(instant, country="DE", platform="iOS"))
        assert result.configs == {"daily_reward_coins": 300, "show_banner": True}
        assert result.metadata.total_configs == 2
        assert result.metadata.evaluated_at == instant

        coins = next(e for e in result.evaluations if e.key == "daily_reward_coins")
        assert coins.source == "rule"
        assert coins.matched_rule_priority == 1

        result = service.fetch("game-1", EvaluationContext.at(instant, country="US"))
        assert result.configs["daily_reward_coins"] == 100

    def test_fetch_sees_rules_added_later(self, db, coins_config):
        service = ConfigFetchService(db)
        assert service.fetch("game-1", EvaluationContext()).configs["daily_reward_coins"] == 100

        RuleRepository(db).create(coins_config.id, RuleCreate(priority=1, override_value=150))
        assert service.fetch("game-1", EvaluationContext()).configs["daily_reward_coins"] == 150

    def test_fetch_skips_disabled_configs(self, db, coins_config):
        ConfigRepository(db).update(coins_config.id, ConfigUpdate(enabled=False))
        result = ConfigFetchService(db).fetch("game-1", EvaluationContext())
        assert result.configs == {}

    def test_fetch_is_scoped_to_environment(self, db, coins_config):
        ConfigRepository(db).create(
            new_config(key="daily_reward_coins", value=1, data_type=DataType.NUMBER, environment="staging")
        )
        service = ConfigFetchService(db)
        assert service.fetch("game-1", EvaluationContext()).configs == {"daily_reward_coins": 100}
        assert service.fetch("game-1", EvaluationContext(), environment="staging").configs == {"daily_reward_coins": 1}

    def test_stats(self, db, coins_config):
        self._campaign(db, coins_config)
        rules = RuleRepository(db).get_for_config(coins_config.id)
        RuleRepository(db).set_enabled(coins_config.id, rules[0].id, enabled=False)

        stats = ConfigFetchService(db).stats("game-1")
        assert stats.total_configs == 2
        assert stats.total_rules == 2
        assert stats.enabled_rules == 1
        assert stats.configs_by_type["number"] == 1
        assert stats.configs_by_type["boolean"] == 1
        assert stats.configs_by_type["json"] == 0
