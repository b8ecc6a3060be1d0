"""Tests for the command-line interface."""

from contextlib import contextmanager

import pytest
from typer.testing import CliRunner

from remote_config.cli.main import app

runner = CliRunner()


@pytest.fixture(autouse=True)
def cli_db(session_factory, monkeypatch):
    """Point every CLI command at the in-memory database."""

    @contextmanager
    def test_db():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    for module in ("remote_config.cli.main", "remote_config.cli.configs", "remote_config.cli.rules"):
        monkeypatch.setattr(f"{module}.get_db", test_db)
    monkeypatch.setattr("remote_config.cli.main.init_db", lambda: None)


def invoke(*args):
    return runner.invoke(app, list(args))


def add_coins():
    result = invoke("configs", "add", "game-1", "daily_reward_coins", "number", "100")
    assert result.exit_code == 0, result.output


class TestConfigCommands:
    """Tests for the configs command group."""

    def test_add_and_list(self):
        add_coins()
        result = invoke("configs", "list", "game-1")
        assert result.exit_code == 0
        assert "daily_reward_coins" in result.output

    def test_add_rejects_unknown_type(self):
        result = invoke("configs", "add", "game-1", "coins", "decimal", "1")
        assert result.exit_code == 1
        assert "Invalid data type" in result.output

    def test_add_rejects_mismatched_value(self):
        result = invoke("configs", "add", "game-1", "coins", "number", "lots")
        assert result.exit_code == 1

    def test_add_with_bounds(self):
        result = invoke("configs", "add", "game-1", "daily_reward_coins", "number", "100", "--min", "0", "--max", "1000")
        assert result.exit_code == 0, result.output

        result = invoke("configs", "show", "game-1", "daily_reward_coins")
        assert "Constraint: max 1000.0" in result.output

        result = invoke("rules", "add", "game-1", "daily_reward_coins", "1", "5000")
        assert result.exit_code == 1

    def test_add_rejects_bad_pattern(self):
        result = invoke("configs", "add", "game-1", "promo_code", "string", "SPRING", "--pattern", "([A-Z")
        assert result.exit_code == 1
        assert "Invalid regex" in result.output

    def test_remove(self):
        add_coins()
        result = invoke("configs", "remove", "game-1", "daily_reward_coins", "--force")
        assert result.exit_code == 0
        assert "No configs found" in invoke("configs", "list").output


class TestRuleCommands:
    """Tests for the rules command group and fetch."""

    def test_rule_changes_fetched_value(self):
        add_coins()
        result = invoke("rules", "add", "game-1", "daily_reward_coins", "1", "300", "--country", "DE")
        assert result.exit_code == 0, result.output

        result = invoke("fetch", "game-1", "--country", "DE")
        assert result.exit_code == 0
        assert "rule 1" in result.output

        result = invoke("rules", "disable", "game-1", "daily_reward_coins", "1")
        assert result.exit_code == 0
        result = invoke("fetch", "game-1", "--country", "DE")
        assert "rule 1" not in result.output
        assert "default" in result.output

    def test_duplicate_priority_is_reported(self):
        add_coins()
        invoke("rules", "add", "game-1", "daily_reward_coins", "1", "300")
        result = invoke("rules", "add", "game-1", "daily_reward_coins", "1", "400")
        assert result.exit_code == 1
        assert "duplicate_priority" in result.output

    def test_remove_rule(self):
        add_coins()
        invoke("rules", "add", "game-1", "daily_reward_coins", "5", "300")
        result = invoke("rules", "remove", "game-1", "daily_reward_coins", "5", "--force")
        assert result.exit_code == 0
        assert "No rules found" in invoke("rules", "list", "game-1", "daily_reward_coins").output

    def test_unknown_config(self):
        result = invoke("rules", "list", "game-1", "missing")
        assert result.exit_code == 1
