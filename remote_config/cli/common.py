"""Helpers shared by CLI command groups."""

from __future__ import annotations

import json
from typing import Any

import typer
from rich.console import Console
from sqlalchemy.orm import Session

from remote_config.core.configs.repository import ConfigRepository
from remote_config.core.errors import RemoteConfigError
from remote_config.core.rules.models import DataType
from remote_config.db.models import RemoteConfig

console = Console()


def data_type_choices() -> str:
    """Get formatted list of data type choices."""
    return ", ".join([dt.value for dt in DataType])


def parse_value(text: str, data_type: DataType) -> Any:
    """Turn command-line text into a value of ``data_type``.

    Strings are taken as-is; every other type is read as JSON
    (``42``, ``true``, ``{"a": 1}``).
    """
    if data_type == DataType.STRING:
        return text
    try:
        return json.loads(text)
    except ValueError:
        console.print(f"[red]Error:[/red] {text!r} is not a valid {data_type.value} value")
        raise typer.Exit(1)


def find_config(db: Session, game_id: str, key: str, environment: str) -> RemoteConfig:
    """Look up a config by key or exit with an error."""
    config = ConfigRepository(db).get_by_key(game_id, key, environment)
    if not config:
        console.print(f"[red]Error:[/red] Config '{key}' not found for {game_id} ({environment}).")
        raise typer.Exit(1)
    return config


def fail(error: RemoteConfigError) -> None:
    """Report a rejected operation and exit."""
    console.print(f"[red]Error:[/red] {error.message} [dim]({error.code})[/dim]")
    raise typer.Exit(1)


def format_value(value: Any) -> str:
    """Compact display form of a config or override value."""
    if isinstance(value, str):
        return value
    return json.dumps(value)
