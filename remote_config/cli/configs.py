"""Config CLI commands."""

from __future__ import annotations

from typing import Optional

import typer
from pydantic import ValidationError
from rich.markup import escape
from rich.table import Table

from remote_config.cli.common import (
    console,
    data_type_choices,
    fail,
    find_config,
    format_value,
    parse_value,
)
from remote_config.core.configs.models import ConfigCreate
from remote_config.core.configs.repository import ConfigRepository
from remote_config.core.errors import RemoteConfigError
from remote_config.core.rules.conditions import MATCHERS
from remote_config.core.rules.constraints import parse_constraints
from remote_config.core.rules.models import ConstraintKind, DataType, ValueConstraint
from remote_config.core.rules.repository import RuleRepository, rule_from_row
from remote_config.db.database import get_db

app = typer.Typer()


@app.command("add")
def add_config(
    game_id: str = typer.Argument(..., help="Game identifier"),
    key: str = typer.Argument(..., help="Config key (letters, digits, underscores)"),
    data_type: str = typer.Argument(..., help=f"Data type: {data_type_choices()}"),
    value: str = typer.Argument(..., help="Default value (JSON for non-string types)"),
    environment: str = typer.Option("production", "--env", "-e", help="Environment"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Description"),
    disabled: bool = typer.Option(False, "--disabled", help="Create the config disabled"),
    minimum: Optional[float] = typer.Option(None, "--min", help="Lowest allowed number value"),
    maximum: Optional[float] = typer.Option(None, "--max", help="Highest allowed number value"),
    pattern: Optional[str] = typer.Option(None, "--pattern", help="Regex string values must match"),
    max_length: Optional[int] = typer.Option(None, "--max-length", help="Longest allowed string value"),
):
    """Add a new config with its default value."""
    try:
        dt = DataType(data_type)
    except ValueError:
        console.print(f"[red]Error:[/red] Invalid data type: {data_type}")
        console.print(f"Valid types: {data_type_choices()}")
        raise typer.Exit(1)

    if environment not in ("development", "staging", "production"):
        console.print(f"[red]Error:[/red] Invalid environment: {environment}")
        raise typer.Exit(1)

    operands = {
        ConstraintKind.MIN: minimum,
        ConstraintKind.MAX: maximum,
        ConstraintKind.REGEX: pattern,
        ConstraintKind.MAX_LENGTH: max_length,
    }
    try:
        constraints = [
            ValueConstraint(kind=kind, value=operand) for kind, operand in operands.items() if operand is not None
        ]
    except ValidationError as e:
        console.print(f"[red]Error:[/red] {escape(e.errors()[0]['msg'])}")
        raise typer.Exit(1)

    payload = ConfigCreate(
        game_id=game_id,
        key=key,
        value=parse_value(value, dt),
        data_type=dt,
        environment=environment,
        enabled=not disabled,
        description=description,
        constraints=constraints,
    )

    with get_db() as db:
        try:
            config = ConfigRepository(db).create(payload, changed_by="cli")
        except RemoteConfigError as e:
            fail(e)

        console.print(
            f"[green]Added config:[/green] {config.key}\n"
            f"  Game: {config.game_id} ({config.environment})\n"
            f"  Type: {config.data_type}\n"
            f"  Value: {format_value(config.value)}"
        )


@app.command("list")
def list_configs(
    game_id: Optional[str] = typer.Argument(None, help="Only show this game's configs"),
    environment: Optional[str] = typer.Option(None, "--env", "-e", help="Only show this environment"),
):
    """List configs."""
    with get_db() as db:
        configs = ConfigRepository(db).get_all(game_id=game_id, environment=environment)

        if not configs:
            console.print("[yellow]No configs found.[/yellow] Use 'add' to create some.")
            return

        table = Table(title="Configs")
        table.add_column("Game", style="cyan")
        table.add_column("Key", style="cyan")
        table.add_column("Env")
        table.add_column("Type")
        table.add_column("Value")
        table.add_column("Rules", justify="right")
        table.add_column("Enabled")

        for c in configs:
            enabled_str = "[green]Yes[/green]" if c.enabled else "[red]No[/red]"
            table.add_row(
                c.game_id,
                c.key,
                c.environment,
                c.data_type,
                format_value(c.value),
                str(len(c.rules)),
                enabled_str,
            )

        console.print(table)
        console.print(f"\n[dim]Total configs: {len(configs)}[/dim]")


@app.command("show")
def show_config(
    game_id: str = typer.Argument(..., help="Game identifier"),
    key: str = typer.Argument(..., help="Config key"),
    environment: str = typer.Option("production", "--env", "-e", help="Environment"),
):
    """Show a config and its rules in evaluation order."""
    with get_db() as db:
        config = find_config(db, game_id, key, environment)
        rows = RuleRepository(db).get_for_config(config.id)

        console.print(f"[bold]{config.key}[/bold] [dim]({config.game_id}/{config.environment})[/dim]")
        console.print(f"  Type: {config.data_type}")
        console.print(f"  Default: {format_value(config.value)}")
        if config.description:
            console.print(f"  Description: {config.description}")
        for constraint in parse_constraints(config.constraints):
            console.print(f"  Constraint: {constraint.kind.value} {escape(constraint.value)}")
        console.print(f"  Enabled: {'yes' if config.enabled else 'no'}\n")

        if not rows:
            console.print("[dim]No rules.[/dim]")
            return

        table = Table(title="Rules")
        table.add_column("Priority", justify="right", style="cyan")
        table.add_column("Value")
        table.add_column("Conditions")
        table.add_column("Enabled")

        for row in rows:
            rule = rule_from_row(row)
            conditions = ", ".join(f"{m.name}: {m.describe(rule)}" for m in MATCHERS if m.declared(rule))
            table.add_row(
                str(row.priority),
                format_value(row.override_value),
                conditions or "[dim]always[/dim]",
                "[green]Yes[/green]" if row.enabled else "[red]No[/red]",
            )

        console.print(table)


@app.command("remove")
def remove_config(
    game_id: str = typer.Argument(..., help="Game identifier"),
    key: str = typer.Argument(..., help="Config key to remove"),
    environment: str = typer.Option("production", "--env", "-e", help="Environment"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
):
    """Remove a config and all of its rules."""
    with get_db() as db:
        config = find_config(db, game_id, key, environment)

        if not force:
            confirm = typer.confirm(f"Remove config '{key}' and its {len(config.rules)} rule(s)?")
            if not confirm:
                console.print("[yellow]Cancelled.[/yellow]")
                raise typer.Exit(0)

        ConfigRepository(db).delete(config.id, changed_by="cli")
        console.print(f"[green]Removed:[/green] {key}")
