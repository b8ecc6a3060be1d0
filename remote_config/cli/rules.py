"""Rules CLI commands."""

from __future__ import annotations

from datetime import datetime
from typing import Optional

import typer
from pydantic import ValidationError
from rich.table import Table

from remote_config.cli.common import console, fail, find_config, format_value, parse_value
from remote_config.core.clock import parse_instant
from remote_config.core.errors import RemoteConfigError
from remote_config.core.rules.conditions import MATCHERS, conditions_summary
from remote_config.core.rules.models import DataType, RuleCreate, VersionOperator
from remote_config.core.rules.repository import RuleRepository, rule_from_row
from remote_config.db.database import get_db

app = typer.Typer()


def get_operator_choices() -> str:
    """Get formatted list of version operator choices."""
    return ", ".join([op.value for op in VersionOperator])


def _instant(text: Optional[str], option: str) -> Optional[datetime]:
    if text is None:
        return None
    try:
        return parse_instant(text)
    except ValidationError:
        console.print(f"[red]Error:[/red] {option} must be an ISO 8601 timestamp, got {text!r}")
        raise typer.Exit(1)


@app.command("add")
def add_rule(
    game_id: str = typer.Argument(..., help="Game identifier"),
    key: str = typer.Argument(..., help="Config key"),
    priority: int = typer.Argument(..., help="Priority (lower is evaluated first)"),
    value: str = typer.Argument(..., help="Override value (JSON for non-string types)"),
    environment: str = typer.Option("production", "--env", "-e", help="Environment"),
    platform: Optional[str] = typer.Option(None, "--platform", "-p", help="iOS, Android or Web"),
    version_op: Optional[str] = typer.Option(
        None, "--version-op", help=f"Version operator: {get_operator_choices()}"
    ),
    version: Optional[str] = typer.Option(None, "--version", "-v", help="Version to compare (MAJOR.MINOR.PATCH)"),
    country: Optional[str] = typer.Option(None, "--country", "-c", help="ISO 3166-1 alpha-2 country code"),
    segment: Optional[str] = typer.Option(None, "--segment", "-s", help="User segment"),
    after: Optional[str] = typer.Option(None, "--after", help="Active from this instant (ISO 8601)"),
    start: Optional[str] = typer.Option(None, "--start", help="Window start (ISO 8601)"),
    end: Optional[str] = typer.Option(None, "--end", help="Window end (ISO 8601)"),
):
    """Add an override rule to a config."""
    operator = None
    if version_op is not None:
        try:
            operator = VersionOperator(version_op)
        except ValueError:
            console.print(f"[red]Error:[/red] Invalid version operator: {version_op}")
            console.print(f"Valid operators: {get_operator_choices()}")
            raise typer.Exit(1)

    if (operator is None) != (version is None):
        console.print("[red]Error:[/red] --version-op and --version must be given together")
        raise typer.Exit(1)
    if (start is None) != (end is None):
        console.print("[red]Error:[/red] --start and --end must be given together")
        raise typer.Exit(1)

    with get_db() as db:
        config = find_config(db, game_id, key, environment)

        payload = RuleCreate(
            priority=priority,
            override_value=parse_value(value, DataType(config.data_type)),
            platform_condition=platform,
            version_operator=operator,
            version_value=version,
            country_condition=country,
            segment_condition=segment,
            active_after=_instant(after, "--after"),
            active_between_start=_instant(start, "--start"),
            active_between_end=_instant(end, "--end"),
        )

        try:
            rule = RuleRepository(db).create(config.id, payload, changed_by="cli")
        except RemoteConfigError as e:
            fail(e)

        console.print(
            f"[green]Added rule:[/green] priority {rule.priority} on {config.key}\n"
            f"  Value: {format_value(rule.override_value)}"
        )
        declared = rule_from_row(rule)
        for matcher in MATCHERS:
            if matcher.declared(declared):
                console.print(f"  {matcher.name}: {matcher.describe(declared)}")


@app.command("list")
def list_rules(
    game_id: str = typer.Argument(..., help="Game identifier"),
    key: str = typer.Argument(..., help="Config key"),
    environment: str = typer.Option("production", "--env", "-e", help="Environment"),
):
    """List a config's rules in priority order."""
    with get_db() as db:
        config = find_config(db, game_id, key, environment)
        rows = RuleRepository(db).get_for_config(config.id)

        if not rows:
            console.print("[yellow]No rules found.[/yellow] Use 'add' to create some.")
            return

        table = Table(title=f"Rules for {config.key}")
        table.add_column("Priority", justify="right", style="cyan")
        table.add_column("Value")
        table.add_column("Platform")
        table.add_column("Version")
        table.add_column("Country")
        table.add_column("Segment")
        table.add_column("Active")
        table.add_column("Enabled")

        for row in rows:
            summary = conditions_summary(rule_from_row(row))
            if row.active_between_start:
                active = summary["active_between"]
            elif row.active_after:
                active = f"after {summary['active_after']}"
            else:
                active = "[dim]always[/dim]"

            table.add_row(
                str(row.priority),
                format_value(row.override_value),
                summary["platform"],
                summary["version"],
                summary["country"],
                summary["segment"],
                active,
                "[green]Yes[/green]" if row.enabled else "[red]No[/red]",
            )

        console.print(table)
        console.print(f"\n[dim]Total rules: {len(rows)}[/dim]")


def _rule_at(db, game_id: str, key: str, priority: int, environment: str):
    config = find_config(db, game_id, key, environment)
    for row in RuleRepository(db).get_for_config(config.id):
        if row.priority == priority:
            return config, row
    console.print(f"[red]Error:[/red] No rule with priority {priority} on '{key}'.")
    raise typer.Exit(1)


@app.command("remove")
def remove_rule(
    game_id: str = typer.Argument(..., help="Game identifier"),
    key: str = typer.Argument(..., help="Config key"),
    priority: int = typer.Argument(..., help="Priority of the rule to remove"),
    environment: str = typer.Option("production", "--env", "-e", help="Environment"),
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation"),
):
    """Remove a rule."""
    with get_db() as db:
        config, rule = _rule_at(db, game_id, key, priority, environment)

        if not force:
            confirm = typer.confirm(f"Remove rule {priority} from '{key}'?")
            if not confirm:
                console.print("[yellow]Cancelled.[/yellow]")
                raise typer.Exit(0)

        RuleRepository(db).delete(config.id, rule.id, changed_by="cli")
        console.print(f"[green]Removed:[/green] rule {priority} from {key}")


@app.command("enable")
def enable_rule(
    game_id: str = typer.Argument(..., help="Game identifier"),
    key: str = typer.Argument(..., help="Config key"),
    priority: int = typer.Argument(..., help="Priority of the rule to enable"),
    environment: str = typer.Option("production", "--env", "-e", help="Environment"),
):
    """Enable a disabled rule."""
    with get_db() as db:
        config, rule = _rule_at(db, game_id, key, priority, environment)

        if rule.enabled:
            console.print(f"[yellow]Rule {priority} is already enabled.[/yellow]")
            return

        RuleRepository(db).set_enabled(config.id, rule.id, True, changed_by="cli")
        console.print(f"[green]Enabled:[/green] rule {priority} on {key}")


@app.command("disable")
def disable_rule(
    game_id: str = typer.Argument(..., help="Game identifier"),
    key: str = typer.Argument(..., help="Config key"),
    priority: int = typer.Argument(..., help="Priority of the rule to disable"),
    environment: str = typer.Option("production", "--env", "-e", help="Environment"),
):
    """Disable a rule without removing it."""
    with get_db() as db:
        config, rule = _rule_at(db, game_id, key, priority, environment)

        if not rule.enabled:
            console.print(f"[yellow]Rule {priority} is already disabled.[/yellow]")
            return

        RuleRepository(db).set_enabled(config.id, rule.id, False, changed_by="cli")
        console.print(f"[yellow]Disabled:[/yellow] rule {priority} on {key}")
