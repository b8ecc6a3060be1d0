"""Main CLI entry point using Typer."""

import logging
from typing import Optional

import typer
from pydantic import ValidationError
from rich.table import Table

from remote_config.cli.common import console, fail, format_value
from remote_config.config import PRODUCT_NAME, PRODUCT_TAGLINE, PRODUCT_VERSION, get_settings
from remote_config.core.clock import format_instant, parse_instant
from remote_config.core.configs.service import ConfigFetchService
from remote_config.core.errors import RemoteConfigError
from remote_config.core.rules.models import EvaluationContext
from remote_config.db.database import get_db, init_db

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

app = typer.Typer(
    name="remote-config",
    help=f"{PRODUCT_NAME}: {PRODUCT_TAGLINE}",
    add_completion=False,
)


@app.callback()
def main_callback():
    """Initialize database on startup."""
    init_db()


# Import and add subcommands
from remote_config.cli.configs import app as configs_app  # noqa: E402
from remote_config.cli.rules import app as rules_app  # noqa: E402

app.add_typer(configs_app, name="configs", help="Manage configs and their default values")
app.add_typer(rules_app, name="rules", help="Manage override rules")


@app.command()
def fetch(
    game_id: str = typer.Argument(..., help="Game identifier"),
    environment: str = typer.Option("production", "--env", "-e", help="Environment"),
    platform: Optional[str] = typer.Option(None, "--platform", "-p", help="Client platform"),
    version: Optional[str] = typer.Option(None, "--version", "-v", help="Client version"),
    country: Optional[str] = typer.Option(None, "--country", "-c", help="Client country"),
    segment: Optional[str] = typer.Option(None, "--segment", "-s", help="Client segment"),
    at: Optional[str] = typer.Option(None, "--at", help="Evaluate at this instant (ISO 8601)"),
):
    """Resolve a game's configs as a client with these attributes would see them."""
    attributes = dict(platform=platform, version=version, country=country, segment=segment)
    if at is not None:
        try:
            context = EvaluationContext.at(parse_instant(at), **attributes)
        except ValidationError:
            console.print(f"[red]Error:[/red] --at must be an ISO 8601 timestamp, got {at!r}")
            raise typer.Exit(1)
    else:
        context = EvaluationContext(**attributes)

    with get_db() as db:
        try:
            result = ConfigFetchService(db).fetch(game_id, context, environment=environment)
        except RemoteConfigError as e:
            fail(e)

    if not result.evaluations:
        console.print(f"[yellow]No enabled configs for {game_id} ({environment}).[/yellow]")
        return

    table = Table(title=f"{game_id} ({environment}) at {format_instant(context.evaluation_instant)}")
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    table.add_column("Source")

    for evaluation in result.evaluations:
        if evaluation.source == "rule":
            source = f"[green]rule {evaluation.matched_rule_priority}[/green]"
        else:
            source = "[dim]default[/dim]"
        table.add_row(evaluation.key, format_value(evaluation.value), source)

    console.print(table)


@app.command()
def version():
    """Show version information."""
    console.print(f"[bold]{PRODUCT_NAME}[/bold]")
    console.print(f"[bold]Version:[/] {PRODUCT_VERSION}")
    console.print(f"[bold]Tagline:[/] {PRODUCT_TAGLINE}")


if __name__ == "__main__":
    app()
