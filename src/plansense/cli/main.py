"""
PlanSense CLI - MySQL EXPLAIN and SQL tuning advisor.

Usage:
    plansense explain explain.txt
    plansense query "SELECT * FROM users"
    plansense rules
    plansense --help
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.table import Table

from plansense import __version__
from plansense.cli.commands import explain as explain_commands
from plansense.cli.commands import query as query_commands
from plansense.cli.console import console, report_error, styled_severity
from plansense.config import get_config, load_config_from_file
from plansense.exceptions import ConfigurationError
from plansense.explain.analyzer import ExplainAnalyzer
from plansense.sql.analyzer import QUERY_RULES

app = typer.Typer(
    name="plansense",
    help="MySQL EXPLAIN and SQL query tuning advisor",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"PlanSense version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log debug output to stderr."),
    ] = False,
    config_file: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="JSON or YAML configuration file (default: PLANSENSE_CONFIG_FILE or environment)",
        ),
    ] = None,
) -> None:
    """PlanSense - MySQL EXPLAIN and SQL query tuning advisor."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(levelname)s %(name)s: %(message)s",
        )

    try:
        ctx.obj = load_config_from_file(config_file) if config_file else get_config()
    except ConfigurationError as e:
        raise report_error(e) from e


explain_commands.register(app)
query_commands.register(app)


@app.command()
def rules(ctx: typer.Context) -> None:
    """
    List the plan and query rules.

    Plan rules disabled in the configuration are not shown.
    """
    console.print("[bold]Plan rules (EXPLAIN):[/bold]\n")

    table = Table()
    table.add_column("Rule ID", style="cyan")
    table.add_column("Severity")
    table.add_column("Description")
    for rule in ExplainAnalyzer(ctx.obj).rules:
        table.add_row(rule.rule_id, styled_severity(rule.severity), rule.description)
    console.print(table)
    console.print()

    console.print("[bold]Query rules (SQL text):[/bold]\n")

    table = Table()
    table.add_column("Type", style="cyan")
    table.add_column("Level")
    table.add_column("Trigger")
    for name, level, trigger in QUERY_RULES:
        table.add_row(name, styled_severity(level), trigger)
    console.print(table)


if __name__ == "__main__":
    app()
