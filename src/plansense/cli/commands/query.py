"""SQL text analysis command."""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from plansense.cli.console import (
    FailOn,
    console,
    fail,
    read_input,
    styled_severity,
    write_output,
)
from plansense.engine import AnalysisService, QueryReport
from plansense.output.renderers import OutputFormat, render


def register(app: typer.Typer) -> None:
    """Register the query command on the given Typer app."""

    @app.command()
    def query(
        ctx: typer.Context,
        sql: Annotated[
            Optional[str],
            typer.Argument(help="SQL statement ('-' or omitted reads stdin)"),
        ] = None,
        sql_file: Annotated[
            Optional[Path],
            typer.Option("--file", "-f", help="Read the SQL statement from a file"),
        ] = None,
        json_output: Annotated[
            bool,
            typer.Option("--json", "-j", help="Output results as JSON"),
        ] = False,
        markdown_output: Annotated[
            bool,
            typer.Option("--markdown", "-m", help="Output results as Markdown"),
        ] = False,
        output_file: Annotated[
            Optional[Path],
            typer.Option("--output", "-o", help="Write JSON/Markdown output to a file"),
        ] = None,
        rewrite: Annotated[
            bool,
            typer.Option("--rewrite/--no-rewrite", help="Propose a rewritten query"),
        ] = True,
        fail_on: Annotated[
            FailOn,
            typer.Option("--fail-on", help="Exit with code 2 when suggestions at or above this severity exist"),
        ] = FailOn.none,
    ) -> None:
        """
        Analyze a SQL statement and suggest tuning changes.

        The statement is decomposed heuristically; no database connection
        is made.

        Examples:

            $ plansense query "SELECT * FROM users WHERE email LIKE '%@example.com'"
            $ plansense query --file slow_query.sql --markdown
        """
        if json_output and markdown_output:
            raise fail("Choose either --json or --markdown, not both")
        if sql is not None and sql_file is not None:
            raise fail("Pass the SQL as an argument or with --file, not both")

        if sql_file is not None:
            text = read_input(sql_file)
        elif sql is None or sql == "-":
            text = read_input(None)
        else:
            text = sql

        if not text.strip():
            raise fail("No SQL statement provided")

        report = AnalysisService(ctx.obj).analyze_query(text, rewrite=rewrite)

        if json_output:
            if output_file:
                write_output(render(report, OutputFormat.JSON), output_file)
            else:
                console.print_json(render(report, OutputFormat.JSON))
        elif markdown_output:
            write_output(render(report, OutputFormat.MARKDOWN), output_file)
        else:
            _print_report(report)

        threshold = fail_on.severity
        if threshold is not None and report.at_or_above(threshold):
            raise typer.Exit(code=2)


def _print_report(report: QueryReport) -> None:
    info = report.query_info

    summary = Table(show_header=False, box=None)
    summary.add_column(style="bold")
    summary.add_column()
    summary.add_row("Statement", info.type.value)
    summary.add_row("Tables", escape(", ".join(info.tables)) or "-")
    if info.columns:
        summary.add_row("Columns", escape(", ".join(info.columns)))
    if info.joins:
        summary.add_row(
            "Joins",
            escape(", ".join(f"{j.type.value} {j.table}" for j in info.joins)),
        )
    if info.where_conditions:
        summary.add_row(
            "WHERE",
            escape(" ".join(f"{c.column} {c.operator} {c.value}" for c in info.where_conditions)),
        )
    if info.subqueries:
        summary.add_row("Subqueries", str(len(info.subqueries)))
    console.print(Panel(summary, title="Query", border_style="cyan"))
    console.print()

    if not report.suggestions:
        console.print("[green]No tuning suggestions.[/green]\n")
    else:
        console.print(f"[bold]{len(report.suggestions)} suggestion(s):[/bold]\n")
        for suggestion in report.suggestions:
            impact = f" [dim](impact: {suggestion.impact.value})[/dim]" if suggestion.impact else ""
            console.print(
                f"{styled_severity(suggestion.level)} {escape(suggestion.type)}: "
                f"{escape(suggestion.description)}{impact}"
            )
            console.print(f"   {escape(suggestion.suggestion)}")
            if suggestion.example:
                console.print(f"   [green]{escape(suggestion.example)}[/green]")
            console.print()

    optimized = report.optimized
    if optimized is None or not optimized.changes:
        return

    changes = Table(title=f"Rewrite (estimated improvement {optimized.estimated_improvement}%)")
    changes.add_column("Kind", style="cyan")
    changes.add_column("Change")
    for change in optimized.changes:
        changes.add_row(change.kind.value, escape(change.description))
    console.print(changes)

    if optimized.changed:
        console.print(Panel(escape(optimized.optimized.strip()), title="Optimized query", border_style="green"))
