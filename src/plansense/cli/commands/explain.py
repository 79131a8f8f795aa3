"""EXPLAIN analysis command."""

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
    report_error,
    styled_severity,
    write_output,
)
from plansense.engine import AnalysisService, ExplainReport
from plansense.exceptions import PlanSenseError
from plansense.output.renderers import OutputFormat, render

PLAN_COLUMNS = ("id", "select_type", "table", "type", "possible_keys", "key", "rows", "filtered", "Extra")


def register(app: typer.Typer) -> None:
    """Register the explain command on the given Typer app."""

    @app.command()
    def explain(
        ctx: typer.Context,
        explain_file: Annotated[
            Optional[Path],
            typer.Argument(
                help="File holding MySQL EXPLAIN text ('-' or omitted reads stdin)",
            ),
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
        fail_on: Annotated[
            FailOn,
            typer.Option("--fail-on", help="Exit with code 2 when suggestions at or above this severity exist"),
        ] = FailOn.none,
    ) -> None:
        """
        Analyze MySQL EXPLAIN text for performance issues.

        Accepts CSV, TSV, bordered table, vertical (\\G) and plain table output.

        Examples:

            $ mysql -e "EXPLAIN SELECT * FROM users WHERE email = 'a@b.c'" > explain.txt
            $ plansense explain explain.txt

            $ mysql -e "EXPLAIN SELECT ..." | plansense explain --json
        """
        if json_output and markdown_output:
            raise fail("Choose either --json or --markdown, not both")

        text = read_input(explain_file)
        try:
            report = AnalysisService(ctx.obj).analyze_explain(text)
        except PlanSenseError as e:
            raise report_error(e) from e

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


def _print_report(report: ExplainReport) -> None:
    console.print(f"[dim]Detected format: {report.format}[/dim]\n")

    table = Table(title="EXPLAIN")
    for column in PLAN_COLUMNS:
        table.add_column(column, style="cyan" if column == "table" else None)
    for row in report.rows:
        values = row.to_dict()
        table.add_row(*(escape(_display(values[c])) for c in PLAN_COLUMNS))
    console.print(table)
    console.print()

    if not report.suggestions:
        console.print(Panel(
            "[green]No performance issues found![/green]\n\n"
            f"Analyzed {len(report.rows)} row(s).",
            title="PlanSense",
            border_style="green",
        ))
        return

    console.print(f"[bold]Found {len(report.suggestions)} issue(s):[/bold]\n")
    for suggestion in report.suggestions:
        console.print(f"{styled_severity(suggestion.severity)} {escape(suggestion.title)}")
        console.print(f"   [dim]{escape(suggestion.description)}[/dim]")
        if suggestion.recommendation:
            console.print("\n   [bold]Fix:[/bold]")
            console.print(f"   [green]{escape(suggestion.recommendation)}[/green]")
        console.print()

    counts = report.counts()
    console.print(
        f"[dim]{counts['critical']} critical, {counts['warning']} warning(s), "
        f"{counts['info']} info[/dim]"
    )


def _display(value: object) -> str:
    return "NULL" if value is None else str(value)
