"""Shared console handles and I/O helpers for the CLI commands."""

from __future__ import annotations

import sys
from enum import Enum
from pathlib import Path

import typer
from rich.console import Console
from rich.markup import escape

from plansense.exceptions import PlanSenseError
from plansense.explain.suggestions import Severity

console = Console()
error_console = Console(stderr=True)

SEVERITY_STYLES = {
    Severity.CRITICAL: "red bold",
    Severity.WARNING: "yellow",
    Severity.INFO: "blue",
}


class FailOn(str, Enum):
    """Severity at which a command exits with code 2."""

    critical = "critical"
    warning = "warning"
    none = "none"

    @property
    def severity(self) -> Severity | None:
        return None if self is FailOn.none else Severity(self.value)


def styled_severity(severity: Severity) -> str:
    style = SEVERITY_STYLES[severity]
    return f"[{style}]{severity.value.upper()}[/{style}]"


def fail(message: str, detail: str | None = None) -> typer.Exit:
    """Print `Error: <message>` to stderr and return the exit to raise."""
    error_console.print(f"[red]Error:[/red] {escape(message)}")
    if detail:
        error_console.print(f"\n[dim]{escape(detail)}[/dim]")
    return typer.Exit(code=1)


def report_error(error: PlanSenseError) -> typer.Exit:
    return fail(error.message, getattr(error, "detail", None))


def read_input(path: Path | None) -> str:
    """Read a file, or stdin when the path is None or '-'."""
    if path is None or str(path) == "-":
        try:
            return sys.stdin.read()
        except UnicodeDecodeError as e:
            raise fail("Cannot decode standard input as UTF-8", str(e)) from e
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise fail(f"Cannot read {path}: {e.strerror or e}") from e
    except UnicodeDecodeError as e:
        raise fail(f"Cannot decode {path} as UTF-8", str(e)) from e


def write_output(text: str, output_file: Path | None) -> None:
    """Write rendered output to a file, or stdout."""
    if output_file:
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(text, encoding="utf-8")
        error_console.print(f"[dim]Output written to {output_file}[/dim]")
    else:
        typer.echo(text)
