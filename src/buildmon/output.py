"""Rich-based output formatting for the CLI."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.table import Table

import buildmon.records as records
import buildmon.typescript as typescript
from buildmon.types import Severity
from buildmon.validation import ValidationResult

# Global console instances
console = Console()
err_console = Console(stderr=True)

SEVERITY_STYLE = {
    Severity.HIGH: "bold red",
    Severity.MEDIUM: "yellow",
    Severity.LOW: "blue",
}

TROUBLESHOOTING_STEPS = [
    "Run with --auto-fix flag to attempt automatic resolution",
    "Check that all required files exist",
    "Verify environment variables are properly set",
    "Ensure TypeScript configuration is correct",
    "Run individual validation steps to isolate the issue",
]


def render_json(data: Any) -> None:
    """Print a JSON document to stdout."""
    console.print_json(data=data)


def render_alert(alert: records.Alert) -> None:
    """Print the severity-coded marker line for a newly raised alert."""
    style = SEVERITY_STYLE[alert.severity]
    label = escape(f"[{alert.severity.value.upper()}]")
    console.print(f"[{style}]BUILD ALERT {label}:[/{style}] {escape(alert.message)}")


def render_step(message: str) -> None:
    console.print(f"[bold]{escape(message)}[/bold]")


def render_ok(message: str) -> None:
    console.print(f"  [green]✓[/green] {escape(message)}")


def render_info(message: str) -> None:
    console.print(f"  [dim]{escape(message)}[/dim]")


def render_validation_result(result: ValidationResult) -> None:
    """Print errors, warnings and suggestions of a validator result."""
    for error in result.errors:
        console.print(f"  [red]✗[/red] {escape(error)}")
    for warning in result.warnings:
        console.print(f"  [yellow]![/yellow] {escape(warning)}")
    if result.suggestions:
        console.print("  [dim]Suggestions:[/dim]")
        for suggestion in result.suggestions:
            console.print(f"    - {escape(suggestion)}")


def render_diagnostics(diagnostics: Sequence[typescript.TypeScriptDiagnostic]) -> None:
    """Print compiler diagnostics as a table."""
    if not diagnostics:
        return
    table = Table(show_header=True, header_style="bold", box=None)
    table.add_column("Location", style="dim")
    table.add_column("Code")
    table.add_column("Message")
    for d in diagnostics:
        table.add_row(
            escape(f"{d.file}:{d.line}:{d.column}"),
            f"TS{d.code}" if d.code else "",
            escape(d.message),
        )
    console.print(table)


def render_alerts_table(alerts: Sequence[records.Alert]) -> None:
    if not alerts:
        console.print("[dim]No alerts.[/dim]")
        return
    table = Table(show_header=True, header_style="bold", box=None)
    table.add_column("Time", style="dim")
    table.add_column("Severity")
    table.add_column("Type")
    table.add_column("Message")
    for alert in alerts:
        style = SEVERITY_STYLE[alert.severity]
        table.add_row(
            alert.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            f"[{style}]{alert.severity.value}[/{style}]",
            alert.type,
            escape(alert.message),
        )
    console.print(table)


def render_troubleshooting() -> None:
    """Print the troubleshooting block to stderr."""
    err_console.print()
    err_console.print("[bold]Troubleshooting steps:[/bold]")
    for i, step in enumerate(TROUBLESHOOTING_STEPS, start=1):
        err_console.print(f"   {i}. {step}")


def render_error(message: str) -> None:
    """Render error message."""
    err_console.print(f"[bold red]Error:[/bold red] {escape(message)}")
