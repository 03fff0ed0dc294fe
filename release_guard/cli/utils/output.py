# release_guard/cli/utils/output.py
"""Output formatting utilities"""

import json
from typing import Any, List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from ...constants import EMOJI_ERROR, EMOJI_REWIND, EMOJI_SUCCESS, EMOJI_WARNING
from ...models import AttemptReport, AttemptState, Backup, GateReport, GateStatus, LedgerRecord

console = Console()

STATE_STYLES = {
    AttemptState.SUCCEEDED: ("green", EMOJI_SUCCESS),
    AttemptState.ROLLED_BACK: ("yellow", EMOJI_REWIND),
    AttemptState.ROLLBACK_FAILED: ("bold red", EMOJI_ERROR),
    AttemptState.REJECTED: ("red", EMOJI_ERROR),
    AttemptState.FAILED: ("red", EMOJI_ERROR),
}

GATE_STATUS_STYLES = {
    GateStatus.PASSED: "green",
    GateStatus.NO_DATA: "dim",
    GateStatus.PENDING: "yellow",
    GateStatus.FAILED: "red",
}


def format_attempt_report(report: AttemptReport) -> None:
    """Format and display the terminal report of an attempt"""
    attempt = report.attempt
    style, emoji = STATE_STYLES.get(attempt.state, ("blue", ""))

    lines = [
        f"[{style}]{emoji} {report.summary}[/{style}]",
        "",
        f"[bold]Attempt:[/bold] {attempt.id}",
        f"[bold]Environment:[/bold] {attempt.environment}",
        f"[bold]State:[/bold] {attempt.state.value}",
        f"[bold]Target tag:[/bold] {attempt.target_tag}",
        f"[bold]Previous tag:[/bold] {attempt.previous_tag or 'none'}",
        f"[bold]Units:[/bold] {', '.join(attempt.units)}",
    ]

    if attempt.backup_id:
        lines.append(f"[bold]Backup:[/bold] {attempt.backup_id}")
    if attempt.duration is not None:
        lines.append(f"[bold]Duration:[/bold] {attempt.duration:.1f}s")
    if attempt.commit_id:
        reported = {True: "reported", False: "not reported", None: "skipped"}[report.status_reported]
        lines.append(f"[bold]Commit:[/bold] {attempt.commit_id} ({reported})")

    if report.rollback:
        lines.append("")
        lines.append(
            f"[bold]Rollback:[/bold] restored {report.rollback.restored_tag} "
            f"from backup {report.rollback.backup_id}"
        )

    if attempt.error:
        lines.append("")
        lines.append("[bold]Root cause:[/bold]")
        for entry in attempt.error:
            lines.append(f"  [red]• {entry}[/red]")

    for warning in report.warnings:
        lines.append(f"[yellow]{EMOJI_WARNING} {warning}[/yellow]")

    if report.requires_operator:
        lines.append("")
        lines.append("[bold red]MANUAL INTERVENTION REQUIRED: the environment may be down[/bold red]")

    border = "green" if report.success else ("red" if report.requires_operator else "yellow")
    console.print(Panel("\n".join(lines), title="Release Attempt", border_style=border))

    if report.gate and not report.success:
        format_gate_report(report.gate)


def format_gate_report(report: GateReport) -> None:
    """Format and display per-unit gate verdicts"""
    table = Table(title=f"Quality Gate: {report.decision.value}", box=box.ROUNDED)
    table.add_column("Unit", style="cyan")
    table.add_column("Verdict", justify="center")
    table.add_column("Detail", style="dim")

    for result in report.results:
        style = GATE_STATUS_STYLES.get(result.status, "")
        table.add_row(result.unit_name, f"[{style}]{result.status.value}[/{style}]", result.detail or "")

    console.print(table)
    console.print(
        f"{len(report.failed_units)} unit(s) not acceptable, "
        f"{report.max_failures} tolerated"
    )


def format_ledger(record: LedgerRecord, environment: str) -> None:
    """Format and display the version ledger"""
    lines = [
        f"[bold]Environment:[/bold] {environment}",
        f"[bold]Current tag:[/bold] {record.current_tag or 'none'}",
        f"[bold]Stable tag:[/bold] {record.stable_tag or 'none'}",
    ]
    if record.last_attempt_id:
        lines.append(f"[bold]Last attempt:[/bold] {record.last_attempt_id}")
    if record.updated_at:
        lines.append(f"[bold]Updated:[/bold] {record.updated_at}")

    console.print(Panel("\n".join(lines), title="Version Ledger", border_style="blue"))


def format_backup_list(backups: List[Backup]) -> None:
    """Format and display backup records"""
    if not backups:
        console.print("[yellow]No backups found[/yellow]")
        return

    table = Table(title="Backups", box=box.SIMPLE)
    table.add_column("Backup", style="cyan")
    table.add_column("Attempt")
    table.add_column("Previous tag", style="green")
    table.add_column("Units", justify="right")
    table.add_column("Created", style="dim")

    for backup in backups:
        table.add_row(
            backup.id,
            backup.attempt_id,
            backup.previous_tag or "none",
            str(len(backup.unit_inventory)),
            backup.created_at.isoformat(timespec="seconds"),
        )

    console.print(table)


def format_json(data: Any, title: Optional[str] = None) -> None:
    """Format and display JSON data with syntax highlighting"""
    json_str = json.dumps(data, indent=2, default=str)
    syntax = Syntax(json_str, "json", theme="monokai", line_numbers=False)

    if title:
        console.print(Panel(syntax, title=title, border_style="blue"))
    else:
        console.print(syntax)


def print_error(message: str, error: Optional[Exception] = None) -> None:
    """Print error message"""
    if error:
        console.print(f"[red]Error:[/red] {message}: {str(error)}")
    else:
        console.print(f"[red]Error:[/red] {message}")


def print_warning(message: str) -> None:
    """Print warning message"""
    console.print(f"[yellow]Warning:[/yellow] {message}")


def print_success(message: str) -> None:
    """Print success message"""
    console.print(f"[green]{EMOJI_SUCCESS}[/green] {message}")
