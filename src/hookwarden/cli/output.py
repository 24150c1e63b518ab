"""Rich output formatting for the hookwarden CLI.

Hooks print a short verdict table to stdout; ``--json`` replaces it with
the serialized HookResult. Logs go to stderr (see core.logging), so JSON
output stays parseable.
"""

from __future__ import annotations

import json
from typing import Any

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from hookwarden.core.errors import BypassRecord
from hookwarden.core.results import HookResult, StepStatus

console = Console()


class StatusColors:
    """Color mapping for step statuses."""

    STEP_STATUS: dict[StepStatus, str] = {
        StepStatus.PASSED: "green",
        StepStatus.FAILED: "red",
        StepStatus.WARNING: "yellow",
        StepStatus.SKIPPED: "dim",
        StepStatus.WAIVED: "magenta",
    }

    @classmethod
    def get_step_color(cls, status: StepStatus) -> str:
        return cls.STEP_STATUS.get(status, "white")


def format_status(status: StepStatus) -> str:
    color = StatusColors.get_step_color(status)
    return f"[{color}]{status.value.upper()}[/{color}]"


def format_duration(milliseconds: float) -> str:
    if milliseconds < 1000:
        return f"{milliseconds:.0f}ms"
    return f"{milliseconds / 1000:.1f}s"


def print_json(data: Any) -> None:
    """Write JSON to stdout, bypassing Rich wrapping and markup."""
    typer.echo(json.dumps(data, indent=2, default=str))


def render_hook_result(result: HookResult, *, verbose: bool = False, quiet: bool = False) -> None:
    """Render a hook verdict, its steps and any remediation."""
    verdict = "[green]PASSED[/green]" if result.success else "[red]BLOCKED[/red]"
    console.print(
        f"[bold]{result.hook_type}[/bold] {verdict} "
        f"[dim]({format_duration(result.duration)})[/dim]"
    )
    if quiet:
        return

    table = Table(show_header=True, header_style="bold", box=None, pad_edge=False)
    table.add_column("Step")
    table.add_column("Status")
    table.add_column("Details", overflow="fold")
    for name, step in result.results.items():
        if not verbose and step.status in (StepStatus.PASSED, StepStatus.SKIPPED):
            details = ""
        else:
            details = step.error or step.message or ""
            if step.message and step.error and step.message != step.error:
                details = f"{step.message}: {step.error}"
        table.add_row(name, format_status(step.status), details)
    console.print(table)

    if result.error:
        console.print(f"[red]Error:[/red] {result.error}")
    if result.bypass:
        console.print(
            f"[magenta]Bypass recorded:[/magenta] {result.bypass.get('bypass_method')} "
            f"- {result.bypass.get('reason')}"
        )
    if result.remediation:
        _render_remediation(result.remediation)
    if result.recovery:
        _render_recovery(result.recovery)


def _render_remediation(remediation: dict[str, Any]) -> None:
    lines: list[str] = []
    for error in remediation.get("errors", []):
        lines.append(f"[red]-[/red] {error}")
    for step in remediation.get("steps", []):
        lines.append(f"- {step}")
    for command in remediation.get("commands", []):
        lines.append(f"  [cyan]$ {command}[/cyan]")
    for example in remediation.get("examples", []):
        lines.append(f"  [dim]e.g.[/dim] {example}")
    for fix in remediation.get("quick_fixes", []):
        lines.append(f"[yellow]*[/yellow] {fix}")
    if lines:
        console.print(Panel("\n".join(lines), title="How to fix", border_style="yellow"))


def _render_recovery(recovery: dict[str, Any]) -> None:
    lines = [
        f"[cyan]$ {rec['command']}[/cyan] [dim]({rec['priority']})[/dim]\n"
        f"  {rec['description']}. [yellow]{rec['warning']}[/yellow]"
        for rec in recovery.get("rollback_recommendations", [])
    ]
    troubleshooting = recovery.get("troubleshooting", {})
    for step in troubleshooting.get("diagnostic_steps", []):
        lines.append(f"- {step}")
    console.print(
        Panel(
            "\n".join(lines),
            title=f"Recovery: {troubleshooting.get('failure_type', 'unknown')}",
            border_style="red",
        )
    )


def render_metrics(metrics: dict[str, Any], project: dict[str, Any] | None) -> None:
    table = Table(title="Hook executions", show_header=True, header_style="bold")
    table.add_column("Hook")
    table.add_column("Runs", justify="right")
    table.add_column("Avg", justify="right")
    table.add_column("Success", justify="right")
    for hook_type, stats in metrics.get("by_hook_type", {}).items():
        table.add_row(
            hook_type,
            str(stats["count"]),
            format_duration(stats["average_duration"]),
            f"{stats['success_rate']:.0%}",
        )
    console.print(table)
    console.print(
        f"Total: {metrics['total_executions']}  "
        f"avg {format_duration(metrics['average_duration'])}  "
        f"within threshold {metrics['performance_threshold_met_rate']:.0%}"
    )
    for optimization in metrics.get("optimizations", [])[-3:]:
        console.print(f"[yellow]Optimize {optimization['event_type']}:[/yellow]")
        for recommendation in optimization.get("recommendations", []):
            console.print(f"  - {recommendation}")
    if project:
        console.print(
            f"\nProject: {project.get('total_commits', 0)} commits, "
            f"+{project.get('total_lines_added', 0)}/-{project.get('total_lines_deleted', 0)} lines"
        )


def render_audit(records: list[BypassRecord]) -> None:
    if not records:
        console.print("[dim]No bypasses recorded[/dim]")
        return
    table = Table(title="Bypass audit log", show_header=True, header_style="bold")
    table.add_column("Time")
    table.add_column("Hook")
    table.add_column("Method")
    table.add_column("Category")
    table.add_column("User")
    table.add_column("Reason", overflow="fold")
    for record in records:
        table.add_row(
            record.timestamp[:19],
            record.hook_type,
            record.bypass_method,
            record.error_category,
            record.user,
            record.reason,
        )
    console.print(table)
