"""Inspection commands: metrics, audit and circuit."""

from __future__ import annotations

import json

import typer

from ..helpers import configure_global_logging, create_engine, performance_history_path
from ..output import console, print_json, render_audit, render_metrics


def metrics(
    json_output: bool = typer.Option(False, "--json", "-j", help="Output metrics as JSON"),
) -> None:
    """Show hook execution metrics and project commit statistics."""
    configure_global_logging(console)
    state = create_engine(console)
    state.tracker.load_metrics(performance_history_path(state))
    hook_metrics = state.tracker.get_metrics()

    project = None
    metrics_path = state.repo_root / state.config.paths.metrics
    if metrics_path.is_file():
        try:
            project = json.loads(metrics_path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            console.print(f"[yellow]Unreadable project metrics:[/yellow] {metrics_path}")

    if json_output:
        print_json({"hooks": hook_metrics, "project": project})
    else:
        render_metrics(hook_metrics, project)


def audit(
    limit: int = typer.Option(20, "--limit", "-n", min=1, help="Show the newest N entries"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output entries as JSON"),
) -> None:
    """Show the bypass audit log."""
    configure_global_logging(console)
    state = create_engine(console)
    records = state.audit_log.read_all()[-limit:]
    if json_output:
        print_json([r.to_dict() for r in records])
    else:
        render_audit(records)


def circuit(
    reset: bool = typer.Option(False, "--reset", help="Close the circuit and clear failures"),
    json_output: bool = typer.Option(False, "--json", "-j", help="Output state as JSON"),
) -> None:
    """Show (or reset) the persisted circuit breaker."""
    configure_global_logging(console)
    state = create_engine(console)
    breaker_doc = state.circuit_breaker
    breaker = breaker_doc.reset_failure() if reset else breaker_doc.get_state()

    if json_output:
        print_json(breaker.to_dict())
        return
    status = "[red]OPEN[/red]" if breaker.is_open else "[green]CLOSED[/green]"
    console.print(f"Circuit {status}  failures: {breaker.failures}/{breaker_doc.threshold}")
    if reset:
        console.print("[green]Circuit breaker reset[/green]")
