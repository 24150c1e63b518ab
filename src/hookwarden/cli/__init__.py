"""hookwarden CLI.

Package structure:
    cli/
    ├── __init__.py       # This file - app assembly and global options
    ├── helpers.py        # Option state, logging setup, engine construction
    ├── output.py         # Rich formatting
    └── commands/
        ├── hooks.py      # one command per git hook
        ├── status.py     # metrics, audit, circuit
        ├── config_cmd.py # validate-config
        └── state_cmd.py  # state get/put/list

Global options are processed by eager callbacks before any command runs;
each command then calls ``configure_global_logging`` once.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer

from hookwarden import __version__

from . import helpers as helpers
from .commands import (
    audit,
    circuit,
    commit_msg,
    metrics,
    post_checkout,
    post_commit,
    post_merge,
    pre_commit,
    pre_push,
    pre_rebase,
    pre_receive,
    state_app,
    validate_config,
)
from .helpers import (
    OutputLevel,
    configure_global_logging,
    set_log_file,
    set_log_format,
    set_log_level,
    set_output_level,
    set_repo,
)
from .output import console

app = typer.Typer(
    name="hookwarden",
    help="Git lifecycle hook execution engine",
    add_completion=False,
)


# =============================================================================
# Global option callbacks
# =============================================================================


def version_callback(value: bool) -> None:
    if value:
        console.print(f"hookwarden v{__version__}")
        raise typer.Exit()


def verbose_callback(value: bool) -> None:
    if value:
        set_output_level(OutputLevel.VERBOSE)


def quiet_callback(value: bool) -> None:
    if value:
        set_output_level(OutputLevel.QUIET)


def log_level_callback(value: str | None) -> str | None:
    if value:
        set_log_level(value)
    return value


def log_file_callback(value: Path | None) -> Path | None:
    if value:
        set_log_file(value)
    return value


def log_format_callback(value: str | None) -> str | None:
    if value:
        set_log_format(value)
    return value


def repo_callback(value: Path | None) -> Path | None:
    if value:
        set_repo(value)
    return value


@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        callback=verbose_callback,
        is_eager=True,
        help="Show every step, including passed and skipped ones",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet",
        "-q",
        callback=quiet_callback,
        is_eager=True,
        help="Show only the verdict",
    ),
    log_level: Annotated[
        str | None,
        typer.Option(
            "--log-level",
            "-L",
            callback=log_level_callback,
            help="Logging level (DEBUG, INFO, WARNING, ERROR)",
            envvar="HOOKWARDEN_LOG_LEVEL",
        ),
    ] = None,
    log_file: Annotated[
        Path | None,
        typer.Option(
            "--log-file",
            callback=log_file_callback,
            help="Path for log file output",
            envvar="HOOKWARDEN_LOG_FILE",
        ),
    ] = None,
    log_format: Annotated[
        str | None,
        typer.Option(
            "--log-format",
            callback=log_format_callback,
            help="Log format: json, console, or both",
            envvar="HOOKWARDEN_LOG_FORMAT",
        ),
    ] = None,
    repo: Annotated[
        Path | None,
        typer.Option(
            "--repo",
            "-C",
            callback=repo_callback,
            help="Repository to operate on (default: current directory)",
        ),
    ] = None,
) -> None:
    """hookwarden - validation and automation pipelines for git hooks."""


# =============================================================================
# Command registration
# =============================================================================

# Client-side hooks
app.command(name="pre-commit")(pre_commit)
app.command(name="commit-msg")(commit_msg)
app.command(name="pre-push")(pre_push)
app.command(name="post-commit")(post_commit)
app.command(name="post-merge")(post_merge)
app.command(name="pre-rebase")(pre_rebase)
app.command(name="post-checkout")(post_checkout)

# Server-side hooks
app.command(name="pre-receive")(pre_receive)

# Inspection and maintenance
app.command()(metrics)
app.command()(audit)
app.command()(circuit)
app.command(name="validate-config")(validate_config)
app.add_typer(state_app)


__all__ = [
    "app",
    "main",
    "console",
    "configure_global_logging",
    "OutputLevel",
]
