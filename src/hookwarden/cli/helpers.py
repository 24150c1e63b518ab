"""Shared utilities for hookwarden CLI commands.

- Output level and logging option state set by the global callbacks
- Repository discovery and engine construction
- ``run_hook``: the common driver every hook command goes through
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Literal, TypeVar

import typer
from rich.console import Console

from hookwarden.core.errors import ConfigurationError, LockTimeoutError
from hookwarden.core.logging import configure_logging, get_logger
from hookwarden.core.repository import Repository, discover_repository
from hookwarden.orchestrator import EngineState, HookOrchestrator

_logger = get_logger("cli")

T = TypeVar("T")

PERFORMANCE_HISTORY_LOCK = "performance-history"


class ErrorMessages:
    """User-facing CLI error strings."""

    NOT_A_REPOSITORY = "Not inside a git repository"
    CONFIG_LOAD_ERROR = "Error loading configuration"
    KEY_NOT_FOUND = "Key not found"


# =============================================================================
# Output level management
# =============================================================================


class OutputLevel(str, Enum):
    """Output verbosity level."""

    QUIET = "quiet"  # Verdict only
    NORMAL = "normal"
    VERBOSE = "verbose"  # Include passed/skipped step details


_output_level: OutputLevel = OutputLevel.NORMAL


def get_output_level() -> OutputLevel:
    return _output_level


def set_output_level(level: OutputLevel) -> None:
    global _output_level
    _output_level = level


def is_verbose() -> bool:
    return _output_level == OutputLevel.VERBOSE


def is_quiet() -> bool:
    return _output_level == OutputLevel.QUIET


# =============================================================================
# Logging configuration
# =============================================================================


@dataclass
class CliLoggingConfig:
    """Logging options collected from the global callbacks."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"
    file: Path | None = None
    format: Literal["json", "console", "both"] = "console"
    configured: bool = False


_log_config = CliLoggingConfig()


def set_log_level(level: str) -> None:
    _log_config.level = level.upper()  # type: ignore[assignment]


def set_log_file(path: Path | None) -> None:
    """Send logs to a file; JSON lines unless a format was chosen explicitly."""
    _log_config.file = path
    if path and _log_config.format == "console":
        _log_config.format = "json"


def set_log_format(fmt: str) -> None:
    _log_config.format = fmt.lower()  # type: ignore[assignment]


def get_log_config() -> CliLoggingConfig:
    return _log_config


def configure_global_logging(console: Console) -> None:
    """Configure logging once per process from the collected options.

    Raises:
        typer.Exit: If the options are inconsistent.
    """
    if _log_config.configured:
        return
    try:
        configure_logging(
            level=_log_config.level,
            format=_log_config.format,
            file_path=_log_config.file,
        )
        _log_config.configured = True
    except (ValueError, AttributeError) as e:
        console.print(f"[red]Logging configuration error:[/red] {e}")
        raise typer.Exit(2) from None


def reset_logging_state() -> None:
    """Reset CLI option state (primarily for testing)."""
    global _output_level, _repo_override
    _log_config.level = "WARNING"
    _log_config.file = None
    _log_config.format = "console"
    _log_config.configured = False
    _output_level = OutputLevel.NORMAL
    _repo_override = None


# =============================================================================
# Repository and engine
# =============================================================================

_repo_override: Path | None = None


def set_repo(path: Path | None) -> None:
    global _repo_override
    _repo_override = path


def resolve_repo(console: Console) -> Repository:
    """Repository layout from ``--repo`` or the working directory.

    Regular clones, linked worktrees and bare repositories are all accepted.

    Raises:
        typer.Exit: If no repository is found.
    """
    repository = discover_repository(_repo_override)
    if repository is None:
        location = _repo_override or Path.cwd()
        console.print(f"[red]{ErrorMessages.NOT_A_REPOSITORY}:[/red] {location}")
        raise typer.Exit(2)
    return repository


def create_engine(console: Console) -> EngineState:
    """Build the engine for the current repository.

    Raises:
        typer.Exit: If the repository or its configuration is invalid.
    """
    repository = resolve_repo(console)
    try:
        return EngineState.create(repository.root, repository=repository)
    except ConfigurationError as e:
        console.print(f"[red]{ErrorMessages.CONFIG_LOAD_ERROR}:[/red] {e}")
        raise typer.Exit(2) from None


def performance_history_path(state: EngineState) -> Path:
    return state.repository.resolve(state.config.paths.performance)


def run_hook(
    console: Console,
    invoke: Callable[[HookOrchestrator], Awaitable[T]],
) -> T:
    """Run hook entry points against the current repository.

    Performance history is loaded before and merged back after the run so
    that slow-run detection spans separate hook processes. The merge runs
    under the ``performance-history`` lock so overlapping hooks keep each
    other's records.
    """
    state = create_engine(console)
    history = performance_history_path(state)
    state.tracker.load_metrics(history)

    async def _run() -> T:
        try:
            return await invoke(HookOrchestrator(state))
        finally:
            await state.notifier.close()

    result = asyncio.run(_run())
    try:
        with state.locks.hold(PERFORMANCE_HISTORY_LOCK):
            state.tracker.save_history(history)
    except (OSError, LockTimeoutError) as e:
        _logger.warning("cli.metrics_export_failed", path=str(history), error=str(e))
    return result
