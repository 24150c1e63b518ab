"""Structured logging infrastructure for hookwarden.

Provides structured logging using structlog with hook-specific context such
as the hook type, the execution id and a per-invocation run id. Supports
console and JSON output, optionally to a rotating log file.

Example usage:
    from hookwarden.core.logging import get_logger, configure_logging, with_context

    # Configure once at startup
    configure_logging(level="DEBUG", format="console")

    # Get a component-specific logger
    logger = get_logger("orchestrator")
    logger.info("pipeline.started", steps=4)

    # Correlate every entry of one hook run
    ctx = HookContext(hook_type="pre-commit")
    with with_context(ctx):
        logger.info("step.completed")  # includes hook_type and run_id
"""

from __future__ import annotations

import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Literal

import structlog
from structlog.types import EventDict, Processor, WrappedLogger

# Field names whose values are never written to logs
SENSITIVE_PATTERNS = frozenset({
    "api_key",
    "apikey",
    "token",
    "secret",
    "password",
    "credential",
    "authorization",
})

_current_log_path: Path | None = None


def get_current_log_path() -> Path | None:
    """Get the currently configured log file path, if file logging is on."""
    return _current_log_path


@dataclass(frozen=True)
class HookContext:
    """Immutable context correlating log entries of one hook invocation.

    Attributes:
        hook_type: Lifecycle event being processed (e.g. "pre-commit").
        run_id: Unique id of this process invocation.
        execution_id: Performance-tracker execution id, once one is open.
        repo: Repository root the hook runs against.
    """

    hook_type: str
    run_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    execution_id: str | None = None
    repo: str | None = None

    def with_execution(self, execution_id: str) -> HookContext:
        """Return a copy bound to a performance-tracker execution id."""
        return replace(self, execution_id=execution_id)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for logging (None values excluded)."""
        result: dict[str, Any] = {"hook_type": self.hook_type, "run_id": self.run_id}
        if self.execution_id is not None:
            result["execution_id"] = self.execution_id
        if self.repo is not None:
            result["repo"] = self.repo
        return result


_current_context: ContextVar[HookContext | None] = ContextVar(
    "hookwarden_context", default=None
)


def get_current_context() -> HookContext | None:
    """Get the current HookContext if set."""
    return _current_context.get()


@contextmanager
def with_context(ctx: HookContext) -> Iterator[HookContext]:
    """Bind a HookContext for the duration of a block.

    Args:
        ctx: The context to make current.

    Yields:
        The context that was set.
    """
    token = _current_context.set(ctx)
    try:
        yield ctx
    finally:
        _current_context.reset(token)


def _sanitize_value(key: str, value: Any) -> Any:
    key_lower = key.lower()
    for pattern in SENSITIVE_PATTERNS:
        if pattern in key_lower:
            return "[REDACTED]"
    return value


def _sanitize_event_dict(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor that redacts sensitive fields, one level deep."""
    sanitized: EventDict = {}
    for key, value in event_dict.items():
        if isinstance(value, dict):
            sanitized[key] = {k: _sanitize_value(k, v) for k, v in value.items()}
        else:
            sanitized[key] = _sanitize_value(key, value)
    return sanitized


def _add_timestamp(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    event_dict["timestamp"] = datetime.now(UTC).isoformat()
    return event_dict


def _add_context(
    logger: WrappedLogger,
    method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Structlog processor adding HookContext fields not already present."""
    ctx = get_current_context()
    if ctx is not None:
        for key, value in ctx.to_dict().items():
            event_dict.setdefault(key, value)
    return event_dict


class HookLogger:
    """Component-bound wrapper around a structlog logger.

    The underlying structlog logger is fetched on every call so loggers
    created at import time still honour a later configure_logging().
    """

    def __init__(self, component: str, **initial_context: Any) -> None:
        self._component = component
        self._context: dict[str, Any] = {"component": component, **initial_context}

    def _get_logger(self) -> structlog.stdlib.BoundLogger:
        logger: structlog.stdlib.BoundLogger = structlog.get_logger().bind(**self._context)
        return logger

    def bind(self, **context: Any) -> HookLogger:
        """Create a new logger with additional bound context."""
        return HookLogger(self._component, **{**self._context, **context})

    def debug(self, event: str, **kw: Any) -> None:
        self._get_logger().debug(event, **kw)

    def info(self, event: str, **kw: Any) -> None:
        self._get_logger().info(event, **kw)

    def warning(self, event: str, **kw: Any) -> None:
        self._get_logger().warning(event, **kw)

    def error(self, event: str, **kw: Any) -> None:
        self._get_logger().error(event, **kw)

    def critical(self, event: str, **kw: Any) -> None:
        self._get_logger().critical(event, **kw)

    def exception(self, event: str, **kw: Any) -> None:
        """Log an error with traceback; call from inside an exception handler."""
        self._get_logger().exception(event, **kw)


def _build_processors(renderer: Processor, include_timestamps: bool) -> list[Processor]:
    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        _sanitize_event_dict,
        _add_context,
    ]
    if include_timestamps:
        processors.append(_add_timestamp)
    processors.extend([
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        renderer,
    ])
    return processors


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING",
    format: Literal["json", "console", "both"] = "console",  # noqa: A002
    file_path: Path | None = None,
    max_file_size_mb: int = 10,
    backup_count: int = 3,
    include_timestamps: bool = True,
) -> None:
    """Configure hookwarden structured logging.

    Hooks write their user-facing report to stdout, so console logs go to
    stderr and default to WARNING.

    Args:
        level: Minimum log level to capture.
        format: "console" for human-readable stderr output, "json" for
            structured output (to file_path or stdout), "both" for console on
            stderr plus JSON to file_path.
        file_path: Optional log file. Required when format="both".
        max_file_size_mb: Size at which the log file rotates.
        backup_count: Number of rotated files kept.
        include_timestamps: Whether to add ISO8601 timestamps.

    Raises:
        ValueError: If format="both" but file_path is not provided.
    """
    global _current_log_path

    if format == "both" and file_path is None:
        raise ValueError("file_path is required when format='both'")

    log_level = getattr(logging, level)
    handlers: list[logging.Handler] = []

    if format in ("console", "both"):
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        handlers.append(console_handler)

    if format in ("json", "both"):
        if file_path:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            _current_log_path = file_path
            file_handler = RotatingFileHandler(
                file_path,
                maxBytes=max_file_size_mb * 1024 * 1024,
                backupCount=backup_count,
                encoding="utf-8",
            )
            file_handler.setLevel(log_level)
            handlers.append(file_handler)
        else:
            json_handler = logging.StreamHandler(sys.stdout)
            json_handler.setLevel(log_level)
            handlers.append(json_handler)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        root_logger.addHandler(handler)

    renderer: Processor
    if format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    # cache_logger_on_first_use=False keeps import-time loggers reconfigurable
    structlog.configure(
        processors=_build_processors(renderer, include_timestamps),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(component: str, **initial_context: Any) -> HookLogger:
    """Get a hookwarden logger for a component.

    Args:
        component: Component name (e.g. "orchestrator", "state.git").
        **initial_context: Additional context to bind.

    Returns:
        A HookLogger bound to the component.
    """
    return HookLogger(component, **initial_context)


__all__ = [
    "HookContext",
    "HookLogger",
    "SENSITIVE_PATTERNS",
    "configure_logging",
    "get_current_context",
    "get_current_log_path",
    "get_logger",
    "with_context",
]
