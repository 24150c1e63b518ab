"""Exception hierarchy for hookwarden.

Exceptions are raised inside pipeline steps and collaborators and caught
at the step boundary, where they are classified and turned into step
results. They never escape an orchestrator entry point.
"""

from __future__ import annotations

from collections.abc import Sequence


class HookwardenError(Exception):
    """Base exception for hookwarden operations."""

    pass


class ConfigurationError(HookwardenError):
    """Raised when hook configuration cannot be loaded or is invalid."""

    pass


class CommandError(HookwardenError):
    """Raised when an external command exits unsuccessfully."""

    def __init__(
        self,
        message: str,
        args: Sequence[str] = (),
        exit_code: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.command = list(args)
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr
        self.code = exit_code


class CommandNotFoundError(CommandError):
    """Raised when the executable of a command does not exist."""

    pass


class CommandTimeoutError(CommandError):
    """Raised when a command exceeds its timeout.

    Timeouts are a distinct category and are never retried silently.
    """

    def __init__(self, args: Sequence[str], timeout: float) -> None:
        super().__init__(
            f"Command timed out after {timeout:.0f}s: {' '.join(args)}",
            args=args,
        )
        self.timeout = timeout
        self.code = "ETIMEDOUT"


class LockTimeoutError(HookwardenError):
    """Raised when a named lock cannot be acquired within its retry window.

    Classified as a recoverable warning: the operation can be retried once
    the competing process releases the lock.
    """

    def __init__(self, name: str, attempts: int) -> None:
        super().__init__(f"Failed to acquire lock for {name} after {attempts} attempts")
        self.name = name
        self.attempts = attempts
        self.code = "ELOCKED"


class StateStoreError(HookwardenError):
    """Raised when the key/value state store cannot complete an operation."""

    pass
