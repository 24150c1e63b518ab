"""Data models for error classification, recovery and bypass auditing.

This module provides:
- ErrorClassification: severity/category verdict for one error occurrence
- RecoveryResult: outcome of one automatic recovery attempt
- BypassOptions: which bypass methods are offered for a classification
- BypassRecord: immutable audit entry for a granted bypass
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from typing import Any

from .codes import BlockingType, ErrorCategory, HookPhase, Severity


def _utc_now() -> str:
    return datetime.now(UTC).isoformat()


@dataclass(frozen=True)
class ErrorClassification:
    """Deterministic classification of an error raised during a hook.

    Recomputed per occurrence from the error text/code and the hook phase;
    never persisted.
    """

    category: ErrorCategory
    severity: Severity
    blocking_type: BlockingType | None
    """HARD or SOFT for blocking/warning errors, None for non-blocking."""

    recoverable: bool
    bypassable: bool
    message: str = ""
    code: str | int | None = None
    hook_phase: HookPhase = HookPhase.PRE

    @property
    def is_blocking(self) -> bool:
        return self.severity == Severity.BLOCKING

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "blocking_type": self.blocking_type.value if self.blocking_type else None,
            "recoverable": self.recoverable,
            "bypassable": self.bypassable,
            "message": self.message,
            "code": self.code,
            "hook_phase": self.hook_phase.value,
        }


@dataclass
class RecoveryResult:
    """Result of an automatic recovery attempt.

    ``successful=False`` with a ``reason`` is the no-op result returned when
    recovery is disabled, not applicable, or out of attempts.
    """

    successful: bool
    category: ErrorCategory | None = None
    context: str | None = None
    attempt_number: int = 0
    action: str | None = None
    details: str | None = None
    reason: str | None = None
    attempts: int | None = None
    """Attempts already made when the cap was hit."""

    data: dict[str, Any] = field(default_factory=dict)
    """Action-specific payload (fixed files, coverage gaps, ...)."""

    def to_dict(self) -> dict[str, Any]:
        result = asdict(self)
        result["category"] = self.category.value if self.category else None
        return result


@dataclass(frozen=True)
class BypassMethod:
    """One way of overriding a blocking failure."""

    name: str
    command: str
    description: str
    requires_audit: bool = True


@dataclass
class BypassOptions:
    """Bypass methods available for a classification."""

    available: bool
    reason: str | None = None
    methods: list[BypassMethod] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class BypassRecord:
    """Immutable audit entry written whenever a bypass is granted.

    Appended to the JSONL audit log and never deleted.
    """

    hook_type: str
    error_category: str
    bypass_method: str
    reason: str
    timestamp: str = field(default_factory=_utc_now)
    error_severity: str | None = None
    user: str = "unknown"
    audit_trail: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BypassRecord:
        known = {name for name in cls.__dataclass_fields__}
        return cls(**{k: v for k, v in data.items() if k in known})
