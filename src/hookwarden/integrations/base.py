"""Collaborator protocols consumed by the hook orchestrator.

The engine does not own commit-message grammar, policy decisions or
project-orchestrator messaging. It talks to them through these narrow
interfaces, with small default implementations in this package.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Protocol, runtime_checkable


@dataclass
class MessageValidation:
    """Result of validating one commit message."""

    valid: bool
    format: str | None = None
    """"bmad", "conventional" or None when invalid."""

    parsed: dict[str, Any] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class GateVerdict(str, Enum):
    """Policy gate decision."""

    PASS = "PASS"
    FAIL = "FAIL"
    WAIVED = "WAIVED"


@dataclass
class GateResult:
    """Policy gate evaluation of a hook's step results."""

    gate: GateVerdict
    validations: list[dict[str, Any]] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    waiver: str | None = None
    """Waiver reason when the verdict is WAIVED."""

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["gate"] = self.gate.value
        return data


@runtime_checkable
class MessageValidator(Protocol):
    """Validates commit message text."""

    def validate(self, text: str) -> MessageValidation:
        """Validate a commit message.

        Args:
            text: Full commit message (comment lines already stripped or not).

        Returns:
            MessageValidation with parsed fields when valid.
        """
        ...


@runtime_checkable
class PolicyGate(Protocol):
    """Turns accumulated step results into a PASS/FAIL/WAIVED verdict."""

    def evaluate(self, hook_type: str, context: dict[str, Any]) -> GateResult:
        """Evaluate a hook run.

        Args:
            hook_type: Lifecycle event name (e.g. "pre-push").
            context: ``{"results": {step_name: StepResult}, ...}`` plus
                hook-specific keys (branch, remote, message).

        Returns:
            GateResult with the verdict and per-step validations.
        """
        ...

    def report(self, result: GateResult) -> str:
        """Render a human-readable summary of a gate result."""
        ...


@runtime_checkable
class WorkflowNotifier(Protocol):
    """Best-effort delivery of workflow events to a project orchestrator."""

    async def notify(self, event_type: str, payload: dict[str, Any]) -> bool:
        """Send one event.

        Returns:
            True if delivered (or accepted), False otherwise. Must not raise
            for delivery failures.
        """
        ...

    async def close(self) -> None:
        """Release any held resources."""
        ...
