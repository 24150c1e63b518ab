"""Error handler: classification, bounded recovery, reporting and bypasses.

The orchestrator routes every exception a pipeline step raises through
:meth:`ErrorHandler.handle_hook_error`. The handler classifies it, tries
one registered recovery action (bounded per ``hook_type:category`` key and
suppressed while the circuit breaker is open), and builds a report with
remediation steps, bypass options and impact.
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from hookwarden.core.errors import (
    BypassMethod,
    BypassOptions,
    BypassRecord,
    ErrorClassification,
    ErrorClassifier,
    HookPhase,
    RecoveryResult,
    Severity,
)
from hookwarden.core.logging import get_logger
from hookwarden.execution.circuit_breaker import PersistentCircuitBreaker
from hookwarden.recovery.actions import RecoveryContext
from hookwarden.recovery.audit import BypassAuditLog
from hookwarden.recovery.registry import RecoveryRegistry
from hookwarden.recovery.remediation import assess_impact, build_remediation

_logger = get_logger("recovery")

BYPASS_METHODS: tuple[BypassMethod, ...] = (
    BypassMethod(
        name="development-mode",
        command="HOOKWARDEN_DEV_MODE=true git commit ...",
        description="Bypass validation in development mode",
    ),
    BypassMethod(
        name="emergency-override",
        command="HOOKWARDEN_GATE_WAIVER='<reason>' git commit ...",
        description="Emergency bypass with mandatory follow-up",
    ),
    BypassMethod(
        name="skip-hook",
        command="git commit --no-verify ...",
        description="Skip all hooks (use with extreme caution)",
    ),
)


@dataclass
class HookErrorOutcome:
    """Result of :meth:`ErrorHandler.handle_hook_error`."""

    classification: ErrorClassification
    recovery: RecoveryResult
    report: dict[str, Any]
    should_block: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "classification": self.classification.to_dict(),
            "recovery": self.recovery.to_dict(),
            "report": self.report,
            "should_block": self.should_block,
        }


class ErrorHandler:
    """Classifies hook errors and applies bounded automatic recovery."""

    def __init__(
        self,
        registry: RecoveryRegistry,
        circuit_breaker: PersistentCircuitBreaker,
        audit_log: BypassAuditLog,
        classifier: ErrorClassifier | None = None,
        max_recovery_attempts: int = 3,
        enable_auto_recovery: bool = True,
    ) -> None:
        self.registry = registry
        self.circuit_breaker = circuit_breaker
        self.audit_log = audit_log
        self.classifier = classifier or ErrorClassifier()
        self.max_recovery_attempts = max_recovery_attempts
        self.enable_auto_recovery = enable_auto_recovery
        self._recovery_attempts: dict[str, int] = {}

    def classify(self, error: Any, hook_type: str | None = None) -> ErrorClassification:
        return self.classifier.classify(error, hook_type)

    def recovery_attempts(self, key: str) -> int:
        return self._recovery_attempts.get(key, 0)

    def clear_recovery_attempts(self) -> None:
        self._recovery_attempts.clear()

    async def attempt_recovery(self, error: Any, context: RecoveryContext) -> RecoveryResult:
        """Try the registered recovery action for this error.

        Returns a ``successful=False`` result with a ``reason`` without acting
        when recovery is disabled, the error is not recoverable, the attempt
        cap for ``hook_type:category`` is reached, or the circuit is open.
        """
        if not self.enable_auto_recovery:
            return RecoveryResult(successful=False, reason="Auto-recovery disabled")

        classification = self.classify(error, context.hook_type)
        category = classification.category
        if not classification.recoverable:
            return RecoveryResult(
                successful=False,
                category=category,
                context=context.hook_type,
                reason="Error not recoverable",
            )

        key = f"{context.hook_type}:{category.value}"
        attempts = self._recovery_attempts.get(key, 0)
        if attempts >= self.max_recovery_attempts:
            _logger.warning("recovery.attempts_exhausted", key=key, attempts=attempts)
            return RecoveryResult(
                successful=False,
                category=category,
                context=context.hook_type,
                reason="Max recovery attempts exceeded",
                attempts=attempts,
            )

        if self.circuit_breaker.is_circuit_open():
            _logger.info("recovery.skipped_circuit_open", key=key)
            return RecoveryResult(
                successful=False,
                category=category,
                context=context.hook_type,
                reason="Circuit breaker open",
            )

        attempt_number = attempts + 1
        self._recovery_attempts[key] = attempt_number

        action = self.registry.find_for(category)
        if action is None:
            return RecoveryResult(
                successful=False,
                category=category,
                context=context.hook_type,
                attempt_number=attempt_number,
                reason="No recovery strategy available",
            )

        try:
            result = await action.apply(classification, context)
        except Exception as e:
            _logger.warning(
                "recovery.action_failed",
                action=action.name,
                key=key,
                error=str(e),
            )
            await asyncio.to_thread(self.circuit_breaker.record_failure)
            return RecoveryResult(
                successful=False,
                category=category,
                context=context.hook_type,
                attempt_number=attempt_number,
                reason="Recovery attempt failed",
                details=str(e),
            )

        result.category = category
        result.context = context.hook_type
        result.attempt_number = attempt_number
        if result.successful:
            del self._recovery_attempts[key]
            await asyncio.to_thread(self.circuit_breaker.reset_failure)
            _logger.info("recovery.succeeded", action=action.name, key=key)
        else:
            await asyncio.to_thread(self.circuit_breaker.record_failure)
            _logger.info("recovery.unsuccessful", action=action.name, reason=result.reason)
        return result

    def get_bypass_options(self, classification: ErrorClassification) -> BypassOptions:
        if classification.severity == Severity.NON_BLOCKING:
            return BypassOptions(
                available=False,
                reason="Non-blocking errors do not require bypass",
            )
        if classification.severity == Severity.BLOCKING and not classification.bypassable:
            return BypassOptions(
                available=False,
                reason="Critical blocking errors cannot be bypassed",
            )
        return BypassOptions(available=True, methods=list(BYPASS_METHODS))

    def generate_error_report(
        self,
        hook_type: str,
        classification: ErrorClassification,
        recovery: RecoveryResult | None = None,
    ) -> dict[str, Any]:
        report = {
            "hook_type": hook_type,
            "timestamp": datetime.now(UTC).isoformat(),
            "error": {
                "message": classification.message,
                "code": classification.code,
                "category": classification.category.value,
                "severity": classification.severity.value,
                "blocking_type": (
                    classification.blocking_type.value if classification.blocking_type else None
                ),
            },
            "classification": classification.to_dict(),
            "recovery": recovery.to_dict() if recovery else None,
            "remediation": build_remediation(classification, recovery),
            "bypass_options": self.get_bypass_options(classification).to_dict(),
            "impact": assess_impact(classification),
        }
        _logger.warning(
            "hook.error_report",
            hook_type=hook_type,
            category=classification.category.value,
            severity=classification.severity.value,
            message=classification.message[:500],
            auto_recovery=report["remediation"].get("auto_recovery", {}).get("status"),
        )
        return report

    async def record_bypass(
        self,
        hook_type: str,
        error_category: str,
        bypass_method: str,
        reason: str,
        error_severity: str | None = None,
        audit_trail: dict[str, Any] | None = None,
    ) -> BypassRecord:
        record = BypassRecord(
            hook_type=hook_type,
            error_category=error_category,
            bypass_method=bypass_method,
            reason=reason,
            error_severity=error_severity,
            user=os.environ.get("USER", "unknown"),
            audit_trail=dict(audit_trail or {}),
        )
        # The audit lock retries with sleeps; keep them off the event loop
        return await asyncio.to_thread(self.audit_log.append, record)

    def get_bypass_audit_trail(self) -> list[BypassRecord]:
        return self.audit_log.read_all()

    async def handle_hook_error(
        self,
        error: Any,
        hook_type: str,
        context: RecoveryContext | None = None,
    ) -> HookErrorOutcome:
        """Classify, try to recover and report one step failure."""
        context = context or RecoveryContext(hook_type=hook_type)
        context.hook_type = hook_type
        classification = self.classify(error, hook_type)
        recovery = await self.attempt_recovery(error, context)
        report = self.generate_error_report(hook_type, classification, recovery)
        should_block = classification.is_blocking and not recovery.successful

        # Failed recovery actions already counted against the breaker
        if (
            should_block
            and classification.hook_phase == HookPhase.PRE
            and recovery.attempt_number == 0
        ):
            await asyncio.to_thread(self.circuit_breaker.record_failure)

        return HookErrorOutcome(
            classification=classification,
            recovery=recovery,
            report=report,
            should_block=should_block,
        )
