"""Commit-msg pipeline mixin.

Steps: bypass -> message_validation -> context_validation ->
gatekeeper_integration.

Bypasses are honored before validation results count: in development mode
a ``WIP:``/``TEMP:``/``DEV:`` prefix or an emergency/hotfix mention skips
enforcement, and ``HOOKWARDEN_BYPASS_COMMIT_MSG=true`` does so in any mode.
Every bypass is written to the audit log.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from hookwarden.core.errors import ErrorCategory
from hookwarden.core.logging import get_logger
from hookwarden.core.results import (
    BypassResult,
    ContextValidationResult,
    HookResult,
    MessageValidationResult,
    StepStatus,
)
from hookwarden.integrations.base import GateVerdict, MessageValidation
from hookwarden.integrations.message_validator import VALID_PERSONAS
from hookwarden.recovery.actions import RecoveryContext

from .helpers import extract_persona, personas_compatible, step_id_is_sane

if TYPE_CHECKING:
    from .base import HookRun
    from .protocol import OrchestratorProtocol

_logger = get_logger("orchestrator.commit_msg")

BYPASS_ENV_VAR = "HOOKWARDEN_BYPASS_COMMIT_MSG"
DEV_PREFIXES = ("WIP:", "TEMP:", "DEV:")
EMERGENCY_KEYWORDS = ("emergency", "hotfix")


class CommitMsgMixin:
    """Provides ``execute_commit_msg``."""

    async def execute_commit_msg(self: OrchestratorProtocol, message: str) -> HookResult:
        """Validate a commit message."""

        async def pipeline(run: HookRun) -> None:
            recovery_context = RecoveryContext(hook_type=run.hook_type, commit_message=message)
            bypass = await self._guard_step(
                run, "bypass", lambda: self._check_bypass(run, message), recovery_context
            )
            bypassed = isinstance(bypass, BypassResult) and bypass.bypassed

            validation: MessageValidationResult = await self._guard_step(
                run,
                "message_validation",
                lambda: self._validate_message(message, bypassed),
                recovery_context,
            )

            if validation.valid and validation.format == "bmad":
                await self._guard_step(
                    run,
                    "context_validation",
                    lambda: self._validate_commit_context(validation.parsed),
                    recovery_context,
                )
            else:
                self._skip(
                    run,
                    "context_validation",
                    "Context validation applies to structured messages only",
                )

            if validation.valid:
                await self._run_gate(run, message=message, parsed=validation.parsed)
            else:
                self._skip(run, "gatekeeper_integration", "Message invalid")

            if bypassed:
                run.success = True
                return

            failed = {
                name for name in ("context_validation", "gatekeeper_integration")
                if run.results[name].status == StepStatus.FAILED
            }
            gate_waived = run.gate is not None and run.gate.gate == GateVerdict.WAIVED
            run.success = validation.valid and (not failed or gate_waived)
            if not run.success:
                run.remediation = self._commit_msg_remediation(validation, run)

        return await self._execute("commit-msg", pipeline, context={"message_length": len(message)})

    async def _validate_message(
        self: OrchestratorProtocol,
        message: str,
        bypassed: bool,
    ) -> MessageValidationResult:
        return _validation_step(self.state.message_validator.validate(message), bypassed)

    async def _check_bypass(self: OrchestratorProtocol, run: HookRun, message: str) -> BypassResult:
        bypass_type: str | None = None
        reason: str | None = None
        development_mode = self.config.development_mode

        if development_mode and message.startswith(DEV_PREFIXES):
            bypass_type = "prefix"
            reason = "Development mode bypass with WIP/TEMP/DEV prefix"
        elif development_mode and any(k in message.lower() for k in EMERGENCY_KEYWORDS):
            bypass_type = "emergency"
            reason = "Emergency/hotfix bypass in development mode"
        elif os.environ.get(BYPASS_ENV_VAR, "").lower() == "true":
            bypass_type = "environment"
            reason = f"Environment variable bypass ({BYPASS_ENV_VAR}=true)"

        if bypass_type is None:
            return BypassResult(status=StepStatus.SKIPPED, message="No bypass requested")

        audit_trail = {
            "timestamp": datetime.now(UTC).isoformat(),
            "original_message": message,
            "development_mode": development_mode,
            "bypass_type": bypass_type,
        }
        record = await self.error_handler.record_bypass(
            hook_type=run.hook_type,
            error_category=ErrorCategory.INVALID_COMMIT_MESSAGE.value,
            bypass_method=bypass_type,
            reason=reason or "",
            audit_trail=audit_trail,
        )
        run.bypass = record.to_dict()
        _logger.warning("commit_msg.bypassed", bypass_type=bypass_type, reason=reason)
        return BypassResult(
            status=StepStatus.WAIVED,
            message=reason,
            bypassed=True,
            bypass_type=bypass_type,
            reason=reason,
            audit_trail=audit_trail,
        )

    async def _validate_commit_context(
        self: OrchestratorProtocol,
        parsed: dict[str, Any],
    ) -> ContextValidationResult:
        persona = parsed.get("persona")
        step_id = parsed.get("step_id")
        journal = self.config.paths.journal
        content = await self._read_journal()
        if content is None:
            return ContextValidationResult(
                status=StepStatus.WARNING,
                message=f"{journal} not found - consider creating it for better traceability",
                persona=persona,
                step_id=step_id,
            )

        issues: list[str] = []
        current = extract_persona(content)
        if not personas_compatible(current, persona):
            issues.append(f"Persona {persona} does not follow current persona {current}")
        if step_id and not step_id_is_sane(content, step_id):
            issues.append(f"Step ID {step_id} does not follow the recorded progression")

        return ContextValidationResult(
            status=StepStatus.WARNING if issues else StepStatus.PASSED,
            message=(
                "Context may be inconsistent with commit message"
                if issues else "Context validation passed"
            ),
            journal_updated=True,
            persona=persona,
            step_id=step_id,
            issues=issues,
        )

    def _commit_msg_remediation(
        self: OrchestratorProtocol,
        validation: MessageValidationResult,
        run: HookRun,
    ) -> dict[str, Any]:
        steps: list[str] = []
        examples: list[str] = []
        quick_fixes: list[str] = []

        if not validation.valid:
            steps.append(
                "Fix commit message format to match [PERSONA] [STEP-ID] Description"
                " or conventional commits"
            )
            examples += [
                "[DEVELOPER] [STEP-001] Implement user authentication",
                "[ARCHITECT] [ARCH-042] Design database schema",
                "feat(auth): add user login functionality",
            ]
            quick_fixes.append("Use format: [PERSONA] [STEP-ID] Description")
            if any("persona" in e.lower() for e in validation.errors):
                quick_fixes.append(f"Valid personas: {', '.join(VALID_PERSONAS)}")

        if run.results["context_validation"].status == StepStatus.FAILED:
            steps.append(f"Update {self.config.paths.journal} to reflect current work")
            quick_fixes.append("Ensure persona in commit matches current context")

        if self.config.development_mode:
            quick_fixes.append(
                "Development mode: use WIP:, TEMP: or DEV: prefix to bypass validation"
            )
            quick_fixes.append('Emergency: use "emergency" or "hotfix" in the message to bypass')

        errors = list(validation.errors)
        if not errors and validation.error:
            errors.append(validation.error)
        return {
            "errors": errors,
            "steps": steps,
            "examples": examples,
            "quick_fixes": quick_fixes,
        }


def _validation_step(validation: MessageValidation, bypassed: bool) -> MessageValidationResult:
    if validation.valid:
        status = StepStatus.WARNING if validation.warnings else StepStatus.PASSED
        message = "; ".join(validation.warnings) or f"Valid {validation.format} message"
    else:
        status = StepStatus.WAIVED if bypassed else StepStatus.FAILED
        message = "Commit message validation failed"
    return MessageValidationResult(
        status=status,
        message=message,
        category=None if validation.valid else ErrorCategory.INVALID_COMMIT_MESSAGE.value,
        valid=validation.valid,
        format=validation.format,
        parsed=validation.parsed,
        errors=validation.errors,
    )
