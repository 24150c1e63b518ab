"""Default policy gate.

Rules:
- every failed step becomes a gate error;
- with ``HOOKWARDEN_GATE_WAIVER=<reason>`` set, failures are WAIVED unless
  one of them carries a hard-blocking category;
- otherwise any failure means FAIL, and no failure means PASS.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any

from hookwarden.core.errors import ErrorCategory
from hookwarden.core.logging import get_logger
from hookwarden.core.results import StepStatus
from hookwarden.integrations.base import GateResult, GateVerdict

_logger = get_logger("integrations.gatekeeper")

WAIVER_ENV_VAR = "HOOKWARDEN_GATE_WAIVER"
GATE_STEP = "gatekeeper_integration"

HARD_CATEGORIES: frozenset[str] = frozenset({
    ErrorCategory.TEST_FAILURE.value,
    ErrorCategory.BUILD_FAILURE.value,
    ErrorCategory.SECURITY_VULNERABILITY.value,
    ErrorCategory.INVALID_COMMIT_MESSAGE.value,
    ErrorCategory.SYNTAX_ERROR.value,
    ErrorCategory.UNKNOWN_ERROR.value,
})
"""Categories a waiver cannot override."""


class RuleBasedGate:
    """PolicyGate that decides from step statuses and an env waiver."""

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env = env

    def _waiver_reason(self) -> str | None:
        env = os.environ if self._env is None else self._env
        reason = env.get(WAIVER_ENV_VAR, "").strip()
        return reason or None

    def evaluate(self, hook_type: str, context: dict[str, Any]) -> GateResult:
        results = context.get("results", {})
        validations: list[dict[str, Any]] = []
        errors: list[str] = []
        warnings: list[str] = []
        hard_failure = False

        for name, step in results.items():
            if name == GATE_STEP:
                continue
            validations.append({"check": name, "status": step.status.value})
            if step.status == StepStatus.FAILED:
                detail = step.error or step.message or "failed"
                errors.append(f"{name}: {detail}")
                if step.category in HARD_CATEGORIES:
                    hard_failure = True
            elif step.status == StepStatus.WARNING:
                warnings.append(f"{name}: {step.message or step.error or 'warning'}")

        if not errors:
            verdict = GateVerdict.PASS
            waiver = None
        else:
            waiver = self._waiver_reason()
            if waiver and not hard_failure:
                verdict = GateVerdict.WAIVED
            else:
                if waiver:
                    warnings.append("Waiver ignored: a hard-blocking check failed")
                verdict = GateVerdict.FAIL
                waiver = None

        _logger.info(
            "gate.evaluated",
            hook_type=hook_type,
            gate=verdict.value,
            errors=len(errors),
            warnings=len(warnings),
        )
        return GateResult(
            gate=verdict,
            validations=validations,
            errors=errors,
            warnings=warnings,
            waiver=waiver,
        )

    def report(self, result: GateResult) -> str:
        lines = [f"Gate: {result.gate.value}"]
        if result.waiver:
            lines.append(f"Waiver: {result.waiver}")
        lines += [f"  ERROR   {e}" for e in result.errors]
        lines += [f"  WARNING {w}" for w in result.warnings]
        passed = sum(1 for v in result.validations if v["status"] != StepStatus.FAILED.value)
        lines.append(f"{passed}/{len(result.validations)} checks passed")
        return "\n".join(lines)
