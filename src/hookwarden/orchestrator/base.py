"""Base mixin: construction, the step boundary, gate integration and result assembly.

Architecture:
    HookOrchestrator is composed from one mixin per pipeline family over
    OrchestratorBase, which is listed last so it is first in the MRO.

    Every entry point calls :meth:`OrchestratorBase._execute` with a
    pipeline coroutine. ``_execute`` opens a performance-tracker execution,
    binds a HookContext for logging, runs the pipeline and assembles the
    HookResult. Pipelines run each step through :meth:`_guard_step`, which
    converts any raised exception into a failed or warning step result via
    the error handler.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from hookwarden.core.constants import TRUNCATE_OUTPUT_CHARS
from hookwarden.core.errors import HookPhase
from hookwarden.core.logging import HookContext, get_logger, with_context
from hookwarden.core.results import (
    GatekeeperResult,
    HookResult,
    StepStatus,
    make_step_result,
)
from hookwarden.execution.commands import CommandResult
from hookwarden.integrations.base import GateResult, GateVerdict
from hookwarden.recovery.actions import RecoveryContext

from .engine import EngineState
from .helpers import truncate

_logger = get_logger("orchestrator")

GATE_STEP = "gatekeeper_integration"

_VERDICT_STATUS = {
    GateVerdict.PASS: StepStatus.PASSED,
    GateVerdict.FAIL: StepStatus.FAILED,
    GateVerdict.WAIVED: StepStatus.WAIVED,
}


@dataclass
class HookRun:
    """Mutable accumulator for one lifecycle event."""

    hook_type: str
    execution_id: str
    results: dict[str, Any] = field(default_factory=dict)
    success: bool = True
    branch: str | None = None
    remote: str | None = None
    error: str | None = None
    failure_report: dict[str, Any] | None = None
    remediation: dict[str, Any] | None = None
    recovery: dict[str, Any] | None = None
    bypass: dict[str, Any] | None = None
    gate: GateResult | None = None
    error_reports: list[dict[str, Any]] = field(default_factory=list)

    @property
    def is_pre(self) -> bool:
        return HookPhase.from_hook_type(self.hook_type) == HookPhase.PRE


class OrchestratorBase:
    """Base mixin holding the engine collaborators and shared pipeline plumbing."""

    def __init__(self, state: EngineState) -> None:
        self.state = state
        self.config = state.config
        self.git = state.git
        self.runner = state.runner
        self.repo_root = state.repo_root
        self.tracker = state.tracker
        self.error_handler = state.error_handler

    def get_metrics(self) -> dict[str, Any]:
        """Aggregate performance metrics of this process's hook runs."""
        return self.tracker.get_metrics()

    # =========================================================================
    # Execution lifecycle
    # =========================================================================

    async def _execute(
        self,
        hook_type: str,
        pipeline: Callable[[HookRun], Awaitable[None]],
        *,
        branch: str | None = None,
        remote: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> HookResult:
        execution_id = self.tracker.start(hook_type, context)
        run = HookRun(hook_type, execution_id, branch=branch, remote=remote)
        hook_context = HookContext(
            hook_type=hook_type,
            execution_id=execution_id,
            repo=str(self.repo_root),
        )

        with with_context(hook_context):
            _logger.info("hook.started", **(context or {}))
            try:
                await pipeline(run)
            except Exception as e:
                # Steps never raise; this is plumbing outside any step.
                _logger.exception("hook.unhandled_error", error=str(e))
                run.error = str(e)
                if run.is_pre:
                    run.success = False

            success = run.success if run.is_pre else True
            if not success and run.failure_report is None and run.error_reports:
                run.failure_report = {
                    "type": f"{hook_type.replace('-', '_')}_failure",
                    "timestamp": datetime.now(UTC).isoformat(),
                    "errors": run.error_reports,
                }

            outcome = self.tracker.end(execution_id, success)
            result = HookResult(
                hook_type=hook_type,
                success=success,
                duration=outcome.duration,
                results=run.results,
                execution_id=execution_id,
                branch=run.branch,
                remote=run.remote,
                error=run.error,
                failure_report=run.failure_report,
                remediation=run.remediation,
                recovery=run.recovery,
                bypass=run.bypass,
            )

            _logger.info(
                "hook.completed",
                success=success,
                duration_ms=round(outcome.duration, 1),
                failed_steps=result.failed_steps(),
                warning_steps=result.warning_steps(),
            )
            if not outcome.performance_threshold_met:
                _logger.warning(
                    "hook.slow",
                    duration_ms=round(outcome.duration, 1),
                    threshold_ms=self.tracker.performance_threshold,
                )
            if self.tracker.should_bypass_in_development():
                _logger.warning(
                    "hook.dev_bypass_suggested",
                    hint="Recent hook runs are slow; consider HOOKWARDEN_DEV_MODE shortcuts",
                )
            return result

    # =========================================================================
    # Step boundary
    # =========================================================================

    async def _guard_step(
        self,
        run: HookRun,
        step: str,
        operation: Callable[[], Awaitable[Any]],
        recovery_context: RecoveryContext | None = None,
    ) -> Any:
        """Run one step, converting any exception into a step result.

        The result is stored in ``run.results[step]`` and returned.
        """
        try:
            result = await operation()
        except Exception as e:
            result = await self._step_from_error(run, step, e, recovery_context)
        else:
            if result.status == StepStatus.FAILED:
                _logger.warning(
                    "pipeline.step_failed",
                    step=step,
                    message=result.message,
                    error=result.error,
                )
            else:
                _logger.debug("pipeline.step_completed", step=step, status=result.status.value)
        run.results[step] = result
        return result

    async def _step_from_error(
        self,
        run: HookRun,
        step: str,
        error: Exception,
        recovery_context: RecoveryContext | None,
    ) -> Any:
        try:
            outcome = await self.error_handler.handle_hook_error(
                error, run.hook_type, recovery_context
            )
        except Exception as handler_error:
            _logger.exception(
                "pipeline.error_handler_failed",
                step=step,
                error=str(error),
                handler_error=str(handler_error),
            )
            status = StepStatus.FAILED if run.is_pre else StepStatus.WARNING
            return make_step_result(step, status, error=str(error))

        classification = outcome.classification
        blocked = outcome.should_block and run.is_pre
        if blocked:
            run.error_reports.append(outcome.report)

        message = None
        if outcome.recovery.successful:
            message = f"Recovered by {outcome.recovery.action}: {outcome.recovery.details}"

        _logger.warning(
            "pipeline.step_error",
            step=step,
            category=classification.category.value,
            severity=classification.severity.value,
            blocked=blocked,
            recovered=outcome.recovery.successful,
        )
        return make_step_result(
            step,
            StepStatus.FAILED if blocked else StepStatus.WARNING,
            message=message,
            error=classification.message,
            category=classification.category.value,
        )

    def _skip(self, run: HookRun, step: str, message: str) -> Any:
        result = make_step_result(step, StepStatus.SKIPPED, message=message)
        run.results[step] = result
        return result

    # =========================================================================
    # Policy gate
    # =========================================================================

    async def _run_gate(self, run: HookRun, **context: Any) -> None:
        """Evaluate accumulated results with the policy gate."""
        if not self.config.enable_gatekeeper:
            self._skip(run, GATE_STEP, "Gatekeeper disabled")
            return
        await self._guard_step(run, GATE_STEP, lambda: self._evaluate_gate(run, context))

    async def _evaluate_gate(self, run: HookRun, context: dict[str, Any]) -> GatekeeperResult:
        gate = self.state.gate
        verdict = gate.evaluate(run.hook_type, {"results": dict(run.results), **context})
        run.gate = verdict

        if verdict.gate == GateVerdict.WAIVED:
            failed = [r for r in run.results.values() if r.status == StepStatus.FAILED]
            record = await self.error_handler.record_bypass(
                hook_type=run.hook_type,
                error_category=next((r.category for r in failed if r.category), "GATE_FAILURE"),
                bypass_method="gate-waiver",
                reason=verdict.waiver or "Gate waiver",
                audit_trail={
                    "timestamp": datetime.now(UTC).isoformat(),
                    "waived_errors": verdict.errors,
                },
            )
            run.bypass = record.to_dict()
            _logger.warning("gate.waived", reason=verdict.waiver, errors=len(verdict.errors))

        return GatekeeperResult(
            status=_VERDICT_STATUS[verdict.gate],
            message=f"Gate {verdict.gate.value}",
            gate=verdict.gate.value,
            validations=verdict.validations,
            errors=verdict.errors,
            warnings=verdict.warnings,
            waiver=verdict.waiver,
            report=gate.report(verdict),
        )

    def _aggregate_success(self, run: HookRun) -> bool:
        """Pre-hook success: every step ok, unless the gate waived the failures."""
        if run.gate is not None and run.gate.gate == GateVerdict.WAIVED:
            return True
        return all(result.status.is_ok for result in run.results.values())

    # =========================================================================
    # Shared I/O helpers
    # =========================================================================

    async def _run_tool(
        self,
        command: list[str],
        timeout: float,
        *,
        check: bool = False,
    ) -> CommandResult:
        return await self.runner.run(command, cwd=self.repo_root, timeout=timeout, check=check)

    async def _read_journal(self) -> str | None:
        return await self.state.journal.read(self.config.paths.journal)

    @staticmethod
    def _clip(text: str) -> str:
        return truncate(text, TRUNCATE_OUTPUT_CHARS)
