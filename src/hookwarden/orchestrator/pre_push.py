"""Pre-push pipeline mixin.

Steps: full_test_suite -> build_validation -> security_audit ->
workflow_sync -> gatekeeper_integration.

A failed push carries a ``failure_report`` listing every failed and
warning check plus ``remediation`` steps, commands and resources.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from hookwarden.core.constants import CONFIG_FILE_NAME
from hookwarden.core.errors import CommandError, ErrorCategory
from hookwarden.core.logging import get_logger
from hookwarden.core.results import (
    BuildValidationResult,
    FullTestSuiteResult,
    HookResult,
    SecurityAuditResult,
    StepStatus,
    WorkflowSyncResult,
)
from hookwarden.recovery.actions import RecoveryContext, coverage_recommendations

from .helpers import (
    commit_personas,
    detect_phase,
    extract_persona,
    mentions_date,
    parse_coverage_total,
    parse_pytest_summary,
    parse_security_report,
    personas_compatible,
)

if TYPE_CHECKING:
    from .base import HookRun
    from .protocol import OrchestratorProtocol

_logger = get_logger("orchestrator.pre_push")

BLOCKING_SEVERITIES = ("critical", "high")


class PrePushMixin:
    """Provides ``execute_pre_push``."""

    async def execute_pre_push(self: OrchestratorProtocol, branch: str, remote: str) -> HookResult:
        """Validate commits about to be pushed from ``branch`` to ``remote``."""

        async def pipeline(run: HookRun) -> None:
            recovery_context = RecoveryContext(
                hook_type=run.hook_type,
                threshold=self.config.coverage_threshold,
            )
            await self._guard_step(
                run, "full_test_suite", lambda: self._run_full_test_suite(), recovery_context
            )
            await self._guard_step(
                run, "build_validation", lambda: self._validate_build(), recovery_context
            )
            await self._guard_step(
                run, "security_audit", lambda: self._run_security_audit(), recovery_context
            )
            await self._guard_step(
                run, "workflow_sync", lambda: self._sync_workflow(branch), recovery_context
            )
            await self._run_gate(run, branch=branch, remote=remote)

            run.success = self._aggregate_success(run)
            if not run.success:
                run.failure_report = _pre_push_failure_report(run.results)
                run.remediation = self._pre_push_remediation(run.results)

        return await self._execute(
            "pre-push",
            pipeline,
            branch=branch,
            remote=remote,
            context={"branch": branch, "remote": remote},
        )

    async def _run_full_test_suite(self: OrchestratorProtocol) -> FullTestSuiteResult:
        command = self.config.commands.full_tests
        threshold = self.config.coverage_threshold
        if not command:
            return FullTestSuiteResult(
                status=StepStatus.WARNING,
                message="No full test command configured",
                coverage_threshold=threshold,
            )

        result = await self._run_tool(command, self.config.timeouts.full_tests)
        passed, failed = parse_pytest_summary(result.output)
        coverage = parse_coverage_total(result.output)

        if not result.ok:
            return FullTestSuiteResult(
                status=StepStatus.FAILED,
                message="Test suite failed",
                error=f"{failed or 'Some'} test(s) failed",
                category=ErrorCategory.TEST_FAILURE.value,
                tests_passed=passed,
                tests_failed=failed,
                coverage=coverage,
                coverage_threshold=threshold,
                output=self._clip(result.output),
            )

        if coverage is not None and coverage < threshold:
            guidance = coverage_recommendations(["lines"], {"lines": coverage}, threshold)
            return FullTestSuiteResult(
                status=StepStatus.FAILED,
                message=guidance[0]["suggestion"],
                error=f"Coverage {coverage:g}% is below threshold {threshold:g}%",
                category=ErrorCategory.LOW_COVERAGE.value,
                tests_passed=passed,
                tests_failed=failed,
                coverage=coverage,
                coverage_threshold=threshold,
            )

        return FullTestSuiteResult(
            status=StepStatus.PASSED,
            message=f"{passed} test(s) passed",
            tests_passed=passed,
            tests_failed=failed,
            coverage=coverage,
            coverage_threshold=threshold,
        )

    async def _validate_build(self: OrchestratorProtocol) -> BuildValidationResult:
        command = self.config.commands.build
        if not command:
            return BuildValidationResult(
                status=StepStatus.WARNING,
                message="No build command configured",
            )
        result = await self._run_tool(command, self.config.timeouts.build)
        if not result.ok:
            return BuildValidationResult(
                status=StepStatus.FAILED,
                message="Build failed",
                error=f"Build exited with code {result.exit_code}",
                category=ErrorCategory.BUILD_FAILURE.value,
                output=self._clip(result.output),
            )
        return BuildValidationResult(status=StepStatus.PASSED, message="Build succeeded")

    async def _run_security_audit(self: OrchestratorProtocol) -> SecurityAuditResult:
        command = self.config.commands.security_scan
        if not command:
            return SecurityAuditResult(
                status=StepStatus.SKIPPED,
                message="No security scan configured",
            )

        result = await self._run_tool(command, self.config.timeouts.security_scan)
        # Scanners exit non-zero when they find something; the report decides.
        counts = parse_security_report(result.stdout) or parse_security_report(result.output)
        if counts is None:
            if result.ok:
                return SecurityAuditResult(
                    status=StepStatus.PASSED,
                    message="No vulnerabilities reported",
                )
            return SecurityAuditResult(
                status=StepStatus.WARNING,
                message="Security scan produced no readable report",
                error=f"Scanner exited with code {result.exit_code}",
                output=self._clip(result.output),
            )

        blocking = sum(counts.get(s, 0) for s in BLOCKING_SEVERITIES)
        total = sum(counts.values())
        if blocking:
            return SecurityAuditResult(
                status=StepStatus.FAILED,
                message=f"{blocking} critical/high vulnerability finding(s)",
                error="Security vulnerabilities found",
                category=ErrorCategory.SECURITY_VULNERABILITY.value,
                vulnerabilities=counts,
            )
        return SecurityAuditResult(
            status=StepStatus.PASSED,
            message=f"{total} low-severity finding(s)" if total else "No vulnerabilities found",
            vulnerabilities=counts,
        )

    async def _sync_workflow(self: OrchestratorProtocol, branch: str) -> WorkflowSyncResult:
        content = await self._read_journal()
        if content is None:
            return WorkflowSyncResult(
                status=StepStatus.WARNING,
                message="No active workflow detected",
            )

        persona = extract_persona(content)
        phase = detect_phase(content)
        consistent = await self._personas_consistent(branch, persona)
        synchronized = await self._context_synchronized(content, branch)
        ok = consistent and synchronized
        return WorkflowSyncResult(
            status=StepStatus.PASSED if ok else StepStatus.WARNING,
            message="Workflow synchronized" if ok else "Workflow state may be out of sync",
            workflow_active=True,
            current_persona=persona,
            phase=phase,
            personas_consistent=consistent,
            context_synchronized=synchronized,
        )

    async def _personas_consistent(
        self: OrchestratorProtocol,
        branch: str,
        persona: str | None,
    ) -> bool:
        try:
            subjects = await self.git.commit_subjects(branch, max_count=10)
        except CommandError as e:
            _logger.warning("pre_push.persona_check_unavailable", error=str(e))
            return True
        personas = commit_personas([subject for _, subject in subjects])
        if not personas:
            return True
        return personas_compatible(personas[0], persona)

    async def _context_synchronized(self: OrchestratorProtocol, content: str, branch: str) -> bool:
        if branch in content or "branch" in content.lower():
            return True
        if mentions_date(content):
            return True
        result = await self.git.run("diff", "--name-only", "HEAD~5..HEAD", check=False)
        if not result.ok:
            return True
        changed = [line for line in result.stdout.splitlines() if line]
        return any(path in content or path.rsplit("/", 1)[-1] in content for path in changed)

    def _pre_push_remediation(
        self: OrchestratorProtocol,
        results: dict[str, Any],
    ) -> dict[str, Any]:
        commands = self.config.commands
        steps: list[str] = []
        fix_commands: list[str] = []

        for name, result in results.items():
            if result.status != StepStatus.FAILED:
                continue
            if name == "full_test_suite":
                steps.append("Fix failing tests before pushing")
                if result.category == ErrorCategory.LOW_COVERAGE.value:
                    steps.append("Increase test coverage to meet the configured threshold")
                if commands.full_tests:
                    fix_commands.append(" ".join(commands.full_tests))
            elif name == "build_validation":
                steps.append("Fix build errors before pushing")
                if commands.build:
                    fix_commands.append(" ".join(commands.build))
            elif name == "security_audit":
                steps.append("Fix security vulnerabilities before pushing")
                if commands.security_scan:
                    fix_commands.append(" ".join(commands.security_scan))
            elif name == "workflow_sync":
                steps.append("Synchronize workflow state")
                steps.append(f"Update {self.config.paths.journal} with current work")
                fix_commands.append(f"git add {self.config.paths.journal}")
            elif name == "gatekeeper_integration":
                steps.append("Resolve policy gate validation issues")
                fix_commands.append("hookwarden pre-push --json")

        if not steps:
            steps = [
                "Review validation output for specific issues",
                "Ensure all changes are properly tested",
                "Verify workflow compliance",
            ]

        return {
            "steps": steps,
            "commands": fix_commands,
            "resources": [
                f"Hook configuration: {CONFIG_FILE_NAME}",
                f"Bypass audit log: {self.config.paths.audit_log}",
            ],
        }


def _pre_push_failure_report(results: dict[str, Any]) -> dict[str, Any]:
    failures = []
    failed_checks = warning_checks = 0
    for name, result in results.items():
        if result.status == StepStatus.FAILED:
            failed_checks += 1
            failures.append({
                "check": name,
                "error": result.error or result.message or "Validation failed",
                "severity": "error",
            })
        elif result.status == StepStatus.WARNING:
            warning_checks += 1
            failures.append({
                "check": name,
                "error": result.message or result.error or "Validation warning",
                "severity": "warning",
            })
    return {
        "type": "pre_push_validation_failure",
        "timestamp": datetime.now(UTC).isoformat(),
        "failures": failures,
        "summary": {
            "total_checks": len(results),
            "failed_checks": failed_checks,
            "warning_checks": warning_checks,
        },
    }
