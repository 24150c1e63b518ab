"""Post-merge pipeline mixin.

Steps: workflow -> repository_validation -> merge_analysis.

The merge has already happened, so nothing here blocks. When the
integration workflow or the repository check fails, the result carries a
``recovery`` block with rollback commands and troubleshooting steps, and
the same information is written to ``recovery-report.json``.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from hookwarden.core.errors import CommandError, HookwardenError
from hookwarden.core.logging import get_logger
from hookwarden.core.results import (
    HookResult,
    MergeAnalysisResult,
    RepositoryValidationResult,
    StepStatus,
    WorkflowResult,
)

from .helpers import parse_stat_summary

if TYPE_CHECKING:
    from .base import HookRun
    from .protocol import OrchestratorProtocol

_logger = get_logger("orchestrator.post_merge")

REPORTS_LOCK = "reports"
MERGE_REPORT = "merge-analysis.json"
RECOVERY_REPORT = "recovery-report.json"

DIAGNOSTIC_STEPS: dict[str, list[str]] = {
    "workflow_execution_failed": [
        "Check that the integration workflow command is configured correctly",
        "Verify all workflow dependencies are installed",
        "Review workflow output for specific errors",
    ],
    "repository_validation_failed": [
        "Run git status to check repository state",
        "Check for unmerged files or conflict markers",
        "Verify .git directory integrity with git fsck",
    ],
}

DEFAULT_DIAGNOSTIC_STEPS = [
    "Review error message for specific issues",
    "Check hook logs for additional context",
    "Verify repository is in a consistent state",
]

_FAILURE_TYPES = {
    "workflow": "workflow_execution_failed",
    "repository_validation": "repository_validation_failed",
}


class PostMergeMixin:
    """Provides ``execute_post_merge``."""

    async def execute_post_merge(self: OrchestratorProtocol, merge_type: str) -> HookResult:
        """Validate the repository after a ``"merge"`` or ``"squash"`` merge."""

        async def pipeline(run: HookRun) -> None:
            await self._guard_step(run, "workflow", lambda: self._run_merge_workflow())
            await self._guard_step(
                run, "repository_validation", lambda: self._validate_repository()
            )
            await self._guard_step(
                run, "merge_analysis", lambda: self._analyze_merge(merge_type)
            )

            failed = {
                name: result for name, result in run.results.items()
                if result.status == StepStatus.FAILED
            }
            if failed:
                run.recovery = await self._build_merge_recovery(failed, merge_type)

        return await self._execute("post-merge", pipeline, context={"merge_type": merge_type})

    async def _run_merge_workflow(self: OrchestratorProtocol) -> WorkflowResult:
        command = self.config.commands.workflow
        if not command:
            return WorkflowResult(
                status=StepStatus.SKIPPED,
                message="No integration workflow configured",
            )
        try:
            result = await self._run_tool(command, self.config.timeouts.workflow)
        except CommandError as e:
            return WorkflowResult(
                status=StepStatus.FAILED,
                message="Integration workflow could not run",
                error=str(e),
            )
        if not result.ok:
            return WorkflowResult(
                status=StepStatus.FAILED,
                message="Integration workflow failed",
                error=f"Workflow exited with code {result.exit_code}",
                output=self._clip(result.output),
            )
        return WorkflowResult(status=StepStatus.PASSED, message="Integration workflow completed")

    async def _validate_repository(self: OrchestratorProtocol) -> RepositoryValidationResult:
        try:
            clean = await self.git.is_clean()
            check = await self.git.run("diff", "--check", check=False)
            branch = await self.git.current_branch()
            fsck = await self.git.run("fsck", "--no-progress", check=False)
        except CommandError as e:
            return RepositoryValidationResult(
                status=StepStatus.FAILED,
                message="Repository state could not be inspected",
                error=str(e),
            )

        unmerged = "conflict marker" in check.output or not check.ok
        branch_valid = bool(branch) and branch != "HEAD"
        critical = {
            path: self.state.repository.resolve(path).exists()
            for path in [*self.config.critical_files, ".git"]
        }
        integrity = {"has_errors": not fsck.ok}
        if not fsck.ok:
            integrity["output"] = self._clip(fsck.output)

        issues: list[str] = []
        if not clean:
            issues.append("Working tree has uncommitted changes")
        if unmerged:
            issues.append("Unmerged paths or conflict markers detected")
        if not branch_valid:
            issues.append("HEAD is not on a valid branch")
        issues += [f"Critical file missing: {path}" for path, ok in critical.items() if not ok]
        if integrity["has_errors"]:
            issues.append("Repository integrity check reported errors")

        is_valid = not issues
        summary = (
            "Repository state is valid"
            if is_valid
            else f"Repository state validation found {len(issues)} issue(s)"
        )
        return RepositoryValidationResult(
            status=StepStatus.PASSED if is_valid else StepStatus.FAILED,
            message=summary,
            error=None if is_valid else "; ".join(issues),
            working_tree_clean=clean,
            has_unmerged_paths=unmerged,
            branch_valid=branch_valid,
            branch=branch,
            critical_files=critical,
            integrity_check=integrity,
            is_valid=is_valid,
            issues=issues,
            summary=summary,
        )

    async def _analyze_merge(self: OrchestratorProtocol, merge_type: str) -> MergeAnalysisResult:
        stat = await self.git.output("diff", "--stat", "HEAD~1", "HEAD")
        files_count, added, deleted = parse_stat_summary(stat)
        names = await self.git.output("diff", "--name-only", "HEAD~1", "HEAD")

        merge_commit: dict[str, str] = {}
        latest = await self.git.run("log", "--merges", "--format=%H%x09%s", "-1", check=False)
        if latest.ok and latest.stdout.strip():
            sha, _, subject = latest.stdout.strip().partition("\t")
            merge_commit = {"hash": sha, "message": subject}

        report = {
            "merge_type": merge_type,
            "timestamp": datetime.now(UTC).isoformat(),
            "files_changed": [line for line in names.splitlines() if line],
            "statistics": {
                "files_count": files_count,
                "lines_added": added,
                "lines_deleted": deleted,
                "net_change": added - deleted,
            },
            "merge_commit": merge_commit,
        }
        report_path = f"{self.config.paths.reports_dir}/{MERGE_REPORT}"
        await self.state.journal.write(
            report_path, json.dumps(report, indent=2) + "\n", lock=REPORTS_LOCK
        )
        return MergeAnalysisResult(
            status=StepStatus.PASSED,
            message=f"{files_count} file(s) changed by {merge_type} merge",
            report_path=report_path,
            report=report,
        )

    async def _build_merge_recovery(
        self: OrchestratorProtocol,
        failed: dict[str, Any],
        merge_type: str,
    ) -> dict[str, Any]:
        first_name, first = next(iter(failed.items()))
        failure_type = _FAILURE_TYPES.get(first_name, "execution_error")
        troubleshooting: dict[str, Any] = {
            "failure_type": failure_type,
            "error_message": first.error or first.message or "Unknown error",
            "diagnostic_steps": list(DIAGNOSTIC_STEPS.get(failure_type, DEFAULT_DIAGNOSTIC_STEPS)),
        }
        if len(failed) > 1:
            troubleshooting["multiple_failures"] = True
            troubleshooting["failure_count"] = len(failed)

        recovery = {
            "rollback_recommendations": await self._rollback_recommendations(),
            "troubleshooting": troubleshooting,
        }
        _logger.warning(
            "post_merge.recovery_suggested",
            failure_type=failure_type,
            failed_steps=list(failed),
        )
        await self._write_recovery_report(recovery, failed, merge_type)
        return recovery

    async def _rollback_recommendations(self: OrchestratorProtocol) -> list[dict[str, str]]:
        try:
            current = await self.git.output("rev-parse", "HEAD")
            previous = await self.git.output("rev-parse", "HEAD~1")
            branch = await self.git.current_branch()
            has_remote = bool(await self.git.remotes())
            has_stash = await self.git.has_stash()
        except CommandError as e:
            _logger.error("post_merge.rollback_inspection_failed", error=str(e))
            return [{
                "command": "git reset --hard HEAD~1",
                "description": "Reset to previous commit",
                "warning": "This will discard the merge",
                "priority": "high",
            }]

        recommendations: list[dict[str, str]] = []
        if self.config.is_protected(branch):
            recommendations.append({
                "command": f"git revert -m 1 {current}",
                "description": "Revert the merge commit (safe for protected branches)",
                "warning": "This creates a new commit that undoes the merge",
                "priority": "high",
            })
        else:
            recommendations.append({
                "command": f"git reset --hard {previous[:7]}",
                "description": "Reset to state before merge",
                "warning": "This will discard the merge. Cannot be undone easily.",
                "priority": "high",
            })
        if has_remote:
            recommendations.append({
                "command": "git push --force-with-lease",
                "description": "Push rollback to remote (if already pushed)",
                "warning": "Force push affects remote repository. Coordinate with team.",
                "priority": "medium",
            })
        if has_stash:
            recommendations.append({
                "command": "git stash pop",
                "description": "Restore stashed changes after rollback",
                "warning": "Only if you had stashed changes before merge",
                "priority": "low",
            })
        recommendations.append({
            "command": "git reflog",
            "description": "View recent Git operations to find recovery point",
            "warning": "Use this to manually identify the correct state to restore",
            "priority": "low",
        })
        return recommendations

    async def _write_recovery_report(
        self: OrchestratorProtocol,
        recovery: dict[str, Any],
        failed: dict[str, Any],
        merge_type: str,
    ) -> None:
        try:
            names = await self.git.output("diff", "--name-only", "HEAD~1", "HEAD")
            affected = names.splitlines()
        except CommandError as e:
            _logger.warning("post_merge.affected_files_unavailable", error=str(e))
            affected = []
        report = {
            "merge_type": merge_type,
            "failure_detected": True,
            "timestamp": datetime.now(UTC).isoformat(),
            "affected_files": [line for line in affected if line],
            "failure_count": len(failed),
            "failures": [
                {"check": name, "error": result.error or "Unknown error", "status": "failed"}
                for name, result in failed.items()
            ],
            "recovery_options": [
                {k: rec[k] for k in ("command", "description", "priority")}
                for rec in recovery["rollback_recommendations"]
            ],
            "troubleshooting": recovery["troubleshooting"],
        }
        report_path = f"{self.config.paths.reports_dir}/{RECOVERY_REPORT}"
        try:
            await self.state.journal.write(
                report_path, json.dumps(report, indent=2) + "\n", lock=REPORTS_LOCK
            )
        except (OSError, HookwardenError) as e:
            _logger.error("post_merge.recovery_report_failed", path=report_path, error=str(e))
            return
        _logger.info("post_merge.recovery_report_written", path=report_path)
