"""Pre-receive pipeline mixin (server side).

Steps: commit_validation -> branch_protection -> author_validation ->
size_validation -> force_push_detection -> gatekeeper_integration.

Runs once per updated ref. Protected refs are enforced strictly: invalid
commit messages, deletions and force pushes fail the push; elsewhere they
only warn. Every detected force push is written to the audit log.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from hookwarden.core.constants import (
    PUSH_SIZE_FAIL_THRESHOLD,
    PUSH_SIZE_WARN_THRESHOLD,
    ZERO_SHA,
)
from hookwarden.core.errors import CommandError, ErrorCategory
from hookwarden.core.logging import get_logger
from hookwarden.core.results import (
    AuthorValidationResult,
    BranchProtectionResult,
    CommitValidationResult,
    ForcePushDetectionResult,
    HookResult,
    SizeValidationResult,
    StepStatus,
)

from .helpers import parse_bmad_subject

if TYPE_CHECKING:
    from .base import HookRun
    from .protocol import OrchestratorProtocol

_logger = get_logger("orchestrator.pre_receive")


class PreReceiveMixin:
    """Provides ``execute_pre_receive``."""

    async def execute_pre_receive(
        self: OrchestratorProtocol,
        old_rev: str,
        new_rev: str,
        ref_name: str,
    ) -> HookResult:
        """Validate one ref update received from a client."""

        async def pipeline(run: HookRun) -> None:
            protected = self.config.is_protected(ref_name)
            deletion = new_rev == ZERO_SHA
            revisions = _pushed_revisions(old_rev, new_rev)

            if deletion:
                for step in ("commit_validation", "author_validation", "size_validation"):
                    self._skip(run, step, "Ref deletion")
            else:
                await self._guard_step(
                    run,
                    "commit_validation",
                    lambda: self._validate_received_commits(revisions, protected),
                )
            await self._guard_step(
                run,
                "branch_protection",
                lambda: self._check_branch_protection(ref_name, protected, deletion),
            )
            if not deletion:
                await self._guard_step(
                    run, "author_validation", lambda: self._validate_authors(revisions)
                )
                await self._guard_step(
                    run, "size_validation", lambda: self._validate_push_size(revisions)
                )
            await self._guard_step(
                run,
                "force_push_detection",
                lambda: self._detect_force_push(run, old_rev, new_rev, ref_name, protected),
            )
            await self._run_gate(run, ref=ref_name, old_rev=old_rev, new_rev=new_rev)
            run.success = self._aggregate_success(run)

        return await self._execute(
            "pre-receive",
            pipeline,
            branch=ref_name,
            context={"ref": ref_name, "old_rev": old_rev[:12], "new_rev": new_rev[:12]},
        )

    async def _validate_received_commits(
        self: OrchestratorProtocol,
        revisions: list[str],
        protected: bool,
    ) -> CommitValidationResult:
        subjects = await self.git.commit_subjects(*revisions)
        invalid = [
            f"{sha[:8]} {subject}" for sha, subject in subjects
            if parse_bmad_subject(subject) is None
        ]
        if not invalid:
            return CommitValidationResult(
                status=StepStatus.PASSED,
                message=f"{len(subjects)} commit(s) valid",
                commits_analyzed=len(subjects),
            )
        return CommitValidationResult(
            status=StepStatus.FAILED if protected else StepStatus.WARNING,
            message=f"{len(invalid)} commit(s) with invalid messages",
            error="Invalid commit messages on protected branch" if protected else None,
            category=ErrorCategory.INVALID_COMMIT_MESSAGE.value if protected else None,
            commits_analyzed=len(subjects),
            invalid_commits=invalid,
        )

    async def _check_branch_protection(
        self: OrchestratorProtocol,
        ref_name: str,
        protected: bool,
        deletion: bool,
    ) -> BranchProtectionResult:
        if protected and deletion:
            return BranchProtectionResult(
                status=StepStatus.FAILED,
                message=f"Deleting protected ref {ref_name} is not allowed",
                error="Protected branch deletion",
                is_protected=True,
                is_deletion=True,
            )
        return BranchProtectionResult(
            status=StepStatus.PASSED,
            message="Protected ref" if protected else "Unprotected ref",
            is_protected=protected,
            is_deletion=deletion,
        )

    async def _validate_authors(
        self: OrchestratorProtocol,
        revisions: list[str],
    ) -> AuthorValidationResult:
        out = await self.git.output("log", "--format=%H|%an|%ae", *revisions)
        lines = [line for line in out.splitlines() if line]
        issues: list[str] = []
        for line in lines:
            sha, _, rest = line.partition("|")
            name, _, email = rest.partition("|")
            if not name.strip():
                issues.append(f"{sha[:8]}: missing author name")
            if "@" not in email:
                issues.append(f"{sha[:8]}: missing or invalid author email")
        return AuthorValidationResult(
            status=StepStatus.WARNING if issues else StepStatus.PASSED,
            message=f"{len(issues)} author issue(s)" if issues else "Author information complete",
            commits_checked=len(lines),
            issues=issues,
        )

    async def _validate_push_size(
        self: OrchestratorProtocol,
        revisions: list[str],
    ) -> SizeValidationResult:
        count = int(await self.git.output("rev-list", "--count", *revisions) or 0)
        if count > PUSH_SIZE_FAIL_THRESHOLD:
            return SizeValidationResult(
                status=StepStatus.FAILED,
                message=f"Push of {count} commits exceeds {PUSH_SIZE_FAIL_THRESHOLD}",
                error="Push too large",
                commit_count=count,
            )
        if count > PUSH_SIZE_WARN_THRESHOLD:
            return SizeValidationResult(
                status=StepStatus.WARNING,
                message=f"Large push: {count} commits",
                commit_count=count,
            )
        return SizeValidationResult(
            status=StepStatus.PASSED,
            message=f"{count} commit(s)",
            commit_count=count,
        )

    async def _detect_force_push(
        self: OrchestratorProtocol,
        run: HookRun,
        old_rev: str,
        new_rev: str,
        ref_name: str,
        protected: bool,
    ) -> ForcePushDetectionResult:
        if ZERO_SHA in (old_rev, new_rev):
            return ForcePushDetectionResult(
                status=StepStatus.PASSED,
                message="Ref creation or deletion",
            )

        result = await self.git.run("merge-base", "--is-ancestor", old_rev, new_rev, check=False)
        if result.ok:
            return ForcePushDetectionResult(status=StepStatus.PASSED, message="Fast-forward update")
        if result.exit_code != 1:
            raise CommandError(
                f"Could not compare {old_rev[:8]} and {new_rev[:8]}: {result.stderr.strip()}",
                args=result.args,
                exit_code=result.exit_code,
                stdout=result.stdout,
                stderr=result.stderr,
            )

        audit_trail = {
            "timestamp": datetime.now(UTC).isoformat(),
            "ref": ref_name,
            "old_rev": old_rev,
            "new_rev": new_rev,
            "protected": protected,
        }
        record = await self.error_handler.record_bypass(
            hook_type=run.hook_type,
            error_category="FORCE_PUSH",
            bypass_method="force-push",
            reason=f"Force push to {ref_name}",
            audit_trail=audit_trail,
        )
        run.bypass = record.to_dict()
        _logger.warning("pre_receive.force_push", ref=ref_name, protected=protected)

        return ForcePushDetectionResult(
            status=StepStatus.FAILED if protected else StepStatus.WARNING,
            message=f"Force push detected on {ref_name}",
            error="Force push to protected branch" if protected else None,
            is_force_push=True,
            audit_trail=audit_trail,
        )


def _pushed_revisions(old_rev: str, new_rev: str) -> list[str]:
    """Revision arguments selecting only the commits this update brings in.

    A new ref is limited to commits no existing ref reaches; pre-receive
    runs before refs are updated, so ``--all`` is the server's prior state.
    """
    if old_rev == ZERO_SHA:
        return [new_rev, "--not", "--all"]
    return [f"{old_rev}..{new_rev}"]
