"""Pre-rebase and post-checkout pipeline mixin.

Pre-rebase steps: safety_validation -> commit_compatibility ->
conflict_detection -> commit_analysis -> gatekeeper_integration.

Post-checkout steps: context_restoration -> branch_info. Each branch keeps
its own journal snapshot; switching branches saves the outgoing journal
and restores (or starts) the incoming one.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from hookwarden.core.errors import CommandError, HookwardenError
from hookwarden.core.logging import get_logger
from hookwarden.core.results import (
    BranchInfoResult,
    CommitAnalysisResult,
    CommitCompatibilityResult,
    ConflictDetectionResult,
    ContextRestorationResult,
    HookResult,
    SafetyValidationResult,
    StepStatus,
)

from .helpers import context_file_name, extract_persona, parse_bmad_subject

if TYPE_CHECKING:
    from .base import HookRun
    from .protocol import OrchestratorProtocol

_logger = get_logger("orchestrator.lifecycle")

DEFAULT_PERSONA = "DEVELOPER"


class LifecycleMixin:
    """Provides ``execute_pre_rebase`` and ``execute_post_checkout``."""

    # =========================================================================
    # pre-rebase
    # =========================================================================

    async def execute_pre_rebase(
        self: OrchestratorProtocol,
        upstream: str,
        branch: str | None = None,
    ) -> HookResult:
        """Check that rebasing ``branch`` (default: HEAD) onto ``upstream`` is safe."""

        async def pipeline(run: HookRun) -> None:
            target = branch or "HEAD"
            await self._guard_step(
                run, "safety_validation", lambda: self._check_rebase_safety(branch)
            )
            await self._guard_step(
                run,
                "commit_compatibility",
                lambda: self._check_commit_compatibility(upstream, target),
            )
            await self._guard_step(
                run, "conflict_detection", lambda: self._detect_conflicts(upstream, target)
            )
            await self._guard_step(
                run, "commit_analysis", lambda: self._count_rebased_commits(upstream, target)
            )
            await self._run_gate(run, upstream=upstream, branch=target)
            run.success = self._aggregate_success(run)

        return await self._execute(
            "pre-rebase",
            pipeline,
            branch=branch,
            context={"upstream": upstream, "branch": branch},
        )

    async def _check_rebase_safety(
        self: OrchestratorProtocol,
        branch: str | None,
    ) -> SafetyValidationResult:
        clean = await self.git.is_clean()
        current = branch or await self.git.current_branch()
        protected = self.config.is_protected(current)

        if not clean:
            status, message = StepStatus.FAILED, "Working tree has uncommitted changes"
        elif protected:
            status, message = StepStatus.WARNING, f"Rebasing protected branch {current}"
        else:
            status, message = StepStatus.PASSED, "Safe to rebase"
        return SafetyValidationResult(
            status=status,
            message=message,
            error="Commit or stash changes before rebasing" if not clean else None,
            working_tree_clean=clean,
            current_branch=current,
            is_protected=protected,
        )

    async def _check_commit_compatibility(
        self: OrchestratorProtocol,
        upstream: str,
        target: str,
    ) -> CommitCompatibilityResult:
        subjects = await self.git.commit_subjects(f"{upstream}..{target}")
        invalid = [
            f"{sha[:8]} {subject}" for sha, subject in subjects
            if parse_bmad_subject(subject) is None
        ]
        return CommitCompatibilityResult(
            status=StepStatus.WARNING if invalid else StepStatus.PASSED,
            message=(
                f"{len(invalid)} of {len(subjects)} commit(s) do not follow "
                "[PERSONA] [STEP-ID] Description"
                if invalid else f"{len(subjects)} commit(s) compatible"
            ),
            commits_analyzed=len(subjects),
            invalid_commits=invalid,
        )

    async def _detect_conflicts(
        self: OrchestratorProtocol,
        upstream: str,
        target: str,
    ) -> ConflictDetectionResult:
        base = await self.git.output("merge-base", upstream, target)
        ours = await self.git.output("diff", "--name-only", base, target)
        theirs = await self.git.output("diff", "--name-only", base, upstream)
        overlap = sorted(set(ours.splitlines()) & set(theirs.splitlines()) - {""})
        return ConflictDetectionResult(
            status=StepStatus.WARNING if overlap else StepStatus.PASSED,
            message=(
                f"{len(overlap)} file(s) changed on both sides"
                if overlap else "No overlapping changes"
            ),
            has_conflicts=bool(overlap),
            conflicting_files=overlap,
        )

    async def _count_rebased_commits(
        self: OrchestratorProtocol,
        upstream: str,
        target: str,
    ) -> CommitAnalysisResult:
        count = int(await self.git.output("rev-list", "--count", f"{upstream}..{target}") or 0)
        return CommitAnalysisResult(
            status=StepStatus.PASSED,
            message=f"{count} commit(s) will be rebased",
            commit_count=count,
        )

    # =========================================================================
    # post-checkout
    # =========================================================================

    async def execute_post_checkout(
        self: OrchestratorProtocol,
        previous: str,
        new: str,
        is_branch_checkout: bool,
    ) -> HookResult:
        """Swap the running-context journal when switching branches."""

        async def pipeline(run: HookRun) -> None:
            if not is_branch_checkout:
                self._skip(run, "context_restoration", "File checkout")
                self._skip(run, "branch_info", "File checkout")
                return

            previous_branch, new_branch = await self._checkout_branches(previous)
            run.branch = new_branch
            await self._guard_step(
                run,
                "context_restoration",
                lambda: self._restore_branch_context(previous_branch, new_branch),
            )
            await self._guard_step(
                run,
                "branch_info",
                lambda: self._branch_info(previous, new, previous_branch, new_branch),
            )

        return await self._execute(
            "post-checkout",
            pipeline,
            context={
                "previous": previous[:12],
                "new": new[:12],
                "branch_checkout": is_branch_checkout,
            },
        )

    async def _checkout_branches(
        self: OrchestratorProtocol,
        previous: str,
    ) -> tuple[str | None, str | None]:
        try:
            named = await self.git.output("name-rev", "--name-only", "--always", previous)
            new_branch = await self.git.current_branch()
        except CommandError as e:
            _logger.warning("post_checkout.branch_lookup_failed", error=str(e))
            return None, None
        previous_branch = named.split("~", 1)[0].split("^", 1)[0].removeprefix("tags/")
        return previous_branch or None, new_branch

    async def _restore_branch_context(
        self: OrchestratorProtocol,
        previous_branch: str | None,
        new_branch: str | None,
    ) -> ContextRestorationResult:
        if not new_branch or new_branch == "HEAD":
            return ContextRestorationResult(
                status=StepStatus.SKIPPED,
                message="Detached HEAD",
            )

        journal = self.state.journal
        journal_path = self.config.paths.journal
        current = await self._read_journal()

        previous_saved = False
        save_failed = False
        if current and previous_branch and previous_branch != new_branch:
            try:
                await self._save_branch_context(previous_branch, current)
                previous_saved = True
            except (OSError, HookwardenError) as e:
                save_failed = True
                _logger.warning(
                    "post_checkout.context_save_failed",
                    branch=previous_branch,
                    error=str(e),
                )

        context_file = self._context_path(new_branch)
        stored = await journal.read(context_file)
        if stored is None:
            stored = await self.state.state_store.read(f"contexts/{new_branch}.md")

        if stored is not None:
            await journal.write(journal_path, stored)
            _logger.info("post_checkout.context_restored", branch=new_branch)
            return ContextRestorationResult(
                status=StepStatus.PASSED,
                message=f"Restored context for {new_branch}",
                restored=True,
                context_file=context_file,
                previous_saved=previous_saved,
            )

        persona = (extract_persona(current) if current else None) or DEFAULT_PERSONA
        await journal.write(journal_path, _fresh_journal(new_branch, persona))
        return ContextRestorationResult(
            status=StepStatus.WARNING if save_failed else StepStatus.PASSED,
            message=(
                f"Initialized fresh context for {new_branch}"
                + (f"; previous context for {previous_branch} was not saved" if save_failed else "")
            ),
            context_file=context_file,
            previous_saved=previous_saved,
        )

    async def _save_branch_context(self: OrchestratorProtocol, branch: str, content: str) -> None:
        await self.state.journal.write(self._context_path(branch), content)
        await self.state.state_store.write(f"contexts/{branch}.md", content)
        _logger.debug("post_checkout.context_saved", branch=branch)

    def _context_path(self: OrchestratorProtocol, branch: str) -> str:
        return f"{self.config.paths.contexts_dir}/{context_file_name(branch)}"

    async def _branch_info(
        self: OrchestratorProtocol,
        previous: str,
        new: str,
        previous_branch: str | None,
        new_branch: str | None,
    ) -> BranchInfoResult:
        return BranchInfoResult(
            status=StepStatus.PASSED,
            message=f"{previous_branch or previous[:8]} -> {new_branch or new[:8]}",
            previous_branch=previous_branch,
            new_branch=new_branch,
            is_new_branch=previous == new,
        )


def _fresh_journal(branch: str, persona: str) -> str:
    return (
        "# Active Context\n\n"
        f"**Branch**: {branch}\n"
        f"**Persona**: {persona}\n"
        f"**Started**: {datetime.now(UTC).isoformat()}\n\n"
        "## Current Work\n\n"
        "No context recorded for this branch yet.\n"
    )
