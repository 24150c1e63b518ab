"""Post-commit pipeline mixin.

Steps: metrics_update -> documentation -> context_update ->
orchestrator_notification. Never blocks: every failure is reported as a
warning and the hook always succeeds.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from hookwarden.core.errors import ErrorCategory
from hookwarden.core.logging import get_logger
from hookwarden.core.results import (
    ContextUpdateResult,
    DocumentationResult,
    HookResult,
    MetricsUpdateResult,
    NotificationResult,
    StepStatus,
)

from .helpers import has_extension, parse_bmad_subject, parse_stat_summary

if TYPE_CHECKING:
    from .base import HookRun
    from .protocol import OrchestratorProtocol

_logger = get_logger("orchestrator.post_commit")

METRICS_LOCK = "project-metrics"
DOC_SOURCE_DIRS = ("src/", "scripts/", "docs/")
JOURNAL_HEADER = "# Active Context\n\n"


class PostCommitMixin:
    """Provides ``execute_post_commit``."""

    async def execute_post_commit(self: OrchestratorProtocol, commit_hash: str) -> HookResult:
        """Record a new commit in metrics, docs, journal and the workflow notifier."""

        async def pipeline(run: HookRun) -> None:
            await self._guard_step(run, "metrics_update", lambda: self._update_metrics(commit_hash))
            await self._guard_step(
                run, "documentation", lambda: self._regenerate_docs(commit_hash)
            )
            context = await self._guard_step(
                run, "context_update", lambda: self._register_commit(commit_hash)
            )
            await self._guard_step(
                run,
                "orchestrator_notification",
                lambda: self._notify_commit(commit_hash, context),
            )

        return await self._execute("post-commit", pipeline, context={"commit": commit_hash[:12]})

    async def _update_metrics(self: OrchestratorProtocol, commit_hash: str) -> MetricsUpdateResult:
        stat = await self.git.output("show", "--stat", "--format=", commit_hash)
        files, added, deleted = parse_stat_summary(stat)
        updated: dict[str, Any] = {}

        def apply(current: str | None) -> str:
            existing = _load_metrics(current)
            total = existing["total_commits"]
            updated.update({
                "total_commits": total + 1,
                "total_lines_added": existing["total_lines_added"] + added,
                "total_lines_deleted": existing["total_lines_deleted"] + deleted,
                "average_files_per_commit": (
                    existing["average_files_per_commit"] * total + files
                ) / (total + 1),
                "last_updated": datetime.now(UTC).isoformat(),
            })
            return json.dumps(updated, indent=2) + "\n"

        await self.state.journal.update(self.config.paths.metrics, apply, lock=METRICS_LOCK)
        return MetricsUpdateResult(
            status=StepStatus.PASSED,
            message=f"Metrics updated ({updated['total_commits']} commits)",
            files_changed=files,
            lines_added=added,
            lines_deleted=deleted,
            metrics=updated,
        )

    async def _regenerate_docs(self: OrchestratorProtocol, commit_hash: str) -> DocumentationResult:
        changed = await self.git.changed_files(commit_hash)
        sources = [
            f for f in changed
            if f.startswith(DOC_SOURCE_DIRS) and has_extension(f, self.config.doc_extensions)
        ]
        if not sources:
            return DocumentationResult(
                status=StepStatus.SKIPPED,
                message="No source file changes detected",
            )

        command = self.config.commands.docs
        if not command:
            return DocumentationResult(
                status=StepStatus.SKIPPED,
                message="No docs command configured",
                files=sources,
            )

        result = await self._run_tool(command, self.config.timeouts.docs)
        if not result.ok:
            return DocumentationResult(
                status=StepStatus.WARNING,
                message="Documentation generation failed",
                error=f"Docs command exited with code {result.exit_code}",
                category=ErrorCategory.DOCUMENTATION_FAILURE.value,
                files=sources,
                output=self._clip(result.output),
            )
        return DocumentationResult(
            status=StepStatus.PASSED,
            message="Documentation regenerated",
            files=sources,
        )

    async def _register_commit(self: OrchestratorProtocol, commit_hash: str) -> ContextUpdateResult:
        changed = await self.git.changed_files(commit_hash)
        if not any(has_extension(f, self.config.code_extensions) for f in changed):
            return ContextUpdateResult(
                status=StepStatus.SKIPPED,
                message="No code changes detected",
            )

        subject = (await self.git.commit_message(commit_hash)).splitlines()[0:1]
        subject_text = subject[0] if subject else ""
        parsed = parse_bmad_subject(subject_text)
        persona, step_id = (parsed[0], parsed[1]) if parsed else ("UNKNOWN", "N/A")

        entry = (
            f"\n## Commit {commit_hash[:8]}\n"
            f"- **Timestamp**: {datetime.now(UTC).isoformat()}\n"
            f"- **Persona**: {persona}\n"
            f"- **Step ID**: {step_id}\n"
            f"- **Message**: {subject_text}\n"
            f"- **Files Changed**: {len(changed)}\n"
        )
        digest = await self.state.journal.append(
            self.config.paths.journal, entry, header=JOURNAL_HEADER
        )
        return ContextUpdateResult(
            status=StepStatus.PASSED,
            message="Commit registered in active context",
            persona=persona,
            step_id=step_id,
            content_hash=digest,
        )

    async def _notify_commit(
        self: OrchestratorProtocol,
        commit_hash: str,
        context: Any,
    ) -> NotificationResult:
        if self.state.circuit_breaker.is_circuit_open():
            return NotificationResult(
                status=StepStatus.SKIPPED,
                message="Circuit breaker open",
            )

        payload = {
            "commit": commit_hash,
            "persona": getattr(context, "persona", None),
            "step_id": getattr(context, "step_id", None),
            "timestamp": datetime.now(UTC).isoformat(),
        }
        delivered = await self.state.notifier.notify("commit", payload)
        if not delivered:
            _logger.warning("post_commit.notification_failed", commit=commit_hash[:12])
            return NotificationResult(
                status=StepStatus.WARNING,
                message="Workflow notification failed",
                category=ErrorCategory.NOTIFICATION_FAILURE.value,
            )
        return NotificationResult(
            status=StepStatus.PASSED,
            message="Workflow notified",
            delivered=True,
        )


def _load_metrics(current: str | None) -> dict[str, Any]:
    metrics: dict[str, Any] = {
        "total_commits": 0,
        "total_lines_added": 0,
        "total_lines_deleted": 0,
        "average_files_per_commit": 0.0,
    }
    if not current:
        return metrics
    try:
        data = json.loads(current)
    except json.JSONDecodeError:
        _logger.warning("post_commit.metrics_unreadable")
        return metrics
    if isinstance(data, dict):
        for key in metrics:
            value = data.get(key)
            if isinstance(value, int | float):
                metrics[key] = value
    return metrics
