"""Automatic recovery actions.

Each action handles one or more error categories:
- AutoFixAction: re-runs the linter fix and formatter on staged files
- AutoGenerateContextAction: appends a synthesized journal entry
- EnableOptimizationsAction: reports which speed-ups are available
- CoverageGuidanceAction: reports per-metric coverage gaps
- CacheRebuildAction: deletes and recreates the hook cache directory
- RetryLockAction: reports a contended lock for a later retry
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Protocol

from hookwarden.core.config import HookConfig
from hookwarden.core.errors import ErrorCategory, ErrorClassification, RecoveryResult
from hookwarden.core.logging import get_logger
from hookwarden.execution.commands import CommandRunner
from hookwarden.state.journal import JournalStore

_logger = get_logger("recovery.actions")

COVERAGE_METRICS = ("branches", "functions", "lines", "statements")


@dataclass
class RecoveryContext:
    """What the failing step knew when the error was raised."""

    hook_type: str
    staged_files: list[str] = field(default_factory=list)
    commit_message: str | None = None
    persona: str | None = None
    coverage: dict[str, float] = field(default_factory=dict)
    threshold: float | None = None
    lock_name: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)


class RecoveryAction(Protocol):
    """Protocol for automatic recovery actions."""

    @property
    def name(self) -> str:
        """Unique identifier, reported as the result's ``action``."""
        ...

    @property
    def categories(self) -> frozenset[ErrorCategory]:
        """Error categories this action can recover from."""
        ...

    async def apply(
        self,
        classification: ErrorClassification,
        context: RecoveryContext,
    ) -> RecoveryResult:
        """Attempt the recovery. May raise; the handler records that as a failure."""
        ...


class AutoFixAction:
    """Re-runs the configured linter fix and formatter on the staged files."""

    def __init__(self, runner: CommandRunner, config: HookConfig, repo_root: Path) -> None:
        self.runner = runner
        self.config = config
        self.repo_root = repo_root

    @property
    def name(self) -> str:
        return "auto-fix"

    @property
    def categories(self) -> frozenset[ErrorCategory]:
        return frozenset({ErrorCategory.LINT_ERROR})

    async def apply(
        self,
        classification: ErrorClassification,
        context: RecoveryContext,
    ) -> RecoveryResult:
        extensions = tuple(self.config.lint_extensions)
        files = [f for f in context.staged_files if f.endswith(extensions)]
        if not files:
            return RecoveryResult(successful=False, reason="No files to fix")

        commands = [c for c in (self.config.commands.linter, self.config.commands.formatter) if c]
        if not commands:
            return RecoveryResult(successful=False, reason="No fix commands configured")

        for command in commands:
            result = await self.runner.run(
                [*command, *files],
                cwd=self.repo_root,
                timeout=self.config.timeouts.lint,
            )
            if not result.ok:
                return RecoveryResult(
                    successful=False,
                    reason="Auto-fix failed",
                    details=result.output[:500],
                )

        return RecoveryResult(
            successful=True,
            action=self.name,
            details=f"Fixed lint errors in {len(files)} file(s)",
            data={"files_fixed": list(files)},
        )


class AutoGenerateContextAction:
    """Appends a minimal persona/action entry to the running-context journal."""

    def __init__(self, journal: JournalStore, journal_path: str) -> None:
        self.journal = journal
        self.journal_path = journal_path

    @property
    def name(self) -> str:
        return "auto-generate-context"

    @property
    def categories(self) -> frozenset[ErrorCategory]:
        return frozenset({ErrorCategory.MISSING_CONTEXT_UPDATE})

    async def apply(
        self,
        classification: ErrorClassification,
        context: RecoveryContext,
    ) -> RecoveryResult:
        if not self.journal.exists(self.journal_path):
            return RecoveryResult(successful=False, reason="Context file does not exist")

        timestamp = datetime.now(UTC).isoformat()
        entry = (
            f"\n## {timestamp}\n"
            f"**Persona**: {context.persona or 'DEVELOPER'}\n"
            f"**Action**: {context.commit_message or 'Context update'}\n"
        )
        await self.journal.append(self.journal_path, entry)
        return RecoveryResult(
            successful=True,
            action=self.name,
            details="Generated basic context entry",
            data={"entry": entry},
        )


class EnableOptimizationsAction:
    """Reports which hook speed-ups are not yet in use."""

    def __init__(self, config: HookConfig, repo_root: Path) -> None:
        self.config = config
        self.repo_root = repo_root

    @property
    def name(self) -> str:
        return "enable-optimizations"

    @property
    def categories(self) -> frozenset[ErrorCategory]:
        return frozenset({ErrorCategory.PERFORMANCE_THRESHOLD})

    def _staged_only_linting(self) -> bool:
        return (self.repo_root / ".pre-commit-config.yaml").exists()

    def _parallel_tests(self) -> bool:
        command = self.config.commands.fast_tests or []
        return "-n" in command or any(arg.startswith("--numprocesses") for arg in command)

    async def apply(
        self,
        classification: ErrorClassification,
        context: RecoveryContext,
    ) -> RecoveryResult:
        optimizations: list[str] = []
        if not self._staged_only_linting():
            optimizations.append("staged-only-linting")
        if not self._parallel_tests():
            optimizations.append("parallel-tests")
        return RecoveryResult(
            successful=True,
            action=self.name,
            details=f"Enabled optimizations: {', '.join(optimizations)}",
            data={"optimizations": optimizations},
        )


def coverage_recommendations(
    gaps: list[str],
    coverage: dict[str, float],
    threshold: float,
) -> list[dict[str, str]]:
    """Describe how far each metric is below the threshold."""
    recommendations = []
    for metric in gaps:
        current = coverage.get(metric, 0.0)
        needed = threshold - current
        recommendations.append({
            "metric": metric,
            "current": f"{current:.2f}%",
            "threshold": f"{threshold:g}%",
            "gap": f"{needed:.2f}%",
            "suggestion": f"Add tests to improve {metric} coverage by {needed:.2f}%",
        })
    return recommendations


class CoverageGuidanceAction:
    """Turns a low-coverage error into per-metric guidance."""

    def __init__(self, default_threshold: float = 80.0) -> None:
        self.default_threshold = default_threshold

    @property
    def name(self) -> str:
        return "coverage-guidance"

    @property
    def categories(self) -> frozenset[ErrorCategory]:
        return frozenset({ErrorCategory.LOW_COVERAGE})

    async def apply(
        self,
        classification: ErrorClassification,
        context: RecoveryContext,
    ) -> RecoveryResult:
        threshold = context.threshold if context.threshold is not None else self.default_threshold
        gaps = [
            m for m in COVERAGE_METRICS
            if m in context.coverage and context.coverage[m] < threshold
        ]
        return RecoveryResult(
            successful=True,
            action=self.name,
            details=f"Coverage below threshold in: {', '.join(gaps)}",
            data={
                "gaps": gaps,
                "recommendations": coverage_recommendations(gaps, context.coverage, threshold),
            },
        )


class CacheRebuildAction:
    """Deletes and recreates the hook cache directory."""

    def __init__(self, cache_dir: Path) -> None:
        self.cache_dir = cache_dir

    @property
    def name(self) -> str:
        return "cache-rebuild"

    @property
    def categories(self) -> frozenset[ErrorCategory]:
        return frozenset({ErrorCategory.CACHE_ERROR})

    async def apply(
        self,
        classification: ErrorClassification,
        context: RecoveryContext,
    ) -> RecoveryResult:
        if self.cache_dir.exists():
            shutil.rmtree(self.cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        _logger.info("recovery.cache_rebuilt", cache_dir=str(self.cache_dir))
        return RecoveryResult(
            successful=True,
            action=self.name,
            details="Cleared and rebuilt cache",
        )


class RetryLockAction:
    """Reports the contended lock so the caller can retry the operation."""

    @property
    def name(self) -> str:
        return "retry-lock"

    @property
    def categories(self) -> frozenset[ErrorCategory]:
        return frozenset({ErrorCategory.LOCK_TIMEOUT})

    async def apply(
        self,
        classification: ErrorClassification,
        context: RecoveryContext,
    ) -> RecoveryResult:
        lock_name = context.lock_name or "unknown"
        return RecoveryResult(
            successful=True,
            action=self.name,
            details=f"Lock '{lock_name}' was busy; retry the operation once it is released",
            data={"lock_name": lock_name},
        )
