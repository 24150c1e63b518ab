"""Pre-commit pipeline mixin.

Steps: linting -> testing -> context_validation -> gatekeeper_integration.

The fast test slice runs under the ``fast-tests`` lock and passing results
are cached in ``.git/hookwarden-cache.json`` for five minutes, keyed by
HEAD plus a digest of the staged file list.
"""

from __future__ import annotations

import hashlib
import json
import time
from typing import TYPE_CHECKING, Any

from hookwarden.core.constants import TEST_CACHE_MAX_ENTRIES, TEST_CACHE_TTL_SECONDS
from hookwarden.core.errors import CommandError, ErrorCategory
from hookwarden.core.logging import get_logger
from hookwarden.core.results import (
    ContextValidationResult,
    FastTestResult,
    HookResult,
    LintingResult,
    StepStatus,
)
from hookwarden.recovery.actions import RecoveryContext

from .helpers import has_extension, journal_content_ok, parse_pytest_summary

if TYPE_CHECKING:
    from .base import HookRun
    from .protocol import OrchestratorProtocol

_logger = get_logger("orchestrator.pre_commit")

FAST_TESTS_LOCK = "fast-tests"
PYTEST_NO_TESTS_COLLECTED = 5


class PreCommitMixin:
    """Provides ``execute_pre_commit``."""

    async def execute_pre_commit(
        self: OrchestratorProtocol,
        staged_files: list[str] | None = None,
    ) -> HookResult:
        """Validate a commit before it is created.

        Args:
            staged_files: Paths staged for commit; read from the index when None.
        """

        async def pipeline(run: HookRun) -> None:
            files = staged_files if staged_files is not None else await self._staged_files()
            recovery_context = RecoveryContext(hook_type=run.hook_type, staged_files=files)

            if self.config.enable_linting:
                await self._guard_step(
                    run, "linting", lambda: self._run_linting(files), recovery_context
                )
            else:
                self._skip(run, "linting", "Linting disabled")

            if self.config.enable_testing:
                await self._guard_step(
                    run, "testing", lambda: self._run_fast_tests(files), recovery_context
                )
            else:
                self._skip(run, "testing", "Testing disabled")

            if self.config.enable_context_validation:
                await self._guard_step(
                    run,
                    "context_validation",
                    lambda: self._validate_staged_context(files),
                    recovery_context,
                )
            else:
                self._skip(run, "context_validation", "Context validation disabled")

            await self._run_gate(run, staged_files=files)
            run.success = self._aggregate_success(run)

        return await self._execute(
            "pre-commit",
            pipeline,
            context={"staged_files": len(staged_files) if staged_files is not None else None},
        )

    async def _staged_files(self: OrchestratorProtocol) -> list[str]:
        try:
            out = await self.git.output("diff", "--cached", "--name-only", "--diff-filter=ACMR")
        except CommandError as e:
            _logger.warning("pre_commit.staged_files_unavailable", error=str(e))
            return []
        return [line for line in out.splitlines() if line]

    # -------------------------------------------------------------------------
    # linting
    # -------------------------------------------------------------------------

    async def _run_linting(self: OrchestratorProtocol, files: list[str]) -> LintingResult:
        lint_files = [f for f in files if has_extension(f, self.config.lint_extensions)]
        if not lint_files:
            return LintingResult(
                status=StepStatus.SKIPPED,
                message="No lintable files staged",
                files_processed=0,
            )

        commands = self.config.commands
        if not commands.linter:
            return LintingResult(
                status=StepStatus.SKIPPED,
                message="No linter configured",
                files_processed=0,
            )

        timeout = self.config.timeouts.lint
        result = await self._run_tool([*commands.linter, *lint_files], timeout)
        if not result.ok:
            raise CommandError(
                f"Lint errors found in {len(lint_files)} file(s)",
                args=result.args,
                exit_code=result.exit_code,
                stdout=result.stdout,
                stderr=result.stderr,
            )

        if commands.formatter:
            formatted = await self._run_tool([*commands.formatter, *lint_files], timeout)
            if not formatted.ok:
                _logger.warning(
                    "pre_commit.formatter_failed",
                    exit_code=formatted.exit_code,
                    output=formatted.output[:500],
                )

        return LintingResult(
            status=StepStatus.PASSED,
            message=f"Linted {len(lint_files)} file(s)",
            files_processed=len(lint_files),
            output=self._clip(result.output) or None,
        )

    # -------------------------------------------------------------------------
    # fast tests
    # -------------------------------------------------------------------------

    async def _run_fast_tests(self: OrchestratorProtocol, files: list[str]) -> FastTestResult:
        command = self.config.commands.fast_tests
        if not command:
            return FastTestResult(
                status=StepStatus.SKIPPED,
                message="No fast test command configured",
            )

        cache_key = await self._test_cache_key(files)
        async with self.state.locks.acquire(FAST_TESTS_LOCK):
            cached = self._cached_test_result(cache_key)
            if cached is not None:
                _logger.info("pre_commit.test_cache_hit", cache_key=cache_key[:12])
                return FastTestResult(
                    status=StepStatus.PASSED,
                    message="Using cached test results",
                    tests_passed=cached.get("tests_passed", 0),
                    cached=True,
                )

            result = await self._run_tool(command, self.config.timeouts.fast_tests)
            passed, failed = parse_pytest_summary(result.output)

            if result.exit_code == PYTEST_NO_TESTS_COLLECTED:
                return FastTestResult(status=StepStatus.SKIPPED, message="No tests collected")
            if not result.ok:
                return FastTestResult(
                    status=StepStatus.FAILED,
                    message="Fast tests failed",
                    error=f"{failed or 'Some'} test(s) failed",
                    category=ErrorCategory.TEST_FAILURE.value,
                    tests_passed=passed,
                    tests_failed=failed,
                    output=self._clip(result.output),
                )

            self._store_test_result(cache_key, passed)
            return FastTestResult(
                status=StepStatus.PASSED,
                message=f"{passed} test(s) passed",
                tests_passed=passed,
                tests_failed=failed,
            )

    async def _test_cache_key(self: OrchestratorProtocol, files: list[str]) -> str:
        head = await self.git.head_sha() or "no-head"
        digest = hashlib.sha256("\n".join(sorted(files)).encode("utf-8")).hexdigest()
        return f"{head}-{digest[:16]}"

    def _load_test_cache(self: OrchestratorProtocol) -> dict[str, Any]:
        path = self.state.repository.resolve(self.config.paths.cache_file)
        if not path.exists():
            return {}
        try:
            data = json.loads(path.read_text())
        except (OSError, ValueError) as e:
            _logger.warning("pre_commit.test_cache_unreadable", path=str(path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def _cached_test_result(self: OrchestratorProtocol, cache_key: str) -> dict[str, Any] | None:
        entry = self._load_test_cache().get(cache_key)
        if not isinstance(entry, dict):
            return None
        if time.time() - entry.get("timestamp", 0) >= TEST_CACHE_TTL_SECONDS:
            return None
        return entry

    def _store_test_result(self: OrchestratorProtocol, cache_key: str, tests_passed: int) -> None:
        cache = self._load_test_cache()
        cache[cache_key] = {"timestamp": time.time(), "tests_passed": tests_passed}
        while len(cache) > TEST_CACHE_MAX_ENTRIES:
            oldest = min(cache, key=lambda k: cache[k].get("timestamp", 0))
            del cache[oldest]

        path = self.state.repository.resolve(self.config.paths.cache_file)
        temp_file = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_file.write_text(json.dumps(cache, indent=2))
            temp_file.replace(path)
        except OSError as e:
            _logger.warning("pre_commit.test_cache_write_failed", path=str(path), error=str(e))

    # -------------------------------------------------------------------------
    # context validation
    # -------------------------------------------------------------------------

    async def _validate_staged_context(
        self: OrchestratorProtocol,
        files: list[str],
    ) -> ContextValidationResult:
        journal = self.config.paths.journal
        code_changes = any(has_extension(f, self.config.code_extensions) for f in files)
        journal_staged = journal in files

        if code_changes and not journal_staged:
            return ContextValidationResult(
                status=StepStatus.FAILED,
                message=f"Code changes detected but {journal} not updated",
                category=ErrorCategory.MISSING_CONTEXT_UPDATE.value,
                code_changes=True,
                remediation=[f"Update {journal} to reflect current changes and stage it"],
            )

        if not journal_staged:
            return ContextValidationResult(
                status=StepStatus.PASSED,
                message="No code changes detected, context validation not required",
            )

        content = await self._read_journal() or ""
        if journal_content_ok(content):
            return ContextValidationResult(
                status=StepStatus.PASSED,
                message="Context validation passed",
                code_changes=code_changes,
                journal_updated=True,
            )
        return ContextValidationResult(
            status=StepStatus.WARNING,
            message="Context file may need more detail",
            code_changes=code_changes,
            journal_updated=True,
            issues=["Journal is short or lacks a date or description of current work"],
        )
