"""ErrorClassifier implementation for pattern-based error classification.

Maps an error raised inside a hook (exception, message string or an object
carrying ``message``/``code``) plus the hook phase to an
ErrorClassification. Blocking patterns are checked first, then warning,
then non-blocking; unmatched errors fall back to a phase default.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from hookwarden.core.logging import get_logger

from .codes import (
    RECOVERABLE_CATEGORIES,
    BlockingType,
    ErrorCategory,
    HookPhase,
    Severity,
)
from .exceptions import CommandTimeoutError, LockTimeoutError
from .models import ErrorClassification

_logger = get_logger("errors")


# =============================================================================
# Default pattern tables, checked in order within each severity.
# =============================================================================

_DEFAULT_BLOCKING_PATTERNS: list[tuple[str, ErrorCategory]] = [
    (r"test.*fail", ErrorCategory.TEST_FAILURE),
    (r"build.*fail", ErrorCategory.BUILD_FAILURE),
    (r"security.*vulnerabilit", ErrorCategory.SECURITY_VULNERABILITY),
    (r"invalid.*commit.*message", ErrorCategory.INVALID_COMMIT_MESSAGE),
    (r"lint.*error", ErrorCategory.LINT_ERROR),
    (r"syntax.*error", ErrorCategory.SYNTAX_ERROR),
]

_DEFAULT_WARNING_PATTERNS: list[tuple[str, ErrorCategory]] = [
    (r"context.*not.*updated", ErrorCategory.MISSING_CONTEXT_UPDATE),
    (r"performance.*threshold", ErrorCategory.PERFORMANCE_THRESHOLD),
    (r"deprecated", ErrorCategory.DEPRECATED_USAGE),
    (r"coverage.*below", ErrorCategory.LOW_COVERAGE),
]

_DEFAULT_NON_BLOCKING_PATTERNS: list[tuple[str, ErrorCategory]] = [
    (r"notification.*fail", ErrorCategory.NOTIFICATION_FAILURE),
    (r"documentation.*generation", ErrorCategory.DOCUMENTATION_FAILURE),
    (r"metrics.*update", ErrorCategory.METRICS_FAILURE),
    (r"cache.*error", ErrorCategory.CACHE_ERROR),
]


def _compile_patterns(
    patterns: list[tuple[str, ErrorCategory]],
) -> list[tuple[re.Pattern[str], ErrorCategory]]:
    return [(re.compile(p, re.IGNORECASE), category) for p, category in patterns]


def describe_error(error: Any) -> tuple[str, str | int | None]:
    """Extract (message, code) from an exception, string or mapping."""
    if isinstance(error, str):
        return error, None
    if isinstance(error, Mapping):
        return str(error.get("message", "")), error.get("code")
    message = getattr(error, "message", None) or str(error)
    code = getattr(error, "code", None)
    if code is None:
        code = getattr(error, "exit_code", None)
    return str(message), code


class ErrorClassifier:
    """Classifies hook errors into severity/category verdicts.

    The pattern tables can be extended per instance, which lets a project
    teach the classifier about its own tool output.

    Example:
        classifier = ErrorClassifier()
        verdict = classifier.classify("3 tests failed", "pre-commit")
        assert verdict.category == ErrorCategory.TEST_FAILURE
    """

    def __init__(
        self,
        blocking_patterns: list[tuple[str, ErrorCategory]] | None = None,
        warning_patterns: list[tuple[str, ErrorCategory]] | None = None,
        non_blocking_patterns: list[tuple[str, ErrorCategory]] | None = None,
    ) -> None:
        self.blocking_patterns = _compile_patterns(
            blocking_patterns if blocking_patterns is not None else _DEFAULT_BLOCKING_PATTERNS
        )
        self.warning_patterns = _compile_patterns(
            warning_patterns if warning_patterns is not None else _DEFAULT_WARNING_PATTERNS
        )
        self.non_blocking_patterns = _compile_patterns(
            non_blocking_patterns
            if non_blocking_patterns is not None
            else _DEFAULT_NON_BLOCKING_PATTERNS
        )

    def classify(self, error: Any, hook_type: str | None = None) -> ErrorClassification:
        """Classify an error for the given hook type.

        Args:
            error: Exception, message string, or mapping/object with
                ``message`` and ``code``.
            hook_type: Hook in which the error occurred (e.g. "post-commit").

        Returns:
            ErrorClassification for this occurrence.
        """
        phase = HookPhase.from_hook_type(hook_type)
        message, code = describe_error(error)

        if isinstance(error, CommandTimeoutError):
            return self._classify_timeout(message, code, phase)
        if isinstance(error, LockTimeoutError):
            return ErrorClassification(
                category=ErrorCategory.LOCK_TIMEOUT,
                severity=Severity.WARNING,
                blocking_type=BlockingType.SOFT,
                recoverable=True,
                bypassable=True,
                message=message,
                code=code,
                hook_phase=phase,
            )

        for pattern, category in self.blocking_patterns:
            if pattern.search(message):
                return ErrorClassification(
                    category=category,
                    severity=Severity.BLOCKING,
                    blocking_type=BlockingType.HARD,
                    recoverable=category in RECOVERABLE_CATEGORIES,
                    bypassable=False,
                    message=message,
                    code=code,
                    hook_phase=phase,
                )

        for pattern, category in self.warning_patterns:
            if pattern.search(message):
                return ErrorClassification(
                    category=category,
                    severity=Severity.WARNING,
                    blocking_type=BlockingType.SOFT,
                    recoverable=True,
                    bypassable=True,
                    message=message,
                    code=code,
                    hook_phase=phase,
                )

        for pattern, category in self.non_blocking_patterns:
            if pattern.search(message):
                return ErrorClassification(
                    category=category,
                    severity=Severity.NON_BLOCKING,
                    blocking_type=None,
                    recoverable=True,
                    bypassable=False,
                    message=message,
                    code=code,
                    hook_phase=phase,
                )

        _logger.debug("errors.unmatched", hook_type=hook_type, message=message[:200])
        return self._default_classification(message, code, phase)

    def _classify_timeout(
        self, message: str, code: str | int | None, phase: HookPhase
    ) -> ErrorClassification:
        if phase == HookPhase.POST:
            return ErrorClassification(
                category=ErrorCategory.COMMAND_TIMEOUT,
                severity=Severity.NON_BLOCKING,
                blocking_type=None,
                recoverable=False,
                bypassable=False,
                message=message,
                code=code,
                hook_phase=phase,
            )
        return ErrorClassification(
            category=ErrorCategory.COMMAND_TIMEOUT,
            severity=Severity.BLOCKING,
            blocking_type=BlockingType.SOFT,
            recoverable=False,
            bypassable=True,
            message=message,
            code=code,
            hook_phase=phase,
        )

    @staticmethod
    def _default_classification(
        message: str, code: str | int | None, phase: HookPhase
    ) -> ErrorClassification:
        if phase == HookPhase.POST:
            return ErrorClassification(
                category=ErrorCategory.UNKNOWN_POST_HOOK_ERROR,
                severity=Severity.NON_BLOCKING,
                blocking_type=None,
                recoverable=False,
                bypassable=False,
                message=message,
                code=code,
                hook_phase=phase,
            )
        # Unknown failures before a mutation block by default
        return ErrorClassification(
            category=ErrorCategory.UNKNOWN_ERROR,
            severity=Severity.BLOCKING,
            blocking_type=BlockingType.HARD,
            recoverable=False,
            bypassable=False,
            message=message,
            code=code,
            hook_phase=phase,
        )
