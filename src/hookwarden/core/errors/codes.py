"""Error categories, severities and hook phases.

Contains the enums used to classify failures raised inside hook pipelines.

Error Taxonomy
==============

**Hard-blocking** (never auto-recovered, never bypassable)
    TEST_FAILURE, BUILD_FAILURE, SECURITY_VULNERABILITY,
    INVALID_COMMIT_MESSAGE, SYNTAX_ERROR, UNKNOWN_ERROR

**Recoverable-blocking**
    LINT_ERROR (eligible for auto-fix)

**Warning** (recoverable, bypassable)
    MISSING_CONTEXT_UPDATE, PERFORMANCE_THRESHOLD, DEPRECATED_USAGE,
    LOW_COVERAGE, LOCK_TIMEOUT

**Non-blocking** (logged, never block)
    NOTIFICATION_FAILURE, DOCUMENTATION_FAILURE, METRICS_FAILURE,
    CACHE_ERROR, UNKNOWN_POST_HOOK_ERROR

COMMAND_TIMEOUT is phase dependent: soft-blocking in pre-* hooks,
non-blocking in post-* hooks. It is never retried automatically.
"""

from __future__ import annotations

from enum import Enum

from hookwarden.core.constants import POST_HOOKS


class HookPhase(str, Enum):
    """Whether a hook runs before or after the repository mutation."""

    PRE = "pre"
    POST = "post"

    @classmethod
    def from_hook_type(cls, hook_type: str | None) -> HookPhase:
        """Derive the phase from a hook type name.

        Unknown or missing hook types are treated as pre-* so that
        unclassified failures err on the side of blocking.
        """
        if hook_type and (hook_type in POST_HOOKS or hook_type.startswith("post-")):
            return cls.POST
        return cls.PRE


class Severity(str, Enum):
    """How a classified error affects the running hook."""

    BLOCKING = "blocking"
    WARNING = "warning"
    NON_BLOCKING = "non-blocking"


class BlockingType(str, Enum):
    """Strength of a blocking or warning classification."""

    HARD = "hard"
    SOFT = "soft"


class ErrorCategory(str, Enum):
    """Categories produced by the error classifier."""

    # Blocking
    TEST_FAILURE = "TEST_FAILURE"
    BUILD_FAILURE = "BUILD_FAILURE"
    SECURITY_VULNERABILITY = "SECURITY_VULNERABILITY"
    INVALID_COMMIT_MESSAGE = "INVALID_COMMIT_MESSAGE"
    LINT_ERROR = "LINT_ERROR"
    SYNTAX_ERROR = "SYNTAX_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"

    # Warning
    MISSING_CONTEXT_UPDATE = "MISSING_CONTEXT_UPDATE"
    PERFORMANCE_THRESHOLD = "PERFORMANCE_THRESHOLD"
    DEPRECATED_USAGE = "DEPRECATED_USAGE"
    LOW_COVERAGE = "LOW_COVERAGE"
    LOCK_TIMEOUT = "LOCK_TIMEOUT"

    # Non-blocking
    NOTIFICATION_FAILURE = "NOTIFICATION_FAILURE"
    DOCUMENTATION_FAILURE = "DOCUMENTATION_FAILURE"
    METRICS_FAILURE = "METRICS_FAILURE"
    CACHE_ERROR = "CACHE_ERROR"
    UNKNOWN_POST_HOOK_ERROR = "UNKNOWN_POST_HOOK_ERROR"

    # Phase dependent
    COMMAND_TIMEOUT = "COMMAND_TIMEOUT"


RECOVERABLE_CATEGORIES: frozenset[ErrorCategory] = frozenset({
    ErrorCategory.LINT_ERROR,
    ErrorCategory.MISSING_CONTEXT_UPDATE,
    ErrorCategory.PERFORMANCE_THRESHOLD,
    ErrorCategory.LOW_COVERAGE,
    ErrorCategory.CACHE_ERROR,
    ErrorCategory.LOCK_TIMEOUT,
})
"""Categories with a registered automatic recovery action.

Blocking categories are recoverable only when listed here. Warning and
non-blocking classifications are always offered to the recovery registry,
which reports "No recovery strategy available" when nothing applies.
"""
