"""Global constants for hookwarden.

Centralizes the magic numbers and repository-relative paths used by the
pipelines, making them discoverable and easy to modify.
"""

from typing import Final

# =============================================================================
# Hook types
# =============================================================================

PRE_HOOKS: Final[frozenset[str]] = frozenset({
    "pre-commit",
    "commit-msg",
    "pre-push",
    "pre-rebase",
    "pre-receive",
})
"""Hook types that run before the repository mutation and may block it."""

POST_HOOKS: Final[frozenset[str]] = frozenset({
    "post-commit",
    "post-merge",
    "post-checkout",
})
"""Hook types that run after the mutation and never block."""

# =============================================================================
# Metrics history bounds
# =============================================================================

EXECUTION_HISTORY_CAPACITY = 100
"""Maximum execution records retained by the performance tracker."""

OPTIMIZATION_HISTORY_CAPACITY = 50
"""Maximum optimization recommendations retained by the performance tracker."""

RECENT_EXECUTIONS_WINDOW = 5
"""Window of recent executions inspected for bypass and optimization decisions."""

MIN_EXECUTIONS_FOR_DECISION = 3
"""Minimum executions in the window before a bypass/optimization decision is made."""

SLOW_EXECUTION_RATIO = 0.6
"""Share of slow executions above which a development-mode bypass is suggested."""

# =============================================================================
# Circuit breaker and locking
# =============================================================================

CIRCUIT_BREAKER_THRESHOLD = 3
"""Failures after which the persisted circuit breaker opens."""

CIRCUIT_BREAKER_DOCUMENT = "circuit-breaker.json"
"""File name of the persisted circuit-breaker document."""

LOCK_RETRIES = 10
LOCK_MIN_DELAY_SECONDS = 0.1
LOCK_MAX_DELAY_SECONDS = 1.0
LOCK_STALE_SECONDS = 60.0
"""Age after which a lock whose owner process is gone may be broken.

Must exceed the longest timeout of any operation run under a lock."""

# =============================================================================
# Repository paths (relative to the repository root)
# =============================================================================

JOURNAL_FILE = "activeContext.md"
METRICS_FILE = ".github/metrics/project-metrics.json"
REPORTS_DIR = ".github/reports"
CONTEXTS_DIR = ".github/contexts"
HOOKWARDEN_DIR = ".git/hookwarden"
AUDIT_LOG_FILE = ".git/hookwarden/audit.log"
LOCK_DIR = ".git/hookwarden/locks"
HOOK_CACHE_DIR = ".git/hookwarden/cache"
TEST_CACHE_FILE = ".git/hookwarden-cache.json"
PERFORMANCE_FILE = ".git/hookwarden/performance.json"
CONFIG_FILE_NAME = ".hookwarden.yaml"

# =============================================================================
# Git conventions
# =============================================================================

STATE_BRANCH = "hookwarden-state"
"""Orphan branch holding the key/value state store."""

ZERO_SHA = "0" * 40
"""Sha git passes for a ref that does not exist on one side of an update."""

DEFAULT_PROTECTED_BRANCHES: Final[tuple[str, ...]] = ("main", "master", "production")

BMAD_COMMIT_PATTERN = r"^\[([A-Z_]+)\]\s+\[([A-Z]+-\d+)\]\s+(.+)$"
"""Structured commit subject: ``[PERSONA] [STEP-ID] Description``."""

# =============================================================================
# Test result cache
# =============================================================================

TEST_CACHE_TTL_SECONDS = 300
TEST_CACHE_MAX_ENTRIES = 10

# =============================================================================
# Push size limits (pre-receive)
# =============================================================================

PUSH_SIZE_FAIL_THRESHOLD = 50
PUSH_SIZE_WARN_THRESHOLD = 20

TRUNCATE_OUTPUT_CHARS = 2000
"""Maximum characters of tool output stored on a step result."""
