"""Execution primitives: subprocesses, locks, circuit breaker, performance."""

from hookwarden.execution.circuit_breaker import CircuitBreakerState, PersistentCircuitBreaker
from hookwarden.execution.commands import (
    AsyncCommandRunner,
    CommandResult,
    CommandRunner,
    GitClient,
)
from hookwarden.execution.locking import LockManager
from hookwarden.execution.performance import (
    ExecutionOutcome,
    ExecutionRecord,
    OptimizationRecommendation,
    PerformanceTracker,
)

__all__ = [
    "AsyncCommandRunner",
    "CircuitBreakerState",
    "CommandResult",
    "CommandRunner",
    "ExecutionOutcome",
    "ExecutionRecord",
    "GitClient",
    "LockManager",
    "OptimizationRecommendation",
    "PerformanceTracker",
    "PersistentCircuitBreaker",
]
