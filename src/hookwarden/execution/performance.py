"""Bounded performance tracking for hook executions.

Each lifecycle event opens an execution record on start and closes it on
end. Closed records land in a ring buffer (last 100) and slow hook types
produce optimization recommendations in a second ring buffer (last 50).
All aggregates are computed from the capped history only.
"""

from __future__ import annotations

import json
import secrets
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from hookwarden.core import constants
from hookwarden.core.logging import get_logger
from hookwarden.utils.ring_buffer import RingBuffer

_logger = get_logger("performance")


def _iso(epoch_seconds: float) -> str:
    return datetime.fromtimestamp(epoch_seconds, UTC).isoformat()


@dataclass
class ExecutionRecord:
    """One closed hook execution. Durations are milliseconds."""

    id: str
    event_type: str
    start_time: float
    end_time: float
    duration: float
    success: bool
    performance_threshold_met: bool
    optimizable: bool
    context: dict[str, Any] = field(default_factory=dict)

    @property
    def timestamp(self) -> str:
        return _iso(self.start_time)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExecutionRecord:
        return cls(
            id=data["id"],
            event_type=data["event_type"],
            start_time=float(data["start_time"]),
            end_time=float(data["end_time"]),
            duration=float(data["duration"]),
            success=bool(data["success"]),
            performance_threshold_met=bool(data["performance_threshold_met"]),
            optimizable=bool(data["optimizable"]),
            context=dict(data.get("context") or {}),
        )


@dataclass
class OptimizationRecommendation:
    """Advice produced when a hook type is consistently slow."""

    event_type: str
    observed_duration: float
    threshold: float
    recommendations: list[str]
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> OptimizationRecommendation:
        return cls(
            event_type=data["event_type"],
            observed_duration=float(data["observed_duration"]),
            threshold=float(data.get("threshold", 0)),
            recommendations=list(data.get("recommendations", [])),
            timestamp=data.get("timestamp") or datetime.now(UTC).isoformat(),
        )


@dataclass
class ExecutionOutcome:
    """Returned by :meth:`PerformanceTracker.end`.

    ``error`` is set (and no record is stored) when the execution id is
    unknown or was already closed.
    """

    duration: float = 0.0
    optimizable: bool = False
    performance_threshold_met: bool = True
    error: str | None = None
    record: ExecutionRecord | None = None


@dataclass
class _OpenExecution:
    event_type: str
    start_time: float
    context: dict[str, Any]


class PerformanceTracker:
    """Tracks hook durations against performance and optimization thresholds."""

    def __init__(
        self,
        performance_threshold: float = 10000,
        optimization_threshold: float = 5000,
        development_mode: bool = False,
        enable_optimizations: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.performance_threshold = performance_threshold
        self.optimization_threshold = optimization_threshold
        self.development_mode = development_mode
        self.enable_optimizations = enable_optimizations
        self._clock = clock
        self._open: dict[str, _OpenExecution] = {}
        self.executions: RingBuffer[ExecutionRecord] = RingBuffer(
            constants.EXECUTION_HISTORY_CAPACITY
        )
        self.optimizations: RingBuffer[OptimizationRecommendation] = RingBuffer(
            constants.OPTIMIZATION_HISTORY_CAPACITY
        )
        # Produced by this process and not yet merged into a shared history file
        self._pending_executions: list[ExecutionRecord] = []
        self._pending_optimizations: list[OptimizationRecommendation] = []

    def start(self, event_type: str, context: dict[str, Any] | None = None) -> str:
        """Open an execution record and return its id."""
        now = self._clock()
        execution_id = f"{event_type}-{int(now * 1000)}-{secrets.token_hex(4)}"
        self._open[execution_id] = _OpenExecution(event_type, now, dict(context or {}))
        return execution_id

    def end(self, execution_id: str, success: bool = True) -> ExecutionOutcome:
        """Close an execution record exactly once."""
        started = self._open.pop(execution_id, None)
        if started is None:
            _logger.warning("performance.unknown_execution", execution_id=execution_id)
            return ExecutionOutcome(
                error=f"No open execution found for id: {execution_id}",
            )

        end_time = self._clock()
        duration = max(0.0, (end_time - started.start_time) * 1000)
        record = ExecutionRecord(
            id=execution_id,
            event_type=started.event_type,
            start_time=started.start_time,
            end_time=end_time,
            duration=duration,
            success=success,
            performance_threshold_met=duration <= self.performance_threshold,
            optimizable=duration > self.optimization_threshold,
            context=started.context,
        )
        self.executions.append(record)
        self._pending_executions.append(record)

        _logger.debug(
            "performance.execution_recorded",
            event_type=record.event_type,
            duration_ms=round(duration, 1),
            success=success,
        )

        if record.optimizable and self.enable_optimizations:
            self._detect_optimization(record)

        return ExecutionOutcome(
            duration=duration,
            optimizable=record.optimizable,
            performance_threshold_met=record.performance_threshold_met,
            record=record,
        )

    def recent_executions(self, event_type: str, count: int) -> list[ExecutionRecord]:
        matching = [r for r in self.executions if r.event_type == event_type]
        return matching[-count:]

    def _detect_optimization(self, record: ExecutionRecord) -> None:
        recent = self.recent_executions(record.event_type, constants.RECENT_EXECUTIONS_WINDOW)
        if len(recent) < constants.MIN_EXECUTIONS_FOR_DECISION:
            return
        average = sum(r.duration for r in recent) / len(recent)
        if average <= self.optimization_threshold:
            return

        recommendation = OptimizationRecommendation(
            event_type=record.event_type,
            observed_duration=average,
            threshold=self.optimization_threshold,
            recommendations=self.recommendations_for(record.event_type, average),
        )
        self.optimizations.append(recommendation)
        self._pending_optimizations.append(recommendation)
        _logger.info(
            "performance.optimization_detected",
            event_type=record.event_type,
            average_duration_ms=round(average, 1),
        )

    def recommendations_for(self, event_type: str, average: float) -> list[str]:
        """Build the recommendation list for a slow hook type."""
        above = average > self.optimization_threshold
        recs: list[str] = []

        if event_type == "pre-commit":
            if average > 10000:
                recs += [
                    "Consider running only fast tests in pre-commit hook",
                    "Move comprehensive tests to pre-push hook",
                ]
            elif average > 5000:
                recs += ["Enable test result caching", "Run linting only on staged files"]
            elif above:
                recs += [
                    "Consider optimizing pre-commit validation steps",
                    "Enable caching for faster execution",
                ]
        elif event_type == "pre-push":
            if average > 30000:
                recs += [
                    "Consider parallel test execution",
                    "Optimize test suite for faster execution",
                ]
            elif above:
                recs += [
                    "Review test suite performance",
                    "Consider incremental testing strategies",
                ]
        elif event_type == "post-commit":
            if average > 8000:
                recs += [
                    "Move non-critical operations to background",
                    "Reduce documentation generation scope",
                ]
            elif above:
                recs += [
                    "Optimize post-commit automation tasks",
                    "Consider async processing for non-blocking operations",
                ]
        elif event_type == "post-merge" and above:
            recs += ["Optimize merge workflow execution", "Consider reducing validation scope"]
        elif event_type == "commit-msg" and above:
            recs += [
                "Optimize commit message validation",
                "Reduce context validation overhead",
            ]

        if average > self.performance_threshold * 2:
            recs += [
                "Enable development mode bypass for faster local workflow",
                "Review and optimize slow operations",
            ]

        if not recs and above:
            recs += [
                "Review hook execution performance",
                "Consider optimization strategies for this hook type",
            ]
        return recs

    def get_metrics(self) -> dict[str, Any]:
        """Aggregate metrics over the capped execution history."""
        executions = list(self.executions)
        optimizations = [o.to_dict() for o in self.optimizations]
        if not executions:
            return {
                "total_executions": 0,
                "average_duration": 0,
                "success_rate": 0,
                "performance_threshold_met_rate": 0,
                "optimizable_executions": 0,
                "by_hook_type": {},
                "recent_executions": [],
                "optimizations": optimizations,
            }

        total = len(executions)
        by_hook_type: dict[str, dict[str, Any]] = {}
        for event_type in dict.fromkeys(r.event_type for r in executions):
            hook_runs = [r for r in executions if r.event_type == event_type]
            by_hook_type[event_type] = {
                "count": len(hook_runs),
                "average_duration": sum(r.duration for r in hook_runs) / len(hook_runs),
                "success_rate": sum(1 for r in hook_runs if r.success) / len(hook_runs),
                "last_execution": hook_runs[-1].to_dict(),
            }

        return {
            "total_executions": total,
            "average_duration": sum(r.duration for r in executions) / total,
            "success_rate": sum(1 for r in executions if r.success) / total,
            "performance_threshold_met_rate": (
                sum(1 for r in executions if r.performance_threshold_met) / total
            ),
            "optimizable_executions": sum(1 for r in executions if r.optimizable),
            "by_hook_type": by_hook_type,
            "recent_executions": [r.to_dict() for r in executions[-10:]],
            "optimizations": optimizations,
        }

    def should_bypass_in_development(self) -> bool:
        """True when development mode is on and recent executions are mostly slow."""
        if not self.development_mode:
            return False
        recent = self.executions.latest(constants.RECENT_EXECUTIONS_WINDOW)
        if len(recent) < constants.MIN_EXECUTIONS_FOR_DECISION:
            return False
        slow = sum(1 for r in recent if r.duration > self.performance_threshold)
        return slow / len(recent) > constants.SLOW_EXECUTION_RATIO

    def get_optimization_recommendations(self) -> list[OptimizationRecommendation]:
        return list(self.optimizations)

    def clear_metrics(self) -> None:
        self.executions.clear()
        self.optimizations.clear()
        self._open.clear()
        self._pending_executions.clear()
        self._pending_optimizations.clear()

    def export_metrics(self, path: Path) -> None:
        """Write thresholds, history and aggregates as JSON."""
        payload = {
            "config": {
                "performance_threshold": self.performance_threshold,
                "optimization_threshold": self.optimization_threshold,
                "development_mode": self.development_mode,
            },
            "executions": [r.to_dict() for r in self.executions],
            "optimization_history": [o.to_dict() for o in self.optimizations],
            "metrics": self.get_metrics(),
            "timestamp": datetime.now(UTC).isoformat(),
        }
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_file = path.with_suffix(".json.tmp")
        with open(temp_file, "w") as f:
            json.dump(payload, f, indent=2)
        temp_file.replace(path)

    def load_metrics(self, path: Path) -> int:
        """Restore history written by :meth:`export_metrics`.

        Returns:
            Number of execution records loaded (after capping).
        """
        if not path.exists():
            return 0
        try:
            data = json.loads(path.read_text())
        except (OSError, json.JSONDecodeError) as e:
            _logger.warning("performance.load_failed", path=str(path), error=str(e))
            return 0

        self.executions.clear()
        self.optimizations.clear()
        for item in data.get("executions", []):
            try:
                self.executions.append(ExecutionRecord.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                _logger.debug("performance.skipped_record", error=str(e))
        for item in data.get("optimization_history", []):
            try:
                self.optimizations.append(OptimizationRecommendation.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                _logger.debug("performance.skipped_recommendation", error=str(e))
        return len(self.executions)

    def save_history(self, path: Path) -> int:
        """Merge this process's new records into the shared history at ``path``.

        The file is re-read first, so records another hook process wrote
        since :meth:`load_metrics` are kept. Callers serialize concurrent
        savers with the ``performance-history`` lock.

        Returns:
            Number of execution records merged.
        """
        executions = list(self._pending_executions)
        optimizations = list(self._pending_optimizations)

        self.load_metrics(path)
        known = {r.id for r in self.executions}
        for record in executions:
            if record.id not in known:
                self.executions.append(record)
        for recommendation in optimizations:
            self.optimizations.append(recommendation)
        self.export_metrics(path)

        self._pending_executions.clear()
        self._pending_optimizations.clear()
        _logger.debug("performance.history_saved", path=str(path), merged=len(executions))
        return len(executions)
