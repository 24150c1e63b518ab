"""Tests for hookwarden.execution.performance and the ring buffer behind it."""

from pathlib import Path

import pytest

from hookwarden.execution.performance import PerformanceTracker
from hookwarden.utils.ring_buffer import RingBuffer


class FakeClock:
    """Monotonic clock advanced by hand (seconds)."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, milliseconds: float) -> None:
        self.now += milliseconds / 1000


def _run(tracker: PerformanceTracker, clock: FakeClock, event: str, ms: float, ok=True):
    execution_id = tracker.start(event)
    clock.advance(ms)
    return tracker.end(execution_id, ok)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def tracker(clock: FakeClock) -> PerformanceTracker:
    return PerformanceTracker(
        performance_threshold=10000,
        optimization_threshold=5000,
        clock=clock,
    )


class TestRingBuffer:
    """Tests for RingBuffer."""

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            RingBuffer(0)

    def test_evicts_oldest(self):
        buffer = RingBuffer(3, items=[1, 2, 3, 4, 5])
        assert list(buffer) == [3, 4, 5]
        assert len(buffer) == 3

    def test_latest(self):
        buffer = RingBuffer(5, items=[1, 2, 3])
        assert buffer.latest(2) == [2, 3]
        assert buffer.latest(10) == [1, 2, 3]
        assert buffer.latest(0) == []

    def test_clear(self):
        buffer = RingBuffer(2, items=["a"])
        buffer.clear()
        assert list(buffer) == []
        buffer.append("b")
        assert list(buffer) == ["b"]


class TestExecutionLifecycle:
    """Tests for start/end bookkeeping."""

    def test_records_duration_in_milliseconds(self, tracker, clock):
        outcome = _run(tracker, clock, "pre-commit", 250)
        assert outcome.duration == pytest.approx(250)
        assert outcome.performance_threshold_met is True
        assert outcome.optimizable is False
        assert outcome.record is not None
        assert outcome.record.event_type == "pre-commit"

    def test_execution_id_includes_event_type(self, tracker):
        assert tracker.start("pre-push").startswith("pre-push-")

    def test_unknown_id_returns_error(self, tracker):
        outcome = tracker.end("pre-commit-0-deadbeef")
        assert outcome.error is not None
        assert "No open execution" in outcome.error
        assert len(tracker.executions) == 0

    def test_end_is_idempotent(self, tracker, clock):
        execution_id = tracker.start("pre-commit")
        clock.advance(10)
        tracker.end(execution_id)
        assert tracker.end(execution_id).error is not None
        assert len(tracker.executions) == 1

    def test_thresholds(self, tracker, clock):
        slow = _run(tracker, clock, "pre-push", 12000)
        assert slow.performance_threshold_met is False
        assert slow.optimizable is True

    def test_history_is_capped_at_100(self, tracker, clock):
        for _ in range(130):
            _run(tracker, clock, "pre-commit", 5)
        assert len(tracker.executions) == 100
        assert tracker.get_metrics()["total_executions"] == 100

    def test_history_below_cap_keeps_everything(self, tracker, clock):
        for _ in range(7):
            _run(tracker, clock, "pre-commit", 5)
        assert tracker.get_metrics()["total_executions"] == 7


class TestOptimizations:
    """Tests for optimization detection."""

    def test_needs_three_slow_runs(self, tracker, clock):
        _run(tracker, clock, "pre-commit", 12000)
        _run(tracker, clock, "pre-commit", 12000)
        assert tracker.get_optimization_recommendations() == []
        _run(tracker, clock, "pre-commit", 12000)
        recommendations = tracker.get_optimization_recommendations()
        assert len(recommendations) == 1
        assert recommendations[0].event_type == "pre-commit"
        assert "Move comprehensive tests to pre-push hook" in recommendations[0].recommendations

    def test_disabled_optimizations(self, clock):
        tracker = PerformanceTracker(enable_optimizations=False, clock=clock)
        for _ in range(5):
            _run(tracker, clock, "pre-commit", 12000)
        assert tracker.get_optimization_recommendations() == []

    def test_optimization_history_is_capped_at_50(self, tracker, clock):
        for _ in range(60):
            _run(tracker, clock, "post-commit", 9000)
        assert len(tracker.optimizations) == 50

    def test_recommendations_for_pre_push(self, tracker):
        recs = tracker.recommendations_for("pre-push", 40000)
        assert "Consider parallel test execution" in recs
        assert "Enable development mode bypass for faster local workflow" in recs

    def test_generic_recommendations_for_unknown_hook(self, tracker):
        recs = tracker.recommendations_for("pre-rebase", 6000)
        assert recs == [
            "Review hook execution performance",
            "Consider optimization strategies for this hook type",
        ]

    def test_no_recommendations_below_threshold(self, tracker):
        assert tracker.recommendations_for("commit-msg", 100) == []


class TestMetrics:
    """Tests for aggregate metrics."""

    def test_empty_metrics(self, tracker):
        metrics = tracker.get_metrics()
        assert metrics["total_executions"] == 0
        assert metrics["by_hook_type"] == {}

    def test_aggregates(self, tracker, clock):
        _run(tracker, clock, "pre-commit", 100)
        _run(tracker, clock, "pre-commit", 300, ok=False)
        _run(tracker, clock, "pre-push", 200)
        metrics = tracker.get_metrics()
        assert metrics["total_executions"] == 3
        assert metrics["average_duration"] == pytest.approx(200)
        assert metrics["success_rate"] == pytest.approx(2 / 3)
        by_hook = metrics["by_hook_type"]["pre-commit"]
        assert by_hook["count"] == 2
        assert by_hook["average_duration"] == pytest.approx(200)
        assert by_hook["success_rate"] == pytest.approx(0.5)

    def test_clear_metrics(self, tracker, clock):
        _run(tracker, clock, "pre-commit", 100)
        tracker.clear_metrics()
        assert tracker.get_metrics()["total_executions"] == 0


class TestDevelopmentBypass:
    """Tests for should_bypass_in_development."""

    def test_off_outside_development_mode(self, tracker, clock):
        for _ in range(5):
            _run(tracker, clock, "pre-commit", 20000)
        assert tracker.should_bypass_in_development() is False

    def test_mostly_slow_runs_suggest_bypass(self, clock):
        tracker = PerformanceTracker(development_mode=True, clock=clock)
        for _ in range(4):
            _run(tracker, clock, "pre-commit", 20000)
        _run(tracker, clock, "pre-commit", 10)
        assert tracker.should_bypass_in_development() is True

    def test_needs_enough_history(self, clock):
        tracker = PerformanceTracker(development_mode=True, clock=clock)
        _run(tracker, clock, "pre-commit", 20000)
        _run(tracker, clock, "pre-commit", 20000)
        assert tracker.should_bypass_in_development() is False


class TestPersistence:
    """Tests for export_metrics/load_metrics."""

    def test_round_trip(self, tracker, clock, tmp_path: Path):
        for _ in range(3):
            _run(tracker, clock, "pre-commit", 12000)
        path = tmp_path / "perf" / "performance.json"
        tracker.export_metrics(path)

        restored = PerformanceTracker(clock=clock)
        assert restored.load_metrics(path) == 3
        assert restored.get_metrics()["total_executions"] == 3
        assert len(restored.get_optimization_recommendations()) == 1

    def test_load_missing_file(self, tracker, tmp_path: Path):
        assert tracker.load_metrics(tmp_path / "missing.json") == 0

    def test_load_corrupt_file(self, tracker, tmp_path: Path):
        path = tmp_path / "performance.json"
        path.write_text("{not json")
        assert tracker.load_metrics(path) == 0

    def test_interleaved_processes_keep_each_others_records(self, clock, tmp_path: Path):
        path = tmp_path / "performance.json"
        seed = PerformanceTracker(clock=clock)
        _run(seed, clock, "pre-commit", 100)
        seed.save_history(path)

        first = PerformanceTracker(clock=clock)
        second = PerformanceTracker(clock=clock)
        first.load_metrics(path)
        second.load_metrics(path)
        _run(first, clock, "pre-push", 200)
        _run(second, clock, "post-commit", 300)
        assert first.save_history(path) == 1
        assert second.save_history(path) == 1

        restored = PerformanceTracker(clock=clock)
        assert restored.load_metrics(path) == 3
        assert sorted(r.event_type for r in restored.executions) == [
            "post-commit",
            "pre-commit",
            "pre-push",
        ]

    def test_saving_twice_does_not_duplicate(self, tracker, clock, tmp_path: Path):
        path = tmp_path / "performance.json"
        _run(tracker, clock, "pre-commit", 100)
        tracker.save_history(path)
        assert tracker.save_history(path) == 0

        restored = PerformanceTracker(clock=clock)
        assert restored.load_metrics(path) == 1
