"""Persistent circuit breaker shared by every hook process in a repository.

Unlike an in-process breaker, the state lives in a small JSON document so
consecutive hook invocations (separate processes) see the same failure
count. The circuit opens once ``failures`` reaches the threshold and stays
open until ``reset_failure()`` is called after a successful recovery.

Example:
    breaker = PersistentCircuitBreaker(path, locks)
    if not breaker.is_circuit_open():
        ...
        breaker.record_failure()
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any

from hookwarden.core import constants
from hookwarden.core.logging import get_logger
from hookwarden.execution.locking import LockManager

_logger = get_logger("circuit_breaker")

LOCK_NAME = "circuit-breaker"


@dataclass
class CircuitBreakerState:
    """Persisted breaker document."""

    failures: int = 0
    is_open: bool = False
    last_failure_time: float | None = None
    first_failure_time: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CircuitBreakerState:
        return cls(
            failures=int(data.get("failures", 0)),
            is_open=bool(data.get("is_open", False)),
            last_failure_time=data.get("last_failure_time"),
            first_failure_time=data.get("first_failure_time"),
        )


class PersistentCircuitBreaker:
    """Failure counter persisted across hook processes."""

    def __init__(
        self,
        path: Path,
        locks: LockManager,
        threshold: int = constants.CIRCUIT_BREAKER_THRESHOLD,
    ) -> None:
        self.path = path
        self.locks = locks
        self.threshold = threshold

    def get_state(self) -> CircuitBreakerState:
        """Load the breaker document; missing or corrupt documents read as closed."""
        try:
            data = json.loads(self.path.read_text())
        except FileNotFoundError:
            return CircuitBreakerState()
        except (OSError, json.JSONDecodeError) as e:
            _logger.warning("circuit_breaker.load_failed", path=str(self.path), error=str(e))
            return CircuitBreakerState()
        if not isinstance(data, dict):
            return CircuitBreakerState()
        return CircuitBreakerState.from_dict(data)

    def is_circuit_open(self) -> bool:
        return self.get_state().is_open

    def record_failure(self) -> CircuitBreakerState:
        with self.locks.hold(LOCK_NAME):
            state = self.get_state()
            now = time.time()
            state.failures += 1
            state.last_failure_time = now
            if state.first_failure_time is None:
                state.first_failure_time = now
            was_open = state.is_open
            state.is_open = state.failures >= self.threshold
            self._save(state)

        if state.is_open and not was_open:
            _logger.warning(
                "circuit_breaker.opened",
                failures=state.failures,
                threshold=self.threshold,
            )
        else:
            _logger.debug("circuit_breaker.failure_recorded", failures=state.failures)
        return state

    def reset_failure(self) -> CircuitBreakerState:
        with self.locks.hold(LOCK_NAME):
            previous = self.get_state()
            state = CircuitBreakerState()
            self._save(state)
        if previous.failures:
            _logger.info("circuit_breaker.reset", previous_failures=previous.failures)
        return state

    def _save(self, state: CircuitBreakerState) -> None:
        """Write the document atomically (temp file + rename)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_file = self.path.with_suffix(".json.tmp")
        with open(temp_file, "w") as f:
            json.dump(state.to_dict(), f, indent=2)
        temp_file.replace(self.path)
