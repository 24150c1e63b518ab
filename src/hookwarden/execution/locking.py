"""Named cross-process locks backed by atomic directory creation.

Each lock is a directory ``<lock_dir>/<md5(name)>.lock``. ``mkdir`` is
atomic on every local filesystem git supports, so whichever process creates
the directory owns the lock. The owner writes ``owner.json`` with its pid,
host and a per-acquisition token.

A lock is only broken when it is older than the stale threshold AND its
owner is gone: a live owner on this host keeps its lock however long it
runs. Breaking is serialized through a ``.break`` guard directory and done
by renaming the lock to a unique tombstone, so two waiters can never both
break and then both acquire. Release only removes a lock that still carries
the releaser's token.

Example:
    locks = LockManager(git_dir / "hookwarden/locks")

    async with locks.acquire("project-metrics"):
        update_metrics_file()

    with locks.hold("bypass-audit"):
        append_audit_line()
"""

from __future__ import annotations

import asyncio
import hashlib
import json
import os
import random
import shutil
import socket
import time
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable, Iterator
from contextlib import asynccontextmanager, contextmanager
from pathlib import Path
from typing import Any, TypeVar

from hookwarden.core import constants
from hookwarden.core.errors import LockTimeoutError
from hookwarden.core.logging import get_logger

_logger = get_logger("locking")

T = TypeVar("T")

OWNER_FILE = "owner.json"


def _pid_alive(pid: int) -> bool:
    """Check whether a process with the given PID is alive."""
    try:
        os.kill(pid, 0)
        return True
    except ProcessLookupError:
        return False
    except PermissionError:
        return True  # Process exists but we can't signal it


class LockManager:
    """Acquires and releases named locks in a lock directory."""

    def __init__(
        self,
        lock_dir: Path,
        retries: int = constants.LOCK_RETRIES,
        min_delay: float = constants.LOCK_MIN_DELAY_SECONDS,
        max_delay: float = constants.LOCK_MAX_DELAY_SECONDS,
        stale_seconds: float = constants.LOCK_STALE_SECONDS,
    ) -> None:
        self.lock_dir = lock_dir
        self.retries = retries
        self.min_delay = min_delay
        self.max_delay = max_delay
        self.stale_seconds = stale_seconds
        self._host = socket.gethostname()
        # name -> token of each lock this manager currently holds
        self._tokens: dict[str, str] = {}

    def lock_path(self, name: str) -> Path:
        digest = hashlib.md5(name.encode("utf-8")).hexdigest()
        return self.lock_dir / f"{digest}.lock"

    # =========================================================================
    # Acquisition
    # =========================================================================

    def _try_acquire(self, name: str) -> bool:
        path = self.lock_path(name)
        self.lock_dir.mkdir(parents=True, exist_ok=True)
        if self._create(name, path):
            return True
        if self._break_if_stale(name, path):
            return self._create(name, path)
        return False

    def _create(self, name: str, path: Path) -> bool:
        try:
            path.mkdir()
        except FileExistsError:
            return False
        token = uuid.uuid4().hex
        owner = {
            "name": name,
            "pid": os.getpid(),
            "host": self._host,
            "token": token,
            "acquired_at": time.time(),
        }
        (path / OWNER_FILE).write_text(json.dumps(owner))
        self._tokens[name] = token
        return True

    @staticmethod
    def _read_owner(path: Path) -> dict[str, Any] | None:
        try:
            data = json.loads((path / OWNER_FILE).read_text())
        except (OSError, json.JSONDecodeError):
            return None
        return data if isinstance(data, dict) else None

    # =========================================================================
    # Stale locks
    # =========================================================================

    def _owner_alive(self, owner: dict[str, Any] | None) -> bool:
        if owner is None:
            return False
        pid = owner.get("pid")
        if owner.get("host") != self._host or not isinstance(pid, int):
            # Another host's processes cannot be signalled; fall back to age alone
            return False
        return _pid_alive(pid)

    def _is_stale(self, path: Path) -> bool:
        try:
            age = time.time() - path.stat().st_mtime
        except FileNotFoundError:
            return False
        if age <= self.stale_seconds:
            return False
        return not self._owner_alive(self._read_owner(path))

    def _break_if_stale(self, name: str, path: Path) -> bool:
        """Break an abandoned lock; True if the caller should retry ``mkdir``."""
        if not path.exists():
            # Released between mkdir and this check
            return True
        if not self._is_stale(path):
            return False

        guard = path.with_name(f"{path.name}.break")
        try:
            guard.mkdir()
        except FileExistsError:
            self._clear_abandoned_guard(guard)
            return False

        try:
            # Re-check under the guard: another breaker may have replaced it
            if not self._is_stale(path):
                return False
            tombstone = path.with_name(f"{path.name}.{uuid.uuid4().hex}.stale")
            try:
                path.rename(tombstone)
            except FileNotFoundError:
                return True
            owner = self._read_owner(tombstone) or {}
            shutil.rmtree(tombstone, ignore_errors=True)
            _logger.warning("lock.stale_broken", lock=name, owner_pid=owner.get("pid"))
            return True
        finally:
            try:
                guard.rmdir()
            except FileNotFoundError:
                pass

    def _clear_abandoned_guard(self, guard: Path) -> None:
        try:
            age = time.time() - guard.stat().st_mtime
        except FileNotFoundError:
            return
        if age > self.stale_seconds:
            try:
                guard.rmdir()
            except (FileNotFoundError, OSError):
                pass

    # =========================================================================
    # Release
    # =========================================================================

    def _release(self, name: str) -> None:
        path = self.lock_path(name)
        token = self._tokens.pop(name, None)
        owner = self._read_owner(path)
        if owner is not None and owner.get("token") != token:
            _logger.warning("lock.lost", lock=name, current_owner_pid=owner.get("pid"))
            return
        shutil.rmtree(path, ignore_errors=True)
        _logger.debug("lock.released", lock=name)

    def _delay(self) -> float:
        return random.uniform(self.min_delay, self.max_delay)

    @asynccontextmanager
    async def acquire(self, name: str) -> AsyncIterator[None]:
        """Hold ``name`` exclusively for the body of an ``async with``.

        Raises:
            LockTimeoutError: If the lock is still held after all retries.
        """
        for attempt in range(1, self.retries + 1):
            if self._try_acquire(name):
                _logger.debug("lock.acquired", lock=name, attempt=attempt)
                break
            if attempt < self.retries:
                await asyncio.sleep(self._delay())
        else:
            _logger.warning("lock.timeout", lock=name, attempts=self.retries)
            raise LockTimeoutError(name, self.retries)

        try:
            yield
        finally:
            self._release(name)

    @contextmanager
    def hold(self, name: str) -> Iterator[None]:
        """Synchronous counterpart of :meth:`acquire`.

        Sleeps between retries; async callers run it via ``asyncio.to_thread``.
        """
        for attempt in range(1, self.retries + 1):
            if self._try_acquire(name):
                _logger.debug("lock.acquired", lock=name, attempt=attempt)
                break
            if attempt < self.retries:
                time.sleep(self._delay())
        else:
            _logger.warning("lock.timeout", lock=name, attempts=self.retries)
            raise LockTimeoutError(name, self.retries)

        try:
            yield
        finally:
            self._release(name)

    async def with_lock(self, name: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Run ``operation`` while holding ``name``."""
        async with self.acquire(name):
            return await operation()

    def is_locked(self, name: str) -> bool:
        return self.lock_path(name).exists()
