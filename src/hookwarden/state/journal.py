"""Lock-protected access to shared repository files.

The running-context journal (``activeContext.md``) and the project metrics
document are touched by several hooks that may run concurrently (a
post-commit still updating metrics while the next pre-commit starts).
Every mutation here happens under a named lock and returns the sha256 of
the content written.
"""

from __future__ import annotations

import hashlib
from collections.abc import Callable
from pathlib import Path

from hookwarden.core.logging import get_logger
from hookwarden.execution.locking import LockManager
from hookwarden.state.base import KeyValueStore

_logger = get_logger("state.journal")

JOURNAL_LOCK = "journal"


def content_hash(content: str) -> str:
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


class JournalStore:
    """Reads and writes repository files under named locks.

    When ``mirror`` is set, every write is also stored in the key/value
    store under the same repository-relative path.
    """

    def __init__(
        self,
        repo_root: Path,
        locks: LockManager,
        mirror: KeyValueStore | None = None,
    ) -> None:
        self.repo_root = repo_root
        self.locks = locks
        self.mirror = mirror

    def path(self, rel_path: str) -> Path:
        return self.repo_root / rel_path

    def exists(self, rel_path: str) -> bool:
        return self.path(rel_path).is_file()

    async def read(self, rel_path: str) -> str | None:
        path = self.path(rel_path)
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    async def write(self, rel_path: str, content: str, lock: str = JOURNAL_LOCK) -> str:
        async with self.locks.acquire(lock):
            return await self._write_unlocked(rel_path, content)

    async def append(
        self,
        rel_path: str,
        text: str,
        header: str = "",
        lock: str = JOURNAL_LOCK,
    ) -> str:
        """Append ``text``; a missing file is started with ``header``."""
        async with self.locks.acquire(lock):
            current = await self.read(rel_path)
            content = (header if current is None else current) + text
            return await self._write_unlocked(rel_path, content)

    async def update(
        self,
        rel_path: str,
        transform: Callable[[str | None], str],
        lock: str = JOURNAL_LOCK,
    ) -> str:
        """Read-modify-write ``rel_path`` under a single lock acquisition."""
        async with self.locks.acquire(lock):
            content = transform(await self.read(rel_path))
            return await self._write_unlocked(rel_path, content)

    async def _write_unlocked(self, rel_path: str, content: str) -> str:
        path = self.path(rel_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        temp_file = path.with_name(path.name + ".tmp")
        temp_file.write_text(content, encoding="utf-8")
        temp_file.replace(path)

        if self.mirror is not None:
            await self.mirror.write(rel_path, content)

        digest = content_hash(content)
        _logger.debug("journal.written", path=rel_path, sha256=digest[:12])
        return digest
