"""File-tree key/value store.

Each key maps to a file below the store root. Writes go to a temp file that
is renamed into place, so readers never observe partial content.
"""

from pathlib import Path

from hookwarden.core.errors import StateStoreError
from hookwarden.core.logging import get_logger
from hookwarden.state.base import KeyValueStore, normalize_key

_logger = get_logger("state.file")

_TEMP_SUFFIX = ".tmp"


class FileKeyValueStore(KeyValueStore):
    """Stores each key as a plain file under ``root``."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def _path(self, key: str) -> Path:
        return self.root / normalize_key(key)

    async def read(self, key: str) -> str | None:
        path = self._path(key)
        if not path.is_file():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except OSError as e:
            raise StateStoreError(f"Failed to read state key {key}: {e}") from e

    async def write(self, key: str, content: str) -> None:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            temp_file = path.with_name(path.name + _TEMP_SUFFIX)
            temp_file.write_text(content, encoding="utf-8")
            temp_file.replace(path)
        except OSError as e:
            raise StateStoreError(f"Failed to write state key {key}: {e}") from e
        _logger.debug("state.written", key=key, backend="file", size=len(content))

    async def list_keys(self) -> list[str]:
        if not self.root.exists():
            return []
        return sorted(
            p.relative_to(self.root).as_posix()
            for p in self.root.rglob("*")
            if p.is_file() and not p.name.endswith(_TEMP_SUFFIX)
        )

    async def delete(self, key: str) -> bool:
        path = self._path(key)
        if path.is_file():
            path.unlink()
            return True
        return False
