"""In-memory key/value store for tests and ephemeral runs."""

from hookwarden.state.base import KeyValueStore, normalize_key


class InMemoryKeyValueStore(KeyValueStore):
    """Dict-backed store. Contents are lost when the process exits."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = {}
        for key, content in (initial or {}).items():
            self._data[normalize_key(key)] = content

    async def read(self, key: str) -> str | None:
        return self._data.get(normalize_key(key))

    async def write(self, key: str, content: str) -> None:
        self._data[normalize_key(key)] = content

    async def list_keys(self) -> list[str]:
        return sorted(self._data)

    async def delete(self, key: str) -> bool:
        return self._data.pop(normalize_key(key), None) is not None
