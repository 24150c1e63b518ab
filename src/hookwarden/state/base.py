"""Abstract base for key/value state stores."""

from abc import ABC, abstractmethod


class KeyValueStore(ABC):
    """Abstract base class for hook state storage.

    Keys are logical slash-separated paths (``contexts/feature-x.md``).
    Implementations do no locking of their own; callers that need exclusive
    access wrap operations in ``LockManager.with_lock``.
    """

    @abstractmethod
    async def read(self, key: str) -> str | None:
        """Read the content stored under a key.

        Args:
            key: Logical path of the blob

        Returns:
            Content if found, None otherwise
        """
        ...

    @abstractmethod
    async def write(self, key: str, content: str) -> None:
        """Store content under a key, replacing any previous value.

        Args:
            key: Logical path of the blob
            content: Text to store
        """
        ...

    @abstractmethod
    async def list_keys(self) -> list[str]:
        """List all stored keys.

        Returns:
            Sorted list of keys
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Delete a key.

        Args:
            key: Logical path of the blob

        Returns:
            True if deleted, False if not found
        """
        ...


def normalize_key(key: str) -> str:
    """Validate and normalize a logical key.

    Raises:
        ValueError: If the key is empty or escapes the store root.
    """
    parts = [p for p in key.replace("\\", "/").split("/") if p not in ("", ".")]
    if not parts:
        raise ValueError("State key must not be empty")
    if any(p == ".." for p in parts):
        raise ValueError(f"State key must not contain '..': {key}")
    return "/".join(parts)
