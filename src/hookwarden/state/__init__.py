"""State management: key/value stores and the lock-protected journal."""

from hookwarden.state.base import KeyValueStore
from hookwarden.state.file_backend import FileKeyValueStore
from hookwarden.state.git_backend import GitStateStore
from hookwarden.state.journal import JournalStore
from hookwarden.state.memory import InMemoryKeyValueStore

__all__ = [
    "FileKeyValueStore",
    "GitStateStore",
    "InMemoryKeyValueStore",
    "JournalStore",
    "KeyValueStore",
]
