"""Fixed-capacity circular buffer.

Used for the performance tracker's execution and optimization histories so
memory stays bounded no matter how many hooks run in a process.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Generic, TypeVar

T = TypeVar("T")


class RingBuffer(Generic[T]):
    """Circular buffer with O(1) append that evicts the oldest item when full.

    Iteration yields items oldest to newest.
    """

    def __init__(self, capacity: int, items: Iterable[T] = ()) -> None:
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._items: list[T | None] = [None] * capacity
        self._start = 0
        self._size = 0
        for item in items:
            self.append(item)

    @property
    def capacity(self) -> int:
        return self._capacity

    def append(self, item: T) -> None:
        end = (self._start + self._size) % self._capacity
        self._items[end] = item
        if self._size < self._capacity:
            self._size += 1
        else:
            self._start = (self._start + 1) % self._capacity

    def clear(self) -> None:
        self._items = [None] * self._capacity
        self._start = 0
        self._size = 0

    def latest(self, count: int) -> list[T]:
        """Return up to ``count`` newest items, oldest first."""
        if count <= 0:
            return []
        items = list(self)
        return items[-count:]

    def __len__(self) -> int:
        return self._size

    def __iter__(self) -> Iterator[T]:
        for offset in range(self._size):
            item = self._items[(self._start + offset) % self._capacity]
            yield item  # type: ignore[misc]

    def __repr__(self) -> str:
        return f"RingBuffer(capacity={self._capacity}, size={self._size})"
