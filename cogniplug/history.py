"""Fixed-capacity, insertion-ordered history with oldest-first eviction.

Every list that must not grow without bound (intervention records, context
signatures, breakthrough snapshots, error logs) is a BoundedHistory.
"""

from __future__ import annotations

import itertools
from collections import deque
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Generic, TypeVar

from cogniplug.errors import InvalidConfiguration

T = TypeVar("T")


@dataclass(frozen=True)
class HistoryEntry(Generic[T]):
    """One stored item with its assigned id and insertion time."""

    id: str
    data: T
    timestamp: datetime


@dataclass(frozen=True)
class HistoryStats:
    """Size and eviction statistics."""

    size: int
    capacity: int
    overflow_count: int
    oldest_timestamp: datetime | None = None
    newest_timestamp: datetime | None = None


class BoundedHistory(Generic[T]):
    """FIFO-eviction collection of at most ``capacity`` items.

    Pushing onto a full history drops exactly one item, the oldest, and
    counts it in ``overflow_count``.
    """

    def __init__(self, capacity: int):
        if capacity <= 0:
            raise InvalidConfiguration(f"BoundedHistory capacity must be positive, got {capacity}")
        self._capacity = capacity
        self._entries: deque[HistoryEntry[T]] = deque()
        self._overflow_count = 0
        self._ids = itertools.count(1)

    def push(self, item: T) -> str:
        """Append ``item`` and return its id, evicting the oldest entry if full."""
        entry = HistoryEntry(id=f"item_{next(self._ids)}", data=item, timestamp=datetime.now(UTC))
        self._entries.append(entry)
        while len(self._entries) > self._capacity:
            self._entries.popleft()
            self._overflow_count += 1
        return entry.id

    def all(self) -> list[T]:
        """All items, oldest first."""
        return [e.data for e in self._entries]

    def recent(self, n: int) -> list[T]:
        """The last ``n`` items, oldest first."""
        if n <= 0:
            return []
        return [e.data for e in itertools.islice(self._entries, max(0, len(self) - n), None)]

    def find(self, predicate: Callable[[T], bool]) -> list[T]:
        return [e.data for e in self._entries if predicate(e.data)]

    def contains(self, predicate: Callable[[T], bool]) -> bool:
        return any(predicate(e.data) for e in self._entries)

    def get_by_id(self, item_id: str) -> T | None:
        for entry in self._entries:
            if entry.id == item_id:
                return entry.data
        return None

    def since(self, timestamp: datetime) -> list[T]:
        """Items pushed at or after ``timestamp``."""
        return [e.data for e in self._entries if e.timestamp >= timestamp]

    def entries(self) -> list[HistoryEntry[T]]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()
        self._overflow_count = 0

    def stats(self) -> HistoryStats:
        return HistoryStats(
            size=len(self._entries),
            capacity=self._capacity,
            overflow_count=self._overflow_count,
            oldest_timestamp=self._entries[0].timestamp if self._entries else None,
            newest_timestamp=self._entries[-1].timestamp if self._entries else None,
        )

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def overflow_count(self) -> int:
        """Number of items evicted since construction or the last clear()."""
        return self._overflow_count

    @property
    def is_empty(self) -> bool:
        return not self._entries

    @property
    def is_full(self) -> bool:
        return len(self._entries) >= self._capacity

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[T]:
        return (e.data for e in self._entries)

    def __repr__(self) -> str:
        return f"BoundedHistory(size={len(self)}, capacity={self._capacity})"

    @classmethod
    def from_items(cls, items: Iterable[T], capacity: int) -> BoundedHistory[T]:
        """Build a history by pushing ``items`` in order (only the tail survives)."""
        history: BoundedHistory[T] = cls(capacity)
        for item in items:
            history.push(item)
        return history

    @classmethod
    def merge(cls, histories: Iterable[BoundedHistory[T]], capacity: int) -> BoundedHistory[T]:
        """Concatenate histories in the given order into a new one."""
        merged: BoundedHistory[T] = cls(capacity)
        for history in histories:
            for item in history:
                merged.push(item)
        return merged
