"""Rolling window of the most recent race times."""

from __future__ import annotations

from typing import Iterator, List, Optional, Sequence, Tuple


HISTORY_SIZE = 4

HistoryEntry = Tuple[float, ...]


class ResultHistory:
    """Fixed size ring of lane time vectors.

    ``push`` overwrites the oldest slot once the ring is full. ``recent``
    walks backwards from the slot written last, so the newest race comes
    first.
    """

    def __init__(self, capacity: int = HISTORY_SIZE) -> None:
        if capacity < 1:
            raise ValueError("history capacity must be at least 1")
        self.capacity = capacity
        self._slots: List[Optional[HistoryEntry]] = [None] * capacity
        self._head = 0
        self._count = 0

    def push(self, entry: Sequence[float]) -> None:
        self._slots[self._head] = tuple(entry)
        self._head = (self._head + 1) % self.capacity
        self._count = min(self._count + 1, self.capacity)

    def recent(self) -> List[HistoryEntry]:
        entries: List[HistoryEntry] = []
        idx = self._head
        for _ in range(self._count):
            idx = (idx - 1) % self.capacity
            entry = self._slots[idx]
            if entry is not None:
                entries.append(entry)
        return entries

    def __iter__(self) -> Iterator[HistoryEntry]:
        return iter(self.recent())

    def __len__(self) -> int:
        return self._count
