"""TailBuffer: fixed-capacity FIFO of recent log entries with subscribers."""

from __future__ import annotations

import logging
import threading
from collections import deque
from collections.abc import Iterable, Iterator
from typing import Callable

from ..types import BufferChange, LogEntry

logger = logging.getLogger(__name__)

BufferListener = Callable[[BufferChange], None]


class TailBuffer:
    """Most-recent-N log entries in arrival order.

    Appending past ``capacity`` evicts from the head, oldest first. Every
    mutation is announced to subscribers after it has been applied, so a
    listener reading ``snapshot()`` always sees a consistent buffer.

    Thread-safe: the UI may read snapshots from another thread while the
    stream session appends.
    """

    DEFAULT_CAPACITY = 1000

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._entries: deque[LogEntry] = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self._listeners: list[BufferListener] = []
        self.total_appended = 0
        self.total_evicted = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[LogEntry]:
        return iter(self.snapshot())

    def snapshot(self) -> list[LogEntry]:
        """Copy of the current contents, oldest first."""
        with self._lock:
            return list(self._entries)

    def append(self, entry: LogEntry) -> None:
        with self._lock:
            evicted = 1 if len(self._entries) == self._capacity else 0
            self._entries.append(entry)  # deque(maxlen) drops the head
            self.total_appended += 1
            self.total_evicted += evicted
        self._notify(BufferChange(kind="append", entry=entry, evicted=evicted))

    def extend(self, entries: Iterable[LogEntry]) -> None:
        for entry in entries:
            self.append(entry)

    def clear(self) -> None:
        """Empty the buffer. Entry ids are not owned here and are unaffected."""
        with self._lock:
            self._entries.clear()
        self._notify(BufferChange(kind="clear"))

    def subscribe(self, listener: BufferListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, change: BufferChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                logger.exception("TailBuffer listener %r failed", listener)
