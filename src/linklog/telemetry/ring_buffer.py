"""Bounded, lossy FIFO staging area for remote delivery.

The ring buffer is not an audit log: when it is full the oldest entry is
dropped so that memory stays bounded no matter how fast entries arrive or
how long the remote endpoint stays down. The durable store keeps the
audit trail.

Guarded by a lock so that entries logged from exception hooks on other
threads cannot interleave with a drain.
"""

from __future__ import annotations

__all__ = ["RingBuffer"]

import threading
from collections import deque
from collections.abc import Iterable

from linklog.constants import DEFAULT_BUFFER_SIZE
from linklog.telemetry.models.entry import LogEntry


class RingBuffer:
    """Fixed-capacity FIFO of entries awaiting a flush.

    Example:
        >>> buffer = RingBuffer(max_size=2)
        >>> for entry in (x, y, z):
        ...     buffer.add(entry)
        >>> buffer.peek() == [y, z]
        True
    """

    def __init__(self, max_size: int = DEFAULT_BUFFER_SIZE) -> None:
        """Initialize the buffer.

        Args:
            max_size: Capacity; values below 1 are clamped to 1.
        """
        self._max_size = max(1, max_size)
        self._entries: deque[LogEntry] = deque()
        self._lock = threading.Lock()

    def add(self, entry: LogEntry) -> None:
        """Append an entry, dropping the oldest if capacity is exceeded."""
        with self._lock:
            self._entries.append(entry)
            self._trim()

    def flush(self) -> list[LogEntry]:
        """Snapshot and empty the buffer in one step.

        Entries added after this call land in a fresh, empty buffer.

        Returns:
            The drained entries, oldest first.
        """
        with self._lock:
            drained = list(self._entries)
            self._entries = deque()
        return drained

    def requeue(self, entries: Iterable[LogEntry]) -> None:
        """Put a failed batch back in front of anything added since it was drained.

        The whole batch goes back in one step. If the combined contents exceed
        capacity, the oldest entries are dropped as with ``add``.

        Args:
            entries: The batch returned by ``flush``, oldest first.
        """
        with self._lock:
            self._entries = deque([*entries, *self._entries])
            self._trim()

    def peek(self) -> list[LogEntry]:
        """Return a copy of the contents, oldest first."""
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        """Drop all buffered entries."""
        with self._lock:
            self._entries.clear()

    def size(self) -> int:
        """Number of buffered entries."""
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def is_full(self) -> bool:
        """True when the buffer holds ``max_size`` entries."""
        return len(self._entries) >= self._max_size

    def is_empty(self) -> bool:
        """True when no entries are buffered."""
        return not self._entries

    def oldest(self) -> LogEntry | None:
        """The next entry that would be dropped, or None."""
        with self._lock:
            return self._entries[0] if self._entries else None

    def newest(self) -> LogEntry | None:
        """The most recently added entry, or None."""
        with self._lock:
            return self._entries[-1] if self._entries else None

    def remove_oldest(self) -> LogEntry | None:
        """Pop and return the oldest entry, or None if empty."""
        with self._lock:
            return self._entries.popleft() if self._entries else None

    @property
    def max_size(self) -> int:
        """Current capacity."""
        return self._max_size

    def set_max_size(self, max_size: int) -> None:
        """Change capacity, trimming oldest entries if shrinking.

        Args:
            max_size: New capacity; values below 1 are clamped to 1.
        """
        with self._lock:
            self._max_size = max(1, max_size)
            self._trim()

    def _trim(self) -> None:
        # Caller holds the lock
        while len(self._entries) > self._max_size:
            self._entries.popleft()
