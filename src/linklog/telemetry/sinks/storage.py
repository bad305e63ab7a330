"""Durable store: the bounded, persisted history of entries.

The store keeps its contents in memory and writes the full list through to
a backend on every ``store()``, so memory and persisted state only diverge
when a write fails (and then the in-memory list is left as it was).

Eviction policy:
- Capacity: after every write the list holds at most ``max_entries``
  entries, oldest discarded first.
- Quota: if the backend rejects a write because its byte quota is
  exhausted, the currently retained entries are halved (newest half kept)
  and the halved list is persisted on its own; if even that is rejected
  everything is discarded. The write is then retried exactly once. If the
  retry fails the entry is dropped and reported on the system logger and
  the emergency log; the failure is never logged through the pipeline
  itself. The halving stands either way.

Persisted layout: a JSON array of entry records, oldest first, with
ISO 8601 timestamps and metadata as nested JSON.
"""

from __future__ import annotations

__all__ = [
    "DurableStore",
    "FileStorageBackend",
    "MemoryStorageBackend",
    "StorageBackend",
]

import errno
import json
import threading
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from linklog.constants import DEFAULT_MAX_STORAGE_ENTRIES
from linklog.exceptions import StorageQuotaExceededError, StorageWriteError
from linklog.telemetry.models.entry import LogEntry, LogFilter
from linklog.telemetry.system.emergency_log import write_emergency_record
from linklog.telemetry.system.system_logger import get_system_logger
from linklog.utils.file_helpers import atomic_write_text

_system_logger = get_system_logger()

# OS errors that mean "out of space" rather than "broken"
_QUOTA_ERRNOS: frozenset[int] = frozenset(
    code for code in (getattr(errno, "ENOSPC", None), getattr(errno, "EDQUOT", None)) if code is not None
)


# =============================================================================
# Backends
# =============================================================================


@runtime_checkable
class StorageBackend(Protocol):
    """Protocol for where the serialized store lives.

    Implementations replace the whole document on each write. A write must
    either fully succeed or leave the previous document intact.

    Required methods:
    - read(): Current document, or None if nothing is stored
    - write(): Replace the document; raise StorageQuotaExceededError when a
      size bound rejects it, StorageWriteError for any other failure
    - delete(): Remove the document
    """

    def read(self) -> str | None:
        """Return the stored document, or None if absent."""
        ...

    def write(self, document: str) -> None:
        """Replace the stored document."""
        ...

    def delete(self) -> None:
        """Remove the stored document."""
        ...


def _check_quota(document: str, quota_bytes: int | None) -> None:
    if quota_bytes is None:
        return
    size = len(document.encode("utf-8"))
    if size > quota_bytes:
        raise StorageQuotaExceededError(
            f"Storage quota exceeded: {size} bytes > {quota_bytes} bytes",
            required_bytes=size,
            quota_bytes=quota_bytes,
        )


class FileStorageBackend:
    """JSON file backend with an optional byte quota.

    Writes are atomic (temporary file + rename). Disk-full conditions
    (ENOSPC, EDQUOT) are reported as quota exhaustion.
    """

    def __init__(self, path: Path, quota_bytes: int | None = None) -> None:
        """Initialize the backend.

        Args:
            path: File holding the store.
            quota_bytes: Maximum size of the document in bytes (None: unbounded).
        """
        self.path = path
        self.quota_bytes = quota_bytes

    def read(self) -> str | None:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def write(self, document: str) -> None:
        _check_quota(document, self.quota_bytes)
        try:
            atomic_write_text(self.path, document)
        except OSError as e:
            if e.errno in _QUOTA_ERRNOS:
                raise StorageQuotaExceededError(f"No space left for {self.path}: {e}") from e
            raise StorageWriteError(f"Failed to write {self.path}: {e}") from e

    def delete(self) -> None:
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageWriteError(f"Failed to delete {self.path}: {e}") from e


class MemoryStorageBackend:
    """In-process backend with an optional byte quota.

    Used by tests and by hosts that want an ephemeral store.
    """

    def __init__(self, quota_bytes: int | None = None, document: str | None = None) -> None:
        self.quota_bytes = quota_bytes
        self.document = document
        self.write_count = 0

    def read(self) -> str | None:
        return self.document

    def write(self, document: str) -> None:
        _check_quota(document, self.quota_bytes)
        self.document = document
        self.write_count += 1

    def delete(self) -> None:
        self.document = None


# =============================================================================
# Store
# =============================================================================


def _serialize(entries: list[LogEntry]) -> str:
    return json.dumps([entry.to_record() for entry in entries], separators=(",", ":"))


class DurableStore:
    """Bounded FIFO log history persisted through a StorageBackend.

    Thread-safe: all reads and writes of the entry list hold one lock.
    """

    def __init__(
        self,
        backend: StorageBackend,
        max_entries: int = DEFAULT_MAX_STORAGE_ENTRIES,
        *,
        emergency_log_path: Path | None = None,
    ) -> None:
        """Initialize the store and load previously persisted entries.

        Args:
            backend: Persistence backend.
            max_entries: Capacity; values below 1 are clamped to 1.
            emergency_log_path: Where dropped entries are recorded
                (default: the app directory's emergency log).
        """
        self._backend = backend
        self._max_entries = max(1, max_entries)
        self._emergency_log_path = emergency_log_path
        self._lock = threading.Lock()
        self.dropped_count = 0
        self._entries: list[LogEntry] = self._load()[-self._max_entries :]

    @property
    def max_entries(self) -> int:
        """Capacity of the store."""
        return self._max_entries

    @property
    def backend(self) -> StorageBackend:
        """The persistence backend."""
        return self._backend

    def store(self, entry: LogEntry) -> bool:
        """Append an entry and persist, trimming to capacity.

        Never raises. See the module docstring for the quota policy.

        Args:
            entry: Entry to persist.

        Returns:
            True if the entry was persisted, False if it was dropped.
        """
        with self._lock:
            candidate = [*self._entries, entry][-self._max_entries :]
            try:
                self._backend.write(_serialize(candidate))
            except StorageQuotaExceededError as e:
                return self._store_after_halving(entry, e)
            except StorageWriteError as e:
                self._report_dropped(entry, e, halved=False)
                return False

            self._entries = candidate
            return True

    def _store_after_halving(self, entry: LogEntry, quota_error: StorageQuotaExceededError) -> bool:
        # Caller holds the lock
        retained = self._entries
        keep = len(retained) // 2
        halved = retained[len(retained) - keep :] if keep else []

        _system_logger.warning(
            {
                "event": "storage_quota_exceeded",
                "message": f"Storage quota exceeded, halving retained entries ({len(retained)} -> {keep})",
                "error": str(quota_error),
            }
        )

        try:
            self._backend.write(_serialize(halved))
            self._entries = halved
        except StorageWriteError as e:
            _system_logger.warning(
                {
                    "event": "storage_halving_failed",
                    "message": f"Failed to persist halved entries, discarding all {len(retained)}",
                    "error": str(e),
                }
            )
            self._discard_all()

        candidate = [*self._entries, entry][-self._max_entries :]
        try:
            self._backend.write(_serialize(candidate))
        except StorageWriteError as e:
            self._report_dropped(entry, e, halved=True)
            return False

        self._entries = candidate
        return True

    def _report_dropped(self, entry: LogEntry, error: StorageWriteError, *, halved: bool) -> None:
        """Report a dropped entry out-of-band (system logger + emergency log)."""
        self.dropped_count += 1
        reason = f"{type(error).__name__}: {error}"
        _system_logger.error(
            {
                "event": "storage_write_dropped",
                "message": "Log entry dropped: durable store write failed"
                + (" after halving" if halved else ""),
                "error": reason,
                "entry_id": entry.id,
            }
        )
        write_emergency_record(
            entry.to_record(),
            failure_reason=reason,
            source="durable_store",
            path=self._emergency_log_path,
        )

    def retrieve(self, log_filter: LogFilter | None = None) -> list[LogEntry]:
        """Return stored entries matching the filter, newest first.

        Entries with equal timestamps are ordered by insertion, newest first.

        Args:
            log_filter: Optional predicate; None returns everything.

        Returns:
            Matching entries, newest first.
        """
        with self._lock:
            newest_first = list(reversed(self._entries))
        if log_filter is not None:
            newest_first = [entry for entry in newest_first if log_filter.matches(entry)]
        # sorted() is stable with reverse=True, so timestamp ties keep insertion order
        return sorted(newest_first, key=lambda entry: entry.timestamp, reverse=True)

    def clear(self) -> None:
        """Empty the store and remove the persisted document."""
        with self._lock:
            self._discard_all()

    def _discard_all(self) -> None:
        # Caller holds the lock
        self._entries = []
        try:
            self._backend.delete()
        except StorageWriteError as e:
            _system_logger.warning(
                {
                    "event": "storage_clear_failed",
                    "message": "Failed to remove persisted log entries",
                    "error": str(e),
                }
            )

    def entry_count(self) -> int:
        """Number of stored entries."""
        return len(self._entries)

    def storage_size(self) -> int:
        """Size in bytes of the serialized store."""
        with self._lock:
            return len(_serialize(self._entries).encode("utf-8"))

    def _load(self) -> list[LogEntry]:
        """Read persisted entries; unreadable data yields an empty store."""
        try:
            document = self._backend.read()
        except OSError as e:
            _system_logger.warning(
                {
                    "event": "storage_read_failed",
                    "message": "Failed to read persisted log entries, starting empty",
                    "error": str(e),
                }
            )
            return []

        if not document:
            return []

        try:
            records = json.loads(document)
        except json.JSONDecodeError as e:
            _system_logger.warning(
                {
                    "event": "storage_corrupt",
                    "message": "Persisted log entries are not valid JSON, starting empty",
                    "error": str(e),
                }
            )
            return []

        if not isinstance(records, list):
            return []

        entries: list[LogEntry] = []
        skipped = 0
        for record in records:
            try:
                entries.append(LogEntry.from_record(record))
            except ValidationError:
                skipped += 1

        if skipped:
            _system_logger.warning(
                {
                    "event": "storage_records_skipped",
                    "message": f"Skipped {skipped} invalid persisted log entries",
                }
            )
        return entries
