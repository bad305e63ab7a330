"""Entry sinks.

- console: synchronous human-readable output
- storage: bounded persisted history with quota-pressure eviction
- remote: batched HTTP delivery with bounded retry
"""

from linklog.telemetry.sinks.console import ConsoleSink
from linklog.telemetry.sinks.remote import RemoteDelivery
from linklog.telemetry.sinks.storage import (
    DurableStore,
    FileStorageBackend,
    MemoryStorageBackend,
    StorageBackend,
)

__all__ = [
    "ConsoleSink",
    "DurableStore",
    "FileStorageBackend",
    "MemoryStorageBackend",
    "RemoteDelivery",
    "StorageBackend",
]
