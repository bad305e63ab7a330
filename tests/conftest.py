"""Shared fixtures for linklog tests."""

from __future__ import annotations

import sys
import threading
from collections.abc import Callable, Iterator
from datetime import datetime, timedelta, timezone
from itertools import count
from pathlib import Path
from typing import Any

import pytest

from linklog.telemetry import logger as logger_module
from linklog.telemetry.models.entry import LogEntry, LogLevel
from linklog.telemetry.session import SessionIdentity
from linklog.telemetry.sinks.storage import MemoryStorageBackend

BASE_TIME = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)

EntryMaker = Callable[..., LogEntry]


@pytest.fixture
def make_entry() -> EntryMaker:
    """Build entries with unique ids and timestamps one second apart."""
    counter = count()

    def _make(
        message: str = "Short URL created",
        level: LogLevel = LogLevel.INFO,
        *,
        component: str | None = "URLForm",
        metadata: dict[str, Any] | None = None,
        timestamp: datetime | None = None,
        **fields: Any,
    ) -> LogEntry:
        n = next(counter)
        return LogEntry(
            id=f"entry-{n}",
            timestamp=timestamp or BASE_TIME + timedelta(seconds=n),
            level=level,
            message=message,
            component=component,
            session_id=fields.pop("session_id", "session-1"),
            user_agent=fields.pop("user_agent", "pytest-agent"),
            metadata=metadata,
            stack=fields.pop("stack", "Traceback: test" if level >= LogLevel.ERROR else None),
            **fields,
        )

    return _make


@pytest.fixture
def memory_backend() -> MemoryStorageBackend:
    """Unbounded in-memory storage backend."""
    return MemoryStorageBackend()


@pytest.fixture
def session_identity(tmp_path: Path) -> Iterator[SessionIdentity]:
    """Session identity persisted under tmp_path, without exit tracking."""
    identity = SessionIdentity(tmp_path / "session.json", track_exit=False)
    yield identity
    identity.close()


@pytest.fixture
def emergency_log(tmp_path: Path) -> Path:
    """Path for the emergency log of a test."""
    return tmp_path / "emergency_log.jsonl"


@pytest.fixture(autouse=True)
def restore_process_hooks() -> Iterator[None]:
    """Undo hook installation by loggers a test did not destroy."""
    excepthook = sys.excepthook
    threading_excepthook = threading.excepthook
    yield
    sys.excepthook = excepthook
    threading.excepthook = threading_excepthook
    logger_module._active_instance = None
