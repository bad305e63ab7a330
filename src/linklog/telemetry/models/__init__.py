"""Pydantic models for entries, queries, wire payloads and the session record."""

from linklog.telemetry.models.entry import LEVEL_ORDER, LogEntry, LogFilter, LogLevel, Metadata
from linklog.telemetry.models.session import SessionRecord
from linklog.telemetry.models.wire import RemoteLogPayload

__all__ = [
    "LEVEL_ORDER",
    "LogEntry",
    "LogFilter",
    "LogLevel",
    "Metadata",
    "RemoteLogPayload",
    "SessionRecord",
]
