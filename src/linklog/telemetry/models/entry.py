"""Pydantic models for log entries and entry queries.

LogEntry is the one record type that flows through every sink. It is frozen
once created, serializes its timestamp as ISO 8601 UTC, and uses camelCase
keys on the wire and on disk (id, timestamp, level, message, component,
userId, sessionId, url, userAgent, metadata, stack), matching the CSV
export header.
"""

from __future__ import annotations

__all__ = [
    "LEVEL_ORDER",
    "LogEntry",
    "LogFilter",
    "LogLevel",
    "Metadata",
]

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, JsonValue, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from linklog.utils.logging.iso_formatter import format_iso8601

# Ordered mapping of string key to JSON-serializable value
Metadata = dict[str, JsonValue]


class LogLevel(str, Enum):
    """Entry severity, ordered DEBUG < INFO < WARN < ERROR < FATAL.

    Comparisons use severity order rather than string order.
    """

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    FATAL = "FATAL"

    @property
    def severity(self) -> int:
        """Position in the severity order (DEBUG is 0)."""
        return LEVEL_ORDER.index(self)

    @classmethod
    def parse(cls, value: "str | LogLevel") -> "LogLevel":
        """Parse a level name case-insensitively.

        Accepts the stdlib spellings "WARNING" and "CRITICAL" as aliases.

        Raises:
            ValueError: If the name is not a known level.
        """
        if isinstance(value, LogLevel):
            return value
        name = value.strip().upper()
        name = {"WARNING": "WARN", "CRITICAL": "FATAL"}.get(name, name)
        return cls(name)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self.severity < other.severity

    def __le__(self, other: object) -> bool:
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self.severity <= other.severity

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self.severity > other.severity

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, LogLevel):
            return NotImplemented
        return self.severity >= other.severity


LEVEL_ORDER: tuple[LogLevel, ...] = (
    LogLevel.DEBUG,
    LogLevel.INFO,
    LogLevel.WARN,
    LogLevel.ERROR,
    LogLevel.FATAL,
)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class LogEntry(BaseModel):
    """
    One immutable record of a logged event.

    Attributes:
        id: Unique id ("<epoch ms>-<random>").
        timestamp: Creation time (aware, UTC).
        level: Severity.
        message: Human-readable message.
        component: Emitting component (e.g. "URLForm"), if any.
        session_id: Session the entry belongs to.
        user_id: Acting user, if known.
        metadata: Ordered JSON-serializable key/value context.
        stack: Captured stack, present iff level >= ERROR.
        url: Originating URL (page or endpoint being served).
        user_agent: Client user-agent string.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str
    timestamp: datetime
    level: LogLevel
    message: str
    component: str | None = None
    session_id: str
    user_id: str | None = None
    metadata: Metadata | None = None
    stack: str | None = None
    url: str | None = None
    user_agent: str

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return format_iso8601(value)

    def to_record(self) -> dict[str, Any]:
        """Serialize to the persisted/wire JSON shape (camelCase, no nulls)."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "LogEntry":
        """Rebuild an entry from its persisted/wire JSON shape."""
        return cls.model_validate(record)


class LogFilter(BaseModel):
    """Predicate over durable entries.

    Every set field must match. ``search_term`` is a case-insensitive
    substring match over message and component; empty strings are ignored.

    Attributes:
        level: Exact level match.
        min_level: Threshold match (level >= min_level).
        component: Exact component match.
        start_date: Inclusive lower bound on timestamp.
        end_date: Inclusive upper bound on timestamp.
        search_term: Substring searched in message and component.
    """

    level: LogLevel | None = None
    min_level: LogLevel | None = None
    component: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    search_term: str | None = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _normalize_bounds(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value) if value is not None else None

    def matches(self, entry: LogEntry) -> bool:
        """Return True if the entry satisfies every set criterion."""
        if self.level is not None and entry.level != self.level:
            return False
        if self.min_level is not None and entry.level < self.min_level:
            return False
        if self.component and entry.component != self.component:
            return False
        if self.start_date is not None and entry.timestamp < self.start_date:
            return False
        if self.end_date is not None and entry.timestamp > self.end_date:
            return False
        if self.search_term:
            needle = self.search_term.lower()
            in_message = needle in entry.message.lower()
            in_component = entry.component is not None and needle in entry.component.lower()
            if not (in_message or in_component):
                return False
        return True
