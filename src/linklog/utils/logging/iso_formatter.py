"""Timestamp formatting for JSONL output and log entries.

Provides ISO 8601 timestamp formatting shared by the system logger's file
handler, the durable store and the export formats.
"""

from __future__ import annotations

__all__ = ["ISO8601Formatter", "format_iso8601", "utc_now"]

import json
import logging
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_iso8601(value: datetime) -> str:
    """Format a datetime as ISO 8601 UTC with millisecond precision.

    Naive datetimes are assumed to already be UTC.

    Format: YYYY-MM-DDTHH:MM:SS.sssZ
    Example: 2025-12-04T10:48:37.123Z
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ISO8601Formatter(logging.Formatter):
    """Custom formatter with ISO 8601 timestamps (UTC) for JSONL output.

    Format: YYYY-MM-DDTHH:MM:SS.sssZ
    Example: 2025-12-04T10:48:37.123Z
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSONL with ISO 8601 timestamp.

        Args:
            record: The log record to format

        Returns:
            str: JSON-formatted log entry with timestamp
        """
        timestamp = format_iso8601(datetime.fromtimestamp(record.created, tz=timezone.utc))

        # Handle dict messages (structured logging)
        if isinstance(record.msg, dict):
            log_data = record.msg
        else:
            log_data = {"message": str(record.msg)}

        # Add timestamp and level as first fields
        log_entry = {"time": timestamp, "level": record.levelname, **log_data}
        return json.dumps(log_entry, default=str)
