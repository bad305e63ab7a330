"""Export and display formatting for entries.

Export formats:
- json: pretty-printed (indent 2) array of entry records; metadata is
  serialized to a JSON string so that every field is a scalar.
- csv: fixed header row, one row per entry, RFC 4180 quoting (fields with
  a comma, quote or newline are quoted, embedded quotes doubled).
"""

from __future__ import annotations

__all__ = ["CSV_HEADER", "EXPORT_FORMATS", "LogFormatter"]

import csv
import io
import json
from collections.abc import Sequence
from typing import Any

from linklog.telemetry.models.entry import LogEntry
from linklog.utils.logging.iso_formatter import format_iso8601

CSV_HEADER: tuple[str, ...] = (
    "id",
    "timestamp",
    "level",
    "message",
    "component",
    "userId",
    "sessionId",
    "url",
    "userAgent",
    "metadata",
)

EXPORT_FORMATS: tuple[str, ...] = ("json", "csv")


def _metadata_text(entry: LogEntry) -> str | None:
    if entry.metadata is None:
        return None
    return json.dumps(entry.metadata, separators=(",", ":"))


class LogFormatter:
    """Renders entries for export and display."""

    @classmethod
    def format(cls, entries: Sequence[LogEntry], fmt: str) -> str:
        """Serialize entries in an export format.

        Args:
            entries: Entries in output order.
            fmt: "json" or "csv" (case-insensitive).

        Returns:
            The serialized text.

        Raises:
            ValueError: If the format is unknown.
        """
        normalized = fmt.lower()
        if normalized == "json":
            return cls.to_json(entries)
        if normalized == "csv":
            return cls.to_csv(entries)
        raise ValueError(f"Unknown export format: {fmt!r} (expected one of: {', '.join(EXPORT_FORMATS)})")

    @staticmethod
    def to_json(entries: Sequence[LogEntry]) -> str:
        records: list[dict[str, Any]] = []
        for entry in entries:
            record = entry.to_record()
            metadata = _metadata_text(entry)
            if metadata is not None:
                record["metadata"] = metadata
            records.append(record)
        return json.dumps(records, indent=2)

    @staticmethod
    def to_csv(entries: Sequence[LogEntry]) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for entry in entries:
            writer.writerow(
                (
                    entry.id,
                    format_iso8601(entry.timestamp),
                    entry.level.value,
                    entry.message,
                    entry.component or "",
                    entry.user_id or "",
                    entry.session_id,
                    entry.url or "",
                    entry.user_agent,
                    _metadata_text(entry) or "",
                )
            )
        return buffer.getvalue()

    @staticmethod
    def format_single_entry(entry: LogEntry) -> str:
        """One-line rendering: "[ts] LEVEL [component]: message | {metadata}"."""
        component = f" [{entry.component}]" if entry.component else ""
        metadata = f" | {_metadata_text(entry)}" if entry.metadata else ""
        return f"[{format_iso8601(entry.timestamp)}] {entry.level.value}{component}: {entry.message}{metadata}"

    @staticmethod
    def format_stack_trace(stack: str | None) -> list[str]:
        """Split a stack into trimmed, non-empty lines."""
        if not stack:
            return []
        return [line.strip() for line in stack.splitlines() if line.strip()]
