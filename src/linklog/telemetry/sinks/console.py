"""Console sink: synchronous, human-readable emission of entries.

Line format:

    [2025-12-11T10:30:45.123Z] WARN [URLForm]: Shortcode taken {"shortcode": "abc"}

ERROR and FATAL entries are followed by their stack, indented. Output is
coloured per level; click strips the styling when the stream is not a
terminal. Without an explicit stream, DEBUG and INFO go to stdout and
WARN and above to stderr.
"""

from __future__ import annotations

__all__ = ["ConsoleSink", "LEVEL_STYLES", "format_console_line"]

import json
from typing import Any, TextIO

import click

from linklog.constants import PERFORMANCE_COMPONENT, SLOW_OPERATION_THRESHOLD_MS
from linklog.telemetry.models.entry import LogEntry, LogLevel
from linklog.utils.logging.iso_formatter import format_iso8601, utc_now

LEVEL_STYLES: dict[LogLevel, dict[str, Any]] = {
    LogLevel.DEBUG: {"dim": True},
    LogLevel.INFO: {"fg": "blue"},
    LogLevel.WARN: {"fg": "yellow"},
    LogLevel.ERROR: {"fg": "red"},
    LogLevel.FATAL: {"fg": "red", "bold": True},
}


def format_console_line(entry: LogEntry) -> str:
    """Render an entry as one unstyled console line."""
    component = f" [{entry.component}]" if entry.component else ""
    line = f"[{format_iso8601(entry.timestamp)}] {entry.level.value}{component}: {entry.message}"
    if entry.metadata:
        line += " " + json.dumps(entry.metadata, default=str)
    return line


class ConsoleSink:
    """Writes entries to the terminal."""

    def __init__(self, stream: TextIO | None = None, *, color: bool | None = None) -> None:
        """Initialize the sink.

        Args:
            stream: Destination for every line (default: stdout/stderr by level).
            color: Force styling on or off (default: only on a terminal).
        """
        self._stream = stream
        self._color = color

    def _echo(self, text: str, *, err: bool) -> None:
        if self._stream is not None:
            click.echo(text, file=self._stream, color=self._color)
        else:
            click.echo(text, err=err, color=self._color)

    def emit(self, entry: LogEntry) -> None:
        """Write one entry (and its stack, for ERROR and FATAL)."""
        metadata = entry.metadata or {}
        duration = metadata.get("duration")
        if (
            entry.component == PERFORMANCE_COMPONENT
            and entry.level == LogLevel.INFO
            and isinstance(duration, (int, float))
            and not isinstance(duration, bool)
        ):
            self.log_performance(str(metadata.get("label", entry.message)), float(duration))
            return

        err = entry.level >= LogLevel.WARN
        self._echo(click.style(format_console_line(entry), **LEVEL_STYLES[entry.level]), err=err)

        if entry.stack and entry.level >= LogLevel.ERROR:
            self._echo(click.style("Stack trace:", fg="red"), err=err)
            for line in entry.stack.rstrip().splitlines():
                self._echo(f"    {line}", err=err)

    def log_performance(self, label: str, duration_ms: float) -> None:
        """Write a timing line, highlighted when slower than one second."""
        slow = duration_ms > SLOW_OPERATION_THRESHOLD_MS
        text = f"[{format_iso8601(utc_now())}] PERF [{label}]: {duration_ms:.2f}ms"
        if slow:
            text += " (slow)"
        self._echo(click.style(text, fg="yellow" if slow else "blue", bold=True), err=False)
