"""System logger for the pipeline's own operational events.

This module provides a singleton stdlib logger for everything the pipeline
needs to say about itself (sink failures, dropped durable writes, failed
remote flushes, hook installation problems). It is deliberately separate
from the entry pipeline: reporting a pipeline failure must never feed a new
entry back into the pipeline that just failed.

Logging strategy:
- Console (stderr): WARNING and above by default
- File (optional JSONL): added via configure_system_logger_file()
"""

from __future__ import annotations

__all__ = [
    "ConsoleFormatter",
    "configure_system_logger_file",
    "get_system_logger",
]

import logging
import sys
from pathlib import Path

from linklog.constants import APP_NAME
from linklog.utils.file_helpers import ensure_secure_directory
from linklog.utils.logging.iso_formatter import ISO8601Formatter


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for console output.

    Extracts 'message' or 'event' field from dict messages for cleaner stderr output.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for human-readable console output.

        Args:
            record: The log record to format.

        Returns:
            str: Formatted log message with level prefix.
        """
        if isinstance(record.msg, dict):
            msg = record.msg.get("message") or record.msg.get("event", "")
            error = record.msg.get("error")
            if error:
                msg = f"{msg} ({error})"
            return f"{APP_NAME} {record.levelname}: {msg}"
        return f"{APP_NAME} {record.levelname}: {record.msg}"


# Module-level singleton logger - initialized once on first use
_system_logger: logging.Logger | None = None
_file_handler_path: Path | None = None


def get_system_logger() -> logging.Logger:
    """Get the singleton system logger instance.

    Creates the logger on first call with a stderr handler only.

    Returns:
        logging.Logger: Configured system logger instance.

    Example:
        >>> logger = get_system_logger()
        >>> logger.warning({"event": "storage_write_dropped", "message": "..."})
    """
    global _system_logger

    if _system_logger is not None:
        return _system_logger

    _system_logger = logging.getLogger(f"{APP_NAME}.system")
    _system_logger.setLevel(logging.INFO)
    _system_logger.propagate = False  # Don't propagate to root logger

    # Close and remove any existing handlers to avoid duplicates and resource leaks
    for handler in _system_logger.handlers:
        handler.close()
    _system_logger.handlers.clear()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(logging.WARNING)
    stderr_handler.setFormatter(ConsoleFormatter())
    _system_logger.addHandler(stderr_handler)

    return _system_logger


def configure_system_logger_file(log_path: Path, level: int = logging.INFO) -> None:
    """Add a JSONL file handler to the system logger.

    Calling again with the same path is a no-op; a different path replaces
    the previous file handler.

    Args:
        log_path: Path to the JSONL file.
        level: Minimum level written to the file.
    """
    global _file_handler_path

    if _file_handler_path == log_path:
        return

    logger = get_system_logger()

    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler):
            handler.close()
            logger.removeHandler(handler)

    try:
        ensure_secure_directory(log_path.parent)
    except OSError:
        pass  # If we can't create log dir, stderr will still work

    file_handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(ISO8601Formatter())
    logger.addHandler(file_handler)

    _file_handler_path = log_path
