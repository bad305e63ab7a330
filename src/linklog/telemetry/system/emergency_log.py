"""Emergency log for entries the durable store had to drop.

When the durable store cannot persist an entry even after halving its
contents, the entry is reported here and on the system logger. Neither
path goes through the entry pipeline.

The file lives in the application directory and is append-only JSONL.
Uses direct file I/O to minimize dependencies.
"""

from __future__ import annotations

__all__ = [
    "get_emergency_log_path",
    "write_emergency_record",
]

import json
import os
from pathlib import Path
from typing import Any

from linklog.constants import EMERGENCY_LOG_FILENAME
from linklog.utils.file_helpers import ensure_secure_directory, get_app_dir
from linklog.utils.logging.iso_formatter import format_iso8601, utc_now


def get_emergency_log_path() -> Path:
    """Get path to the emergency log in the application directory.

    Returns:
        Path to emergency_log.jsonl.
    """
    return get_app_dir() / EMERGENCY_LOG_FILENAME


def write_emergency_record(
    entry: dict[str, Any],
    failure_reason: str,
    source: str,
    path: Path | None = None,
) -> bool:
    """Append a dropped entry to the emergency log.

    This is the last resort; it never raises.

    Args:
        entry: Serialized entry that could not be stored.
        failure_reason: Why the primary write failed.
        source: Component that dropped the entry (e.g. "durable_store").
        path: Override for the emergency log location.

    Returns:
        True if write succeeded, False otherwise.
    """
    try:
        target = path or get_emergency_log_path()
        ensure_secure_directory(target.parent)

        record: dict[str, Any] = {
            "time": format_iso8601(utc_now()),
            "event": "entry_dropped",
            "source": source,
            "failure_reason": failure_reason,
            "entry": entry,
        }

        with target.open("a", encoding="utf-8") as f:
            f.write(json.dumps(record, default=str) + "\n")
            f.flush()
            os.fsync(f.fileno())

        return True
    except Exception:
        return False
