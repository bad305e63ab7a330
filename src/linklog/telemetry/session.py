"""Session identity: a day-scoped id shared by every entry of a run.

The session record is stored in its own JSON file, independent of the
durable log store. On construction a stored record is reused if it was
started on the same calendar day as "now"; otherwise a new session is
minted. Ids are ``<base36 epoch ms>-<9 random base36 chars>``.

Persisting the record is best-effort. Failures are swallowed and noted on
the system logger at DEBUG only; they are never logged through the entry
pipeline, which depends on the session id.
"""

from __future__ import annotations

__all__ = ["SessionIdentity", "generate_session_id", "load_session_record"]

import atexit
import secrets
import string
import threading
from collections.abc import Callable
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from linklog.constants import SESSION_RANDOM_LENGTH
from linklog.telemetry.models.session import SessionRecord
from linklog.telemetry.system.system_logger import get_system_logger
from linklog.utils.file_helpers import atomic_write_text

_system_logger = get_system_logger()

_BASE36_ALPHABET = string.digits + string.ascii_lowercase

_id_lock = threading.Lock()
_last_id_ms = 0


def _local_now() -> datetime:
    return datetime.now().astimezone()


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_session_id(now: datetime | None = None) -> str:
    """Mint a session id.

    The time component never decreases within a process, even if the
    clock does, and two ids minted in the same millisecond still differ
    in their time component.

    Args:
        now: Time to derive the id from (default: current time).

    Returns:
        "<base36 epoch ms>-<random base36>".
    """
    global _last_id_ms

    moment = now or _local_now()
    with _id_lock:
        ms = max(int(moment.timestamp() * 1000), _last_id_ms + 1)
        _last_id_ms = ms
    random_part = "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(SESSION_RANDOM_LENGTH))
    return f"{_to_base36(ms)}-{random_part}"


def load_session_record(path: Path) -> SessionRecord | None:
    """Read a stored session record without validating its day.

    Returns:
        The record, or None if it is missing or unreadable.
    """
    try:
        return SessionRecord.model_validate_json(path.read_text(encoding="utf-8"))
    except (OSError, ValidationError, ValueError):
        return None


def _is_same_day(start: datetime, now: datetime) -> bool:
    if start.tzinfo is None or now.tzinfo is None:
        return start.date() == now.date()
    return start.astimezone(now.tzinfo).date() == now.date()


class SessionIdentity:
    """Mints, recovers and tracks the current session.

    Args:
        path: Session record file; None keeps the session in memory only.
        user_agent: Client user agent recorded at mint time.
        url_provider: Returns the URL currently being served.
        clock: Returns the current time (aware, in the day boundary's zone).
        track_exit: Record an "unload" activity at interpreter exit.
    """

    def __init__(
        self,
        path: Path | None = None,
        *,
        user_agent: str | None = None,
        url_provider: Callable[[], str | None] | None = None,
        clock: Callable[[], datetime] = _local_now,
        track_exit: bool = True,
    ) -> None:
        self._path = path
        self._user_agent = user_agent
        self._url_provider = url_provider or (lambda: None)
        self._clock = clock
        self._record = self._load_or_create()

        self._exit_hook: Callable[[], None] | None = None
        if track_exit:
            self._exit_hook = self._on_exit
            atexit.register(self._exit_hook)

    @property
    def session_id(self) -> str:
        """The current session id."""
        return self._record.id

    @property
    def session_start_time(self) -> datetime:
        """When the current session was minted."""
        return self._record.start_time

    @property
    def record(self) -> SessionRecord:
        """A copy of the current session record."""
        return self._record.model_copy()

    def get_session_duration(self) -> float:
        """Milliseconds since the session started."""
        return (self._clock() - self._record.start_time).total_seconds() * 1000

    def renew_session(self) -> str:
        """Force a new session id and start time.

        Returns:
            The new session id.
        """
        self._record = self._create()
        return self._record.id

    def clear_session(self) -> None:
        """Remove the stored record. The in-memory session stays current."""
        if self._path is None:
            return
        try:
            self._path.unlink(missing_ok=True)
        except OSError as e:
            _system_logger.debug({"event": "session_clear_failed", "error": str(e)})

    def session_info(self) -> dict[str, Any]:
        """Summary of the current session for display."""
        return {
            "id": self._record.id,
            "start_time": self._record.start_time,
            "duration_ms": self.get_session_duration(),
            "user_agent": self._user_agent,
            "current_url": self._url_provider(),
            "last_activity": self._record.last_activity,
            "last_activity_type": self._record.last_activity_type,
        }

    def record_activity(self, kind: str) -> None:
        """Note an activity transition ("visible", "hidden", "unload", ...)."""
        self._record = self._record.model_copy(
            update={"last_activity": self._clock(), "last_activity_type": kind}
        )
        self._persist()

    def close(self) -> None:
        """Stop tracking interpreter exit for this instance."""
        if self._exit_hook is not None:
            atexit.unregister(self._exit_hook)
            self._exit_hook = None

    def _on_exit(self) -> None:
        self.record_activity("unload")

    def _load_or_create(self) -> SessionRecord:
        if self._path is not None:
            stored = load_session_record(self._path)
            if stored is not None and _is_same_day(stored.start_time, self._clock()):
                return stored
        return self._create()

    def _create(self) -> SessionRecord:
        now = self._clock()
        record = SessionRecord(
            id=generate_session_id(now),
            start_time=now,
            user_agent=self._user_agent,
            url=self._url_provider(),
        )
        self._record = record
        self._persist()
        return record

    def _persist(self) -> None:
        if self._path is None:
            return
        try:
            atomic_write_text(self._path, self._record.model_dump_json(indent=2) + "\n")
        except OSError as e:
            _system_logger.debug({"event": "session_persist_failed", "error": str(e)})
