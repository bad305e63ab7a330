"""Level gate and entry construction.

``should_log`` is the pure level predicate. ``EntryFactory`` stamps each
entry with id, time, session, user, URL and user agent, and captures a stack
for ERROR and FATAL entries: the traceback of the exception being handled
if there is one, otherwise the call site.
"""

from __future__ import annotations

__all__ = [
    "EntryFactory",
    "generate_entry_id",
    "should_log",
]

import sys
import traceback
import uuid
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from linklog.constants import STACK_CAPTURE_LIMIT
from linklog.telemetry.models.entry import LogEntry, LogLevel
from linklog.utils.logging.iso_formatter import utc_now
from linklog.utils.logging.logging_context import get_current_url, get_user_id

# Modules whose frames are skipped when capturing a call-site stack
_INTERNAL_PREFIXES: tuple[str, ...] = ("linklog/telemetry/", "linklog\\telemetry\\")


def should_log(level: LogLevel, threshold: LogLevel) -> bool:
    """Return True if ``level`` is at or above ``threshold``."""
    return level >= threshold


def generate_entry_id(now: datetime | None = None) -> str:
    """Generate an entry id: "<epoch ms>-<9 hex chars>"."""
    moment = now or utc_now()
    return f"{int(moment.timestamp() * 1000)}-{uuid.uuid4().hex[:9]}"


def _format_exception(exc: BaseException) -> str:
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))


def _capture_call_site() -> str:
    """Format the current stack, without this package's own frames."""
    frames = traceback.extract_stack(limit=STACK_CAPTURE_LIMIT + 10)
    external = [f for f in frames if not any(p in f.filename for p in _INTERNAL_PREFIXES)]
    # Everything was internal (e.g. logged from inside the package): keep it all
    kept = external or frames
    return "Stack (most recent call last):\n" + "".join(
        traceback.format_list(kept[-STACK_CAPTURE_LIMIT:])
    )


class EntryFactory:
    """Builds immutable entries with session and client context.

    Context providers are callables so that session renewal and config
    changes are picked up without rebuilding the factory.
    """

    def __init__(
        self,
        session_id: Callable[[], str],
        user_id: Callable[[], str | None],
        app_url: Callable[[], str | None],
        user_agent: Callable[[], str],
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the factory.

        Args:
            session_id: Returns the current session id.
            user_id: Returns the configured default user id.
            app_url: Returns the configured default originating URL.
            user_agent: Returns the client user-agent string.
            clock: Returns the current time (aware).
        """
        self._session_id = session_id
        self._user_id = user_id
        self._app_url = app_url
        self._user_agent = user_agent
        self._clock = clock

    def create(
        self,
        level: LogLevel,
        message: str,
        component: str | None = None,
        metadata: Mapping[str, Any] | None = None,
        *,
        exc: BaseException | None = None,
        stack: str | None = None,
    ) -> LogEntry:
        """Build one entry.

        Request context (see ``request_context``) takes precedence over the
        configured user id and URL.

        Args:
            level: Entry level.
            message: Message text.
            component: Emitting component.
            metadata: JSON-serializable context; copied into the entry.
            exc: Exception whose traceback becomes the stack (ERROR/FATAL only).
            stack: Preformatted stack text (ERROR/FATAL only); wins over ``exc``.

        Returns:
            The new entry. ``stack`` is set iff level >= ERROR.

        Raises:
            pydantic.ValidationError: If metadata is not JSON-serializable.
        """
        now = self._clock()

        entry_stack: str | None = None
        if level >= LogLevel.ERROR:
            if stack:
                entry_stack = stack
            else:
                active = exc if exc is not None else sys.exc_info()[1]
                entry_stack = _format_exception(active) if active is not None else _capture_call_site()

        return LogEntry(
            id=generate_entry_id(now),
            timestamp=now,
            level=level,
            message=message,
            component=component,
            session_id=self._session_id(),
            user_id=get_user_id() or self._user_id(),
            metadata=dict(metadata) if metadata is not None else None,
            stack=entry_stack,
            url=get_current_url() or self._app_url(),
            user_agent=self._user_agent(),
        )
