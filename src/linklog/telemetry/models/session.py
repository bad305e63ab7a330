"""Pydantic model for the persisted session record (session.json)."""

from __future__ import annotations

__all__ = ["SessionRecord"]

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class SessionRecord(BaseModel):
    """
    The session record stored independently of the durable log store.

    Attributes:
        id: Session id.
        start_time: When the session was minted (aware).
        last_activity: Timestamp of the most recent activity transition.
        last_activity_type: Kind of that transition ("visible", "hidden", "unload", ...).
        user_agent: Client user-agent at mint time.
        url: URL being served at mint time.
    """

    id: str
    start_time: datetime
    last_activity: datetime | None = None
    last_activity_type: str | None = None
    user_agent: str | None = None
    url: str | None = None

    model_config = ConfigDict(extra="ignore")
