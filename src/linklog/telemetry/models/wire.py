"""Pydantic model for the remote batch payload.

One POST body per batch:

    {
      "entries": [ {<LogEntry record>}, ... ],
      "timestamp": "2025-12-11T10:30:45.123Z",
      "sessionId": "...",
      "userId": "...",
      "userAgent": "linklog/0.1.0 (...)",
      "url": "https://sho.rt/stats"
    }
"""

from __future__ import annotations

__all__ = ["RemoteLogPayload"]

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_serializer
from pydantic.alias_generators import to_camel

from linklog.telemetry.models.entry import LogEntry
from linklog.utils.logging.iso_formatter import format_iso8601


class RemoteLogPayload(BaseModel):
    """
    Batch document sent to the remote endpoint.

    Attributes:
        entries: The batch, oldest first.
        timestamp: When the batch was assembled.
        session_id: Session of the first entry in the batch.
        user_id: User of the first entry in the batch.
        user_agent: Client user-agent of the sender.
        url: Current page URL at send time.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    entries: list[LogEntry]
    timestamp: datetime
    session_id: str | None = None
    user_id: str | None = None
    user_agent: str
    url: str | None = None

    @field_serializer("timestamp")
    def _serialize_timestamp(self, value: datetime) -> str:
        return format_iso8601(value)

    def to_document(self) -> dict[str, Any]:
        """Serialize to the JSON body (camelCase, entries without nulls)."""
        document = self.model_dump(mode="json", by_alias=True, exclude={"entries"})
        document["entries"] = [entry.to_record() for entry in self.entries]
        return document
