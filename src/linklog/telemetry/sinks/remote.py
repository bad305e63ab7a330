"""Remote delivery: batched HTTP transport with bounded retry.

One POST per batch (see RemoteLogPayload for the body). An attempt fails
when it times out, raises a transport error, gets a non-2xx status, or
gets a JSON body carrying an ``error`` field. Non-JSON success bodies
count as success.

Between attempts the transport waits ``attempt * retry_base_delay``
seconds. After the last attempt it raises RemoteDeliveryError and keeps
nothing: requeueing a failed batch is the caller's job.
"""

from __future__ import annotations

__all__ = ["RemoteDelivery"]

import asyncio
import json
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime

import httpx

from linklog import __version__
from linklog.constants import (
    APP_NAME,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_BASE_DELAY_SECONDS,
    LOG_CLIENT_HEADER,
    LOG_VERSION_HEADER,
)
from linklog.exceptions import RemoteDeliveryError
from linklog.telemetry.models.entry import LogEntry
from linklog.telemetry.models.wire import RemoteLogPayload
from linklog.telemetry.system.system_logger import get_system_logger
from linklog.utils.logging.iso_formatter import utc_now
from linklog.utils.logging.logging_context import get_current_url

_system_logger = get_system_logger()


class _RejectedBatchError(Exception):
    """The endpoint answered 2xx but reported an error in the body."""


class RemoteDelivery:
    """Sends entry batches to a remote HTTP endpoint.

    Stateless between calls: each batch opens its own client, so a batch
    that is still retrying never blocks configuration changes.
    """

    def __init__(
        self,
        endpoint: str | None,
        *,
        retry_attempts: int = DEFAULT_RETRY_ATTEMPTS,
        retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY_SECONDS,
        timeout: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        user_agent: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the transport.

        Args:
            endpoint: URL receiving batches; None disables delivery.
            retry_attempts: Attempts per batch; values below 1 are clamped to 1.
            retry_base_delay: Seconds; the wait after attempt n is n * this.
            timeout: Seconds each attempt may take.
            user_agent: Sent as User-Agent and in the payload
                (default: the first entry's user agent).
            transport: httpx transport override (e.g. httpx.MockTransport).
            sleep: Awaitable sleep used for backoff.
            clock: Returns the batch timestamp.
        """
        self.endpoint = endpoint
        self.retry_attempts = max(1, retry_attempts)
        self.retry_base_delay = max(0.0, retry_base_delay)
        self.timeout = timeout
        self.user_agent = user_agent
        self._transport = transport
        self._sleep = sleep
        self._clock = clock

    @property
    def is_configured(self) -> bool:
        """True when an endpoint is set."""
        return bool(self.endpoint)

    def build_payload(self, entries: Sequence[LogEntry]) -> RemoteLogPayload:
        """Assemble the batch document.

        Session and user come from the first entry. The URL is the current
        request context URL, falling back to the first entry's URL.
        """
        first = entries[0]
        return RemoteLogPayload(
            entries=list(entries),
            timestamp=self._clock(),
            session_id=first.session_id,
            user_id=first.user_id,
            user_agent=self.user_agent or first.user_agent,
            url=get_current_url() or first.url,
        )

    def _headers(self, user_agent: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "User-Agent": user_agent,
            LOG_CLIENT_HEADER: APP_NAME,
            LOG_VERSION_HEADER: __version__,
        }

    async def send_batch(self, entries: Sequence[LogEntry]) -> None:
        """Deliver a batch, retrying with linear backoff.

        No-op when no endpoint is configured or the batch is empty.

        Args:
            entries: The batch, oldest first.

        Raises:
            RemoteDeliveryError: If every attempt failed. The final attempt's
                error is chained as the cause.
        """
        if not self.is_configured or not entries:
            return

        payload = self.build_payload(entries)
        body = payload.to_document()
        headers = self._headers(payload.user_agent)
        last_error: BaseException | None = None

        async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
            for attempt in range(1, self.retry_attempts + 1):
                try:
                    await asyncio.wait_for(
                        self._attempt(client, body, headers),
                        timeout=self.timeout,
                    )
                    return
                except (httpx.HTTPError, asyncio.TimeoutError, _RejectedBatchError) as e:
                    last_error = e
                    _system_logger.warning(
                        {
                            "event": "remote_attempt_failed",
                            "message": f"Remote log delivery attempt {attempt}/{self.retry_attempts} failed",
                            "error": str(e) or type(e).__name__,
                            "batch_size": len(entries),
                        }
                    )

                if attempt < self.retry_attempts:
                    await self._sleep(attempt * self.retry_base_delay)

        raise RemoteDeliveryError(
            f"Failed to deliver {len(entries)} entries after {self.retry_attempts} attempts",
            attempts=self.retry_attempts,
            batch_size=len(entries),
            last_error=last_error,
        ) from last_error

    async def send(self, entry: LogEntry) -> None:
        """Deliver a single entry as a one-entry batch.

        Raises:
            RemoteDeliveryError: If no endpoint is configured or delivery failed.
        """
        if not self.is_configured:
            raise RemoteDeliveryError("No remote endpoint configured", attempts=0, batch_size=1)
        await self.send_batch([entry])

    async def _attempt(
        self,
        client: httpx.AsyncClient,
        body: dict[str, object],
        headers: dict[str, str],
    ) -> None:
        assert self.endpoint is not None
        response = await client.post(self.endpoint, json=body, headers=headers)
        response.raise_for_status()

        try:
            result = response.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            return

        if isinstance(result, dict) and result.get("error"):
            raise _RejectedBatchError(f"Endpoint rejected batch: {result['error']}")
