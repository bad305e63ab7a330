"""Tests for RemoteDelivery: payload shape, retry and backoff."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, call

import httpx
import pytest

from linklog import __version__
from linklog.exceptions import RemoteDeliveryError
from linklog.telemetry.sinks.remote import RemoteDelivery
from linklog.utils.logging.logging_context import request_context

ENDPOINT = "https://logs.sho.rt/ingest"
BATCH_TIME = datetime(2025, 6, 1, 12, 0, 5, tzinfo=timezone.utc)


class ScriptedEndpoint:
    """MockTransport handler answering from a list of responses."""

    def __init__(self, *responses: httpx.Response | Exception) -> None:
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if self.responses else httpx.Response(200, json={"ok": True})
        if isinstance(response, Exception):
            raise response
        return response

    def bodies(self) -> list[dict]:
        return [json.loads(request.content) for request in self.requests]


def _delivery(endpoint: ScriptedEndpoint, **kwargs) -> tuple[RemoteDelivery, AsyncMock]:
    sleep = AsyncMock()
    delivery = RemoteDelivery(
        kwargs.pop("url", ENDPOINT),
        transport=httpx.MockTransport(endpoint),
        sleep=sleep,
        clock=lambda: BATCH_TIME,
        **kwargs,
    )
    return delivery, sleep


class TestSendBatch:
    """Tests for send_batch()."""

    @pytest.mark.asyncio
    async def test_single_post_with_payload(self, make_entry) -> None:
        # Arrange
        endpoint = ScriptedEndpoint()
        delivery, sleep = _delivery(endpoint)
        entries = [make_entry("a", user_id="u-1"), make_entry("b")]

        # Act
        await delivery.send_batch(entries)

        # Assert
        assert len(endpoint.requests) == 1
        body = endpoint.bodies()[0]
        assert [e["message"] for e in body["entries"]] == ["a", "b"]
        assert body["timestamp"] == "2025-06-01T12:00:05.000Z"
        assert body["sessionId"] == "session-1"
        assert body["userId"] == "u-1"
        assert body["userAgent"] == "pytest-agent"
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_headers(self, make_entry) -> None:
        endpoint = ScriptedEndpoint()
        delivery, _ = _delivery(endpoint, user_agent="linklog-test/1.0")

        await delivery.send_batch([make_entry()])

        request = endpoint.requests[0]
        assert request.method == "POST"
        assert str(request.url) == ENDPOINT
        assert request.headers["content-type"] == "application/json"
        assert request.headers["user-agent"] == "linklog-test/1.0"
        assert request.headers["x-log-client"] == "linklog"
        assert request.headers["x-log-version"] == __version__

    @pytest.mark.asyncio
    async def test_url_from_request_context(self, make_entry) -> None:
        endpoint = ScriptedEndpoint()
        delivery, _ = _delivery(endpoint)

        with request_context(url="https://sho.rt/stats"):
            await delivery.send_batch([make_entry(url="https://sho.rt/old")])

        assert endpoint.bodies()[0]["url"] == "https://sho.rt/stats"

    @pytest.mark.asyncio
    async def test_url_falls_back_to_first_entry(self, make_entry) -> None:
        endpoint = ScriptedEndpoint()
        delivery, _ = _delivery(endpoint)

        await delivery.send_batch([make_entry(url="https://sho.rt/abc")])

        assert endpoint.bodies()[0]["url"] == "https://sho.rt/abc"

    @pytest.mark.asyncio
    async def test_retries_with_linear_backoff_then_succeeds(self, make_entry) -> None:
        # Arrange: two failures, then success
        endpoint = ScriptedEndpoint(
            httpx.Response(503),
            httpx.ConnectError("connection refused"),
            httpx.Response(200, json={"ok": True}),
        )
        delivery, sleep = _delivery(endpoint, retry_attempts=3, retry_base_delay=1.0)

        # Act
        await delivery.send_batch([make_entry()])

        # Assert
        assert len(endpoint.requests) == 3
        assert sleep.await_args_list == [call(1.0), call(2.0)]

    @pytest.mark.asyncio
    async def test_exhaustion_raises_with_cause(self, make_entry) -> None:
        endpoint = ScriptedEndpoint(httpx.Response(500), httpx.Response(500), httpx.Response(502))
        delivery, sleep = _delivery(endpoint, retry_attempts=3)

        with pytest.raises(RemoteDeliveryError) as exc_info:
            await delivery.send_batch([make_entry(), make_entry()])

        error = exc_info.value
        assert error.attempts == 3
        assert error.batch_size == 2
        assert isinstance(error.__cause__, httpx.HTTPStatusError)
        assert error.last_error is error.__cause__
        assert len(endpoint.requests) == 3
        # No wait after the final attempt
        assert sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_error_field_in_body_is_failure(self, make_entry) -> None:
        endpoint = ScriptedEndpoint(
            httpx.Response(200, json={"error": "invalid batch"}),
            httpx.Response(200, json={"ok": True}),
        )
        delivery, _ = _delivery(endpoint)

        await delivery.send_batch([make_entry()])

        assert len(endpoint.requests) == 2

    @pytest.mark.asyncio
    async def test_non_json_body_is_success(self, make_entry) -> None:
        endpoint = ScriptedEndpoint(httpx.Response(204))
        delivery, sleep = _delivery(endpoint)

        await delivery.send_batch([make_entry()])

        assert len(endpoint.requests) == 1
        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_attempt_timeout_counts_as_failure(self, make_entry) -> None:
        # Arrange: handler that never answers within the timeout
        async def slow_handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(1.0)
            return httpx.Response(200)

        delivery = RemoteDelivery(
            ENDPOINT,
            retry_attempts=1,
            timeout=0.05,
            transport=httpx.MockTransport(slow_handler),
            sleep=AsyncMock(),
        )

        # Act / Assert
        with pytest.raises(RemoteDeliveryError):
            await delivery.send_batch([make_entry()])

    @pytest.mark.asyncio
    async def test_attempts_clamped_to_one(self, make_entry) -> None:
        endpoint = ScriptedEndpoint(httpx.Response(500))
        delivery, _ = _delivery(endpoint, retry_attempts=0)

        with pytest.raises(RemoteDeliveryError):
            await delivery.send_batch([make_entry()])

        assert len(endpoint.requests) == 1

    @pytest.mark.asyncio
    async def test_unconfigured_is_noop(self, make_entry) -> None:
        endpoint = ScriptedEndpoint()
        delivery, _ = _delivery(endpoint, url=None)

        await delivery.send_batch([make_entry()])

        assert not delivery.is_configured
        assert endpoint.requests == []

    @pytest.mark.asyncio
    async def test_empty_batch_is_noop(self) -> None:
        endpoint = ScriptedEndpoint()
        delivery, _ = _delivery(endpoint)

        await delivery.send_batch([])

        assert endpoint.requests == []


class TestSend:
    """Tests for single-entry send()."""

    @pytest.mark.asyncio
    async def test_sends_one_entry_batch(self, make_entry) -> None:
        endpoint = ScriptedEndpoint()
        delivery, _ = _delivery(endpoint)

        await delivery.send(make_entry("single"))

        assert [e["message"] for e in endpoint.bodies()[0]["entries"]] == ["single"]

    @pytest.mark.asyncio
    async def test_unconfigured_raises(self, make_entry) -> None:
        delivery = RemoteDelivery(None)

        with pytest.raises(RemoteDeliveryError):
            await delivery.send(make_entry())
