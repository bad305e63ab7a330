"""Tests for MetricEventBus."""

from __future__ import annotations

import pytest

from linklog.exceptions import UnsupportedMetricError
from linklog.telemetry.metrics import MetricEventBus, TimingEvent


class TestMetricEventBus:
    """Tests for subscribe/publish."""

    def test_defaults_to_standard_metrics(self) -> None:
        assert MetricEventBus().supported == frozenset({"LCP", "FID", "CLS", "FCP", "TTFB"})

    def test_publish_reaches_subscribers_of_metric_only(self) -> None:
        bus = MetricEventBus()
        received: list[TimingEvent] = []
        bus.subscribe("lcp", received.append)
        bus.subscribe("FCP", lambda event: pytest.fail("wrong metric"))

        delivered = bus.publish(TimingEvent("LCP", 1200.0))

        assert delivered == 1
        assert received == [TimingEvent("LCP", 1200.0)]

    def test_unsupported_subscribe_raises(self) -> None:
        bus = MetricEventBus(supported=["TTFB"])

        with pytest.raises(UnsupportedMetricError) as exc_info:
            bus.subscribe("LCP", lambda event: None)

        assert exc_info.value.metric == "LCP"

    def test_unsupported_publish_raises(self) -> None:
        with pytest.raises(UnsupportedMetricError):
            MetricEventBus(supported=["TTFB"]).publish(TimingEvent("CLS", 0.1))

    def test_unsubscribe(self) -> None:
        bus = MetricEventBus()
        unsubscribe = bus.subscribe("TTFB", lambda event: None)

        unsubscribe()
        unsubscribe()

        assert bus.subscriber_count("TTFB") == 0

    def test_failing_subscriber_does_not_stop_others(self) -> None:
        bus = MetricEventBus()
        received: list[TimingEvent] = []

        def broken(event: TimingEvent) -> None:
            raise RuntimeError("boom")

        bus.subscribe("FID", broken)
        bus.subscribe("FID", received.append)

        delivered = bus.publish(TimingEvent("FID", 20.0))

        assert delivered == 1
        assert len(received) == 1

    def test_subscriber_count_unknown_metric(self) -> None:
        assert MetricEventBus().subscriber_count("INP") == 0
