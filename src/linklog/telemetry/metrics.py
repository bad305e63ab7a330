"""In-process source of standard timing metrics.

The host feeds ``MetricEventBus`` with timing events it observes (for the
URL shortener: real-user-monitoring beacons posted by its pages, or
server-side timings such as time to first byte). The performance timer
subscribes to it. A bus only accepts the metrics it was built with;
subscribing to anything else raises UnsupportedMetricError.
"""

from __future__ import annotations

__all__ = ["MetricEventBus", "TimingEvent"]

from collections.abc import Callable, Iterable
from dataclasses import dataclass

from linklog.constants import STANDARD_METRICS
from linklog.exceptions import UnsupportedMetricError
from linklog.telemetry.system.system_logger import get_system_logger

_system_logger = get_system_logger()

MetricCallback = Callable[["TimingEvent"], None]


@dataclass(frozen=True)
class TimingEvent:
    """One observed timing value.

    Attributes:
        metric: Metric code ("LCP", "FID", "CLS", "FCP", "TTFB").
        value: Raw value (milliseconds, or unitless for CLS).
        had_recent_input: Layout shift caused by user input (CLS only).
    """

    metric: str
    value: float
    had_recent_input: bool = False


class MetricEventBus:
    """Publish/subscribe hub for timing events."""

    def __init__(self, supported: Iterable[str] | None = None) -> None:
        """Initialize the bus.

        Args:
            supported: Metric codes this host can provide (default: all standard metrics).
        """
        codes = STANDARD_METRICS.keys() if supported is None else supported
        self._supported = frozenset(code.upper() for code in codes)
        self._subscribers: dict[str, list[MetricCallback]] = {code: [] for code in self._supported}

    @property
    def supported(self) -> frozenset[str]:
        """Metric codes accepted by this bus."""
        return self._supported

    def subscribe(self, metric: str, callback: MetricCallback) -> Callable[[], None]:
        """Register a callback for one metric.

        Returns:
            A function that removes the subscription.

        Raises:
            UnsupportedMetricError: If the metric is not supported.
        """
        code = metric.upper()
        if code not in self._supported:
            raise UnsupportedMetricError(code)
        self._subscribers[code].append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers[code]:
                self._subscribers[code].remove(callback)

        return unsubscribe

    def publish(self, event: TimingEvent) -> int:
        """Deliver an event to the subscribers of its metric.

        A failing subscriber is reported on the system logger and does not
        stop delivery to the others.

        Returns:
            Number of subscribers that received the event.

        Raises:
            UnsupportedMetricError: If the event's metric is not supported.
        """
        code = event.metric.upper()
        if code not in self._supported:
            raise UnsupportedMetricError(code)

        delivered = 0
        for callback in list(self._subscribers[code]):
            try:
                callback(event)
                delivered += 1
            except Exception as e:
                _system_logger.warning(
                    {
                        "event": "metric_subscriber_failed",
                        "message": f"Subscriber for {code} failed",
                        "error": str(e),
                    }
                )
        return delivered

    def subscriber_count(self, metric: str) -> int:
        """Number of subscribers for a metric (0 if unsupported)."""
        return len(self._subscribers.get(metric.upper(), []))
