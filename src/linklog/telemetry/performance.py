"""Labeled interval measurement and standard timing metrics.

Durations are reported through the logging pipeline (INFO, component
"PerformanceTimer") and returned to the caller in milliseconds.

``measure`` and ``measure_async`` call ``start`` and ``end`` exactly once
whether the operation returns or raises. A failure is logged at ERROR and
the operation's own exception is re-raised unchanged.

Standard metrics are classified good / needs-improvement / poor:

    Metric  good    needs-improvement  poor
    LCP     <=2500  <=4000             >4000   (ms)
    FID     <=100   <=300              >300    (ms)
    CLS     <=0.1   <=0.25             >0.25
    FCP     <=1800  <=3000             >3000   (ms)
    TTFB    <=800   <=1800             >1800   (ms)
"""

from __future__ import annotations

__all__ = ["LogCallable", "PerformanceTimer", "rate_metric"]

import time
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from typing import Any, Literal, Protocol, TypeVar

from linklog.constants import (
    METRIC_THRESHOLDS,
    METRICS_COMPONENT,
    PERFORMANCE_COMPONENT,
    STANDARD_METRICS,
)
from linklog.exceptions import UnsupportedMetricError
from linklog.telemetry.metrics import MetricEventBus, TimingEvent
from linklog.telemetry.models.entry import LogLevel

T = TypeVar("T")

Rating = Literal["good", "needs-improvement", "poor"]


class LogCallable(Protocol):
    """The pipeline entry point the timer reports through."""

    def __call__(
        self,
        level: LogLevel,
        message: str,
        component: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None: ...


def rate_metric(metric: str, value: float) -> Rating:
    """Classify a standard metric value.

    Raises:
        KeyError: If the metric has no thresholds.
    """
    good, needs_improvement = METRIC_THRESHOLDS[metric.upper()]
    if value <= good:
        return "good"
    if value <= needs_improvement:
        return "needs-improvement"
    return "poor"


class PerformanceTimer:
    """Measures labeled intervals and reports them as entries."""

    def __init__(self, log: LogCallable, clock: Callable[[], float] = time.perf_counter) -> None:
        """Initialize the timer.

        Args:
            log: Pipeline entry point (e.g. ``TelemetryLogger.log``); must not raise.
            clock: Monotonic clock in seconds.
        """
        self._log = log
        self._clock = clock
        self._starts: dict[str, float] = {}
        self._cumulative_layout_shift = 0.0
        self._metric_unsubscribes: list[Callable[[], None]] = []

    # -------------------------------------------------------------------------
    # Labeled intervals
    # -------------------------------------------------------------------------

    def start(self, label: str) -> None:
        """Record a start time, replacing any unmeasured start for the label."""
        self._starts[label] = self._clock()
        self._log(LogLevel.DEBUG, f"Performance tracking started: {label}", PERFORMANCE_COMPONENT)

    def end(self, label: str) -> float:
        """Finish a measurement and report it.

        Returns:
            Elapsed milliseconds, or 0.0 (with a warning entry) if the label
            was never started.
        """
        started = self._starts.pop(label, None)
        if started is None:
            self._log(
                LogLevel.WARN,
                f"No start time found for performance label: {label}",
                PERFORMANCE_COMPONENT,
            )
            return 0.0

        ended = self._clock()
        duration = (ended - started) * 1000
        self._log(
            LogLevel.INFO,
            f"Performance measurement: {label}",
            PERFORMANCE_COMPONENT,
            {
                "label": label,
                "duration": round(duration, 3),
                "startTime": round(started * 1000, 3),
                "endTime": round(ended * 1000, 3),
            },
        )
        return duration

    def _report_failure(self, label: str, error: BaseException) -> None:
        self._log(
            LogLevel.ERROR,
            f"Performance measurement failed: {label}",
            PERFORMANCE_COMPONENT,
            {"label": label, "error": str(error), "errorType": type(error).__name__},
        )

    def measure(self, label: str, operation: Callable[[], T]) -> T:
        """Time a synchronous operation.

        Returns:
            The operation's result.

        Raises:
            Exception: Whatever the operation raised, unchanged.
        """
        self.start(label)
        try:
            return operation()
        except Exception as e:
            self._report_failure(label, e)
            raise
        finally:
            self.end(label)

    async def measure_async(self, label: str, operation: Callable[[], Awaitable[T]]) -> T:
        """Time an asynchronous operation.

        Args:
            label: Measurement label.
            operation: Returns the awaitable to time (e.g. ``lambda: fetch(url)``).

        Returns:
            The awaited result.

        Raises:
            Exception: Whatever the operation raised, unchanged.
        """
        self.start(label)
        try:
            return await operation()
        except Exception as e:
            self._report_failure(label, e)
            raise
        finally:
            self.end(label)

    @contextmanager
    def track(self, label: str) -> Iterator[None]:
        """Time the enclosed block.

        Example:
            >>> with timer.track("shorten_url"):
            ...     shortcode = generate_shortcode(url)
        """
        self.start(label)
        try:
            yield
        except Exception as e:
            self._report_failure(label, e)
            raise
        finally:
            self.end(label)

    def active_measurements(self) -> list[str]:
        """Labels started but not yet ended."""
        return list(self._starts)

    def clear_measurement(self, label: str) -> bool:
        """Forget a started label without reporting it.

        Returns:
            True if the label was active.
        """
        return self._starts.pop(label, None) is not None

    def clear_all_measurements(self) -> None:
        """Forget every started label."""
        self._starts.clear()
        self._log(LogLevel.DEBUG, "All performance measurements cleared", PERFORMANCE_COMPONENT)

    # -------------------------------------------------------------------------
    # Standard metrics
    # -------------------------------------------------------------------------

    def track_standard_metrics(self, source: MetricEventBus) -> int:
        """Subscribe to every standard metric the source provides.

        Metrics the source does not support are logged as warnings.

        Returns:
            Number of metrics subscribed.
        """
        subscribed = 0
        for code, name in STANDARD_METRICS.items():
            try:
                unsubscribe = source.subscribe(code, self._on_timing_event)
            except UnsupportedMetricError as e:
                self._log(
                    LogLevel.WARN,
                    f"{code} tracking not supported",
                    METRICS_COMPONENT,
                    {"metric": code, "name": name, "error": str(e)},
                )
                continue
            self._metric_unsubscribes.append(unsubscribe)
            subscribed += 1
        return subscribed

    def stop_standard_metrics(self) -> None:
        """Remove every metric subscription made by this timer."""
        for unsubscribe in self._metric_unsubscribes:
            unsubscribe()
        self._metric_unsubscribes.clear()

    def _on_timing_event(self, event: TimingEvent) -> None:
        code = event.metric.upper()
        value = event.value
        if code == "CLS":
            # Shifts right after user input are expected and excluded
            if not event.had_recent_input:
                self._cumulative_layout_shift += event.value
            value = self._cumulative_layout_shift

        self._log(
            LogLevel.INFO,
            STANDARD_METRICS[code],
            METRICS_COMPONENT,
            {"metric": code, "value": value, "rating": rate_metric(code, value)},
        )
