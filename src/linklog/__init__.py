"""linklog: logging and telemetry pipeline for the URL shortener.

Quick start:
    from linklog import LoggerConfig, TelemetryLogger

    async with TelemetryLogger(LoggerConfig(level="DEBUG")) as logger:
        logger.info("Short URL created", "URLForm", {"shortcode": "abc123"})

Or through the process-wide default logger:
    import linklog

    linklog.warn("Shortcode collision, retrying", "ShortcodeGenerator")
"""

from __future__ import annotations

__version__ = "0.1.0"

from typing import Any

from linklog.config import LoggerConfig, get_config_path
from linklog.exceptions import (
    ConfigurationError,
    LinklogError,
    RemoteDeliveryError,
    StorageQuotaExceededError,
    StorageWriteError,
    UnsupportedMetricError,
)
from linklog.telemetry.formatters import LogFormatter
from linklog.telemetry.logger import TelemetryLogger
from linklog.telemetry.metrics import MetricEventBus, TimingEvent
from linklog.telemetry.models.entry import LogEntry, LogFilter, LogLevel
from linklog.telemetry.performance import PerformanceTimer, rate_metric
from linklog.telemetry.system.system_logger import get_system_logger
from linklog.utils.logging.logging_context import request_context

__all__ = [
    "ConfigurationError",
    "LinklogError",
    "LogEntry",
    "LogFilter",
    "LogFormatter",
    "LogLevel",
    "LoggerConfig",
    "MetricEventBus",
    "PerformanceTimer",
    "RemoteDeliveryError",
    "StorageQuotaExceededError",
    "StorageWriteError",
    "TelemetryLogger",
    "TimingEvent",
    "UnsupportedMetricError",
    "__version__",
    "debug",
    "error",
    "fatal",
    "get_default_logger",
    "info",
    "log",
    "rate_metric",
    "request_context",
    "warn",
]

_default_logger: TelemetryLogger | None = None


def get_default_logger() -> TelemetryLogger:
    """Get the process-wide logger, creating it on first use.

    Uses the saved config file when there is one, defaults otherwise.
    The flush schedule only runs once ``await get_default_logger().start()``
    has been called from the host's event loop.
    """
    global _default_logger

    if _default_logger is not None and not _default_logger.is_destroyed:
        return _default_logger

    config = LoggerConfig()
    config_path = get_config_path()
    if config_path.exists():
        try:
            config = LoggerConfig.load_from_file(config_path)
        except (OSError, ValueError) as e:
            get_system_logger().warning(
                {
                    "event": "config_load_failed",
                    "message": "Invalid config file, using defaults",
                    "error": str(e),
                }
            )

    _default_logger = TelemetryLogger(config)
    return _default_logger


def log(level: LogLevel | str, message: str, component: str | None = None, metadata: dict[str, Any] | None = None) -> None:
    """Log through the default logger."""
    get_default_logger().log(level, message, component, metadata)


def debug(message: str, component: str | None = None, metadata: dict[str, Any] | None = None) -> None:
    get_default_logger().debug(message, component, metadata)


def info(message: str, component: str | None = None, metadata: dict[str, Any] | None = None) -> None:
    get_default_logger().info(message, component, metadata)


def warn(message: str, component: str | None = None, metadata: dict[str, Any] | None = None) -> None:
    get_default_logger().warn(message, component, metadata)


def error(message: str, component: str | None = None, metadata: dict[str, Any] | None = None) -> None:
    get_default_logger().error(message, component, metadata)


def fatal(message: str, component: str | None = None, metadata: dict[str, Any] | None = None) -> None:
    get_default_logger().fatal(message, component, metadata)
