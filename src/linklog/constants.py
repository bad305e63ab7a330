"""Application-wide constants for linklog.

Constants that define pipeline behavior and defaults.
For user-configurable settings per deployment, see config.py.
"""

__all__ = [
    # Application identity
    "APP_NAME",
    "LOG_CLIENT_HEADER",
    "LOG_VERSION_HEADER",
    # File names (under the app directory)
    "CONFIG_FILENAME",
    "STORAGE_FILENAME",
    "SESSION_FILENAME",
    "EMERGENCY_LOG_FILENAME",
    # Durable store
    "DEFAULT_MAX_STORAGE_ENTRIES",
    "DEFAULT_STORAGE_QUOTA_BYTES",
    # Ring buffer / flush schedule
    "DEFAULT_BUFFER_SIZE",
    "DEFAULT_FLUSH_INTERVAL_SECONDS",
    # Remote delivery
    "DEFAULT_RETRY_ATTEMPTS",
    "DEFAULT_RETRY_BASE_DELAY_SECONDS",
    "DEFAULT_REQUEST_TIMEOUT_SECONDS",
    "MAX_RETRY_ATTEMPTS",
    "MAX_REQUEST_TIMEOUT_SECONDS",
    # Session identity
    "SESSION_RANDOM_LENGTH",
    # Performance
    "SLOW_OPERATION_THRESHOLD_MS",
    "METRIC_THRESHOLDS",
    "STANDARD_METRICS",
    # Console
    "STACK_CAPTURE_LIMIT",
    # Component names of pipeline-generated entries
    "PERFORMANCE_COMPONENT",
    "METRICS_COMPONENT",
    "GLOBAL_ERROR_COMPONENT",
]

# =============================================================================
# Application identity
# =============================================================================

APP_NAME = "linklog"

# Client-identifying headers sent with every remote batch
LOG_CLIENT_HEADER = "X-Log-Client"
LOG_VERSION_HEADER = "X-Log-Version"

# =============================================================================
# File names
# =============================================================================

CONFIG_FILENAME = "config.json"
STORAGE_FILENAME = "logs.json"
SESSION_FILENAME = "session.json"
EMERGENCY_LOG_FILENAME = "emergency_log.jsonl"

# =============================================================================
# Durable store
# =============================================================================

DEFAULT_MAX_STORAGE_ENTRIES = 1000

# Byte budget for the serialized store, comparable to a browser storage quota
DEFAULT_STORAGE_QUOTA_BYTES = 5 * 1024 * 1024

# =============================================================================
# Ring buffer / flush schedule
# =============================================================================

DEFAULT_BUFFER_SIZE = 50
DEFAULT_FLUSH_INTERVAL_SECONDS = 5.0

# =============================================================================
# Remote delivery
# =============================================================================

DEFAULT_RETRY_ATTEMPTS = 3
DEFAULT_RETRY_BASE_DELAY_SECONDS = 1.0  # wait attempt * base between attempts
DEFAULT_REQUEST_TIMEOUT_SECONDS = 5.0
MAX_RETRY_ATTEMPTS = 10
MAX_REQUEST_TIMEOUT_SECONDS = 120.0

# =============================================================================
# Session identity
# =============================================================================

# Random suffix length (base36 chars) appended to the time component
SESSION_RANDOM_LENGTH = 9

# =============================================================================
# Performance
# =============================================================================

SLOW_OPERATION_THRESHOLD_MS = 1000.0

# (good_max, needs_improvement_max) per metric; above the second bound is "poor"
METRIC_THRESHOLDS: dict[str, tuple[float, float]] = {
    "LCP": (2500.0, 4000.0),  # largest contentful paint, ms
    "FID": (100.0, 300.0),  # first input delay, ms
    "CLS": (0.1, 0.25),  # cumulative layout shift, unitless
    "FCP": (1800.0, 3000.0),  # first contentful paint, ms
    "TTFB": (800.0, 1800.0),  # time to first byte, ms
}

# Human-readable names used as log messages
STANDARD_METRICS: dict[str, str] = {
    "LCP": "Largest Contentful Paint",
    "FID": "First Input Delay",
    "CLS": "Cumulative Layout Shift",
    "FCP": "First Contentful Paint",
    "TTFB": "Time to First Byte",
}

# =============================================================================
# Entry construction
# =============================================================================

# Frames kept when capturing a call-site stack for ERROR/FATAL entries
STACK_CAPTURE_LIMIT = 25

# =============================================================================
# Component names of pipeline-generated entries
# =============================================================================

PERFORMANCE_COMPONENT = "PerformanceTimer"
METRICS_COMPONENT = "WebVitals"
GLOBAL_ERROR_COMPONENT = "GlobalErrorHandler"
