"""Custom exceptions for linklog.

None of these ever reach a caller of ``log()``; they travel between pipeline
components so that the orchestrator can decide what to do.

Persistence:
    - StorageQuotaExceededError: A write was rejected because a size bound was reached
    - StorageWriteError: Any other write failure of the durable store backend

Transport:
    - RemoteDeliveryError: All delivery attempts for a batch were exhausted

Configuration:
    - ConfigurationError: A config file or partial update failed validation

Performance:
    - UnsupportedMetricError: The host cannot provide a standard timing metric

Usage:
    from linklog.exceptions import RemoteDeliveryError, StorageQuotaExceededError
"""

from __future__ import annotations

__all__ = [
    "ConfigurationError",
    "LinklogError",
    "RemoteDeliveryError",
    "StorageQuotaExceededError",
    "StorageWriteError",
    "UnsupportedMetricError",
]


class LinklogError(Exception):
    """Base class for all linklog errors."""


# =============================================================================
# Persistence
# =============================================================================


class StorageWriteError(LinklogError):
    """Raised when the durable store backend cannot persist its contents."""


class StorageQuotaExceededError(StorageWriteError):
    """Raised when a write is rejected because the storage quota is exhausted.

    Attributes:
        required_bytes: Size of the rejected payload (if known).
        quota_bytes: Configured byte budget (if known).
    """

    def __init__(
        self,
        message: str,
        *,
        required_bytes: int | None = None,
        quota_bytes: int | None = None,
    ) -> None:
        super().__init__(message)
        self.required_bytes = required_bytes
        self.quota_bytes = quota_bytes


# =============================================================================
# Transport
# =============================================================================


class RemoteDeliveryError(LinklogError):
    """Raised when a batch could not be delivered after all attempts.

    The original failure of the final attempt is chained as ``__cause__``
    and also kept in ``last_error``.

    Attributes:
        attempts: Number of attempts made.
        batch_size: Number of entries in the undelivered batch.
        last_error: Exception raised by the final attempt.
    """

    def __init__(
        self,
        message: str,
        *,
        attempts: int,
        batch_size: int,
        last_error: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.batch_size = batch_size
        self.last_error = last_error

    def __repr__(self) -> str:
        return (
            f"RemoteDeliveryError({str(self)!r}, attempts={self.attempts}, "
            f"batch_size={self.batch_size})"
        )


# =============================================================================
# Configuration
# =============================================================================


class ConfigurationError(LinklogError, ValueError):
    """Raised when configuration is invalid.

    Subclasses ValueError so callers validating user input can catch either.
    """


# =============================================================================
# Performance
# =============================================================================


class UnsupportedMetricError(LinklogError):
    """Raised when subscribing to a timing metric the host cannot provide."""

    def __init__(self, metric: str) -> None:
        super().__init__(f"Metric not supported by this environment: {metric}")
        self.metric = metric
