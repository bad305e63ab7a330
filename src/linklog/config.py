"""Pipeline configuration for linklog.

Defines the single configuration model consumed by TelemetryLogger. The
config can be built in code, or stored as JSON in the OS-appropriate app
directory (via click.get_app_dir) and edited through ``linklog config``.

Example usage:
    # Load from config file
    config = LoggerConfig.load_from_file(get_config_path())

    # Save new configuration
    config.save_to_file(get_config_path())
"""

from __future__ import annotations

__all__ = [
    "LoggerConfig",
    "default_user_agent",
    "get_config_path",
    "get_session_path",
    "get_storage_path",
]

import json
import platform
from pathlib import Path

from pydantic import BaseModel, Field, field_validator

from linklog import __version__
from linklog.constants import (
    APP_NAME,
    CONFIG_FILENAME,
    DEFAULT_BUFFER_SIZE,
    DEFAULT_FLUSH_INTERVAL_SECONDS,
    DEFAULT_MAX_STORAGE_ENTRIES,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_RETRY_ATTEMPTS,
    DEFAULT_RETRY_BASE_DELAY_SECONDS,
    DEFAULT_STORAGE_QUOTA_BYTES,
    MAX_REQUEST_TIMEOUT_SECONDS,
    MAX_RETRY_ATTEMPTS,
    SESSION_FILENAME,
    STORAGE_FILENAME,
)
from linklog.telemetry.models.entry import LogLevel
from linklog.utils.file_helpers import (
    ensure_secure_directory,
    get_app_dir,
    load_validated_json,
    require_file_exists,
    set_secure_permissions,
)


def default_user_agent() -> str:
    """Build the client user-agent string stamped on entries and requests.

    Returns:
        e.g. "linklog/0.1.0 (Python 3.12.1; Linux)".
    """
    return f"{APP_NAME}/{__version__} (Python {platform.python_version()}; {platform.system()})"


class LoggerConfig(BaseModel):
    """Configuration for the logging pipeline.

    Attributes:
        level: Minimum level that produces an entry.
        enable_console: Emit entries to the console sink.
        enable_storage: Persist entries to the durable store.
        enable_remote: Stage entries for batched remote delivery.
        max_storage_entries: Durable store capacity (oldest evicted first).
        buffer_size: Ring buffer capacity; reaching it triggers a flush.
        flush_interval: Seconds between scheduled flushes (0 disables the schedule).
        remote_endpoint: URL receiving batches as HTTP POST.
        retry_attempts: Delivery attempts per batch.
        retry_base_delay: Seconds; the wait after attempt n is n * retry_base_delay.
        request_timeout: Seconds each delivery attempt may take.
        user_id: Default user id stamped on entries.
        app_url: Default originating URL stamped on entries.
        user_agent: Client user-agent stamped on entries and requests.
        storage_path: Durable store file (default: <app dir>/logs.json).
        session_path: Session record file (default: <app dir>/session.json).
        storage_quota_bytes: Byte budget of the serialized durable store (None: unbounded).
    """

    level: LogLevel = LogLevel.INFO
    enable_console: bool = True
    enable_storage: bool = True
    enable_remote: bool = False
    max_storage_entries: int = Field(default=DEFAULT_MAX_STORAGE_ENTRIES, ge=1)
    buffer_size: int = Field(default=DEFAULT_BUFFER_SIZE, ge=1)
    flush_interval: float = Field(default=DEFAULT_FLUSH_INTERVAL_SECONDS, ge=0)
    remote_endpoint: str | None = Field(default=None, pattern=r"^https?://")
    retry_attempts: int = Field(default=DEFAULT_RETRY_ATTEMPTS, ge=1, le=MAX_RETRY_ATTEMPTS)
    retry_base_delay: float = Field(default=DEFAULT_RETRY_BASE_DELAY_SECONDS, ge=0)
    request_timeout: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT_SECONDS,
        gt=0,
        le=MAX_REQUEST_TIMEOUT_SECONDS,
    )
    user_id: str | None = None
    app_url: str | None = None
    user_agent: str = Field(default_factory=default_user_agent, min_length=1)
    storage_path: str | None = None
    session_path: str | None = None
    storage_quota_bytes: int | None = Field(default=DEFAULT_STORAGE_QUOTA_BYTES, ge=1)

    @field_validator("level", mode="before")
    @classmethod
    def _parse_level(cls, value: object) -> object:
        if isinstance(value, str):
            try:
                return LogLevel.parse(value)
            except ValueError:
                return value  # Let enum validation report it
        return value

    def save_to_file(self, config_path: Path) -> None:
        """Save configuration to JSON file.

        Creates parent directories if they don't exist.
        Sets secure permissions (0o700) on the config directory.

        Args:
            config_path: Path where the config JSON file should be saved.
        """
        ensure_secure_directory(config_path.parent)

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(self.model_dump(mode="json"), f, indent=2)
            f.write("\n")  # Trailing newline

        set_secure_permissions(config_path)

    @classmethod
    def load_from_file(cls, config_path: Path) -> "LoggerConfig":
        """Load configuration from JSON file.

        Args:
            config_path: Path to the config JSON file.

        Returns:
            LoggerConfig instance with loaded configuration.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            ValueError: If config file is invalid.
        """
        require_file_exists(config_path, file_type="configuration")
        return load_validated_json(
            config_path,
            cls,
            file_type="config",
            recovery_hint="Run 'linklog config init --force' to reset it.",
        )


def get_config_path() -> Path:
    """Path of the config file in the app directory."""
    return get_app_dir() / CONFIG_FILENAME


def get_storage_path(config: LoggerConfig) -> Path:
    """Resolve the durable store file for a config.

    Args:
        config: Pipeline configuration.

    Returns:
        Expanded ``storage_path`` if set, else <app dir>/logs.json.
    """
    if config.storage_path:
        return Path(config.storage_path).expanduser()
    return get_app_dir() / STORAGE_FILENAME


def get_session_path(config: LoggerConfig) -> Path:
    """Resolve the session record file for a config.

    Args:
        config: Pipeline configuration.

    Returns:
        Expanded ``session_path`` if set, else <app dir>/session.json.
    """
    if config.session_path:
        return Path(config.session_path).expanduser()
    return get_app_dir() / SESSION_FILENAME
