"""Shared helpers for CLI commands.

Commands operate on the persisted files only; none of them builds a
TelemetryLogger (which would install process hooks and a flush schedule).
"""

from __future__ import annotations

__all__ = [
    "load_config_or_exit",
    "open_durable_store",
]

import click

from linklog.config import LoggerConfig, get_config_path, get_storage_path
from linklog.telemetry.sinks.storage import DurableStore, FileStorageBackend


def load_config_or_exit() -> LoggerConfig:
    """Load the saved configuration, or defaults if none is saved.

    Returns:
        LoggerConfig from config.json, or LoggerConfig() if the file is absent.

    Raises:
        click.ClickException: If the config file exists but is invalid.
    """
    config_path = get_config_path()
    if not config_path.exists():
        return LoggerConfig()

    try:
        return LoggerConfig.load_from_file(config_path)
    except (OSError, ValueError) as e:
        raise click.ClickException(str(e)) from e


def open_durable_store(config: LoggerConfig) -> DurableStore:
    """Open the durable store the configured pipeline writes to."""
    return DurableStore(
        FileStorageBackend(get_storage_path(config), config.storage_quota_bytes),
        config.max_storage_entries,
    )
