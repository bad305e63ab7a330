"""Config command group for linklog CLI.

Provides configuration management subcommands.
"""

from __future__ import annotations

__all__ = ["config"]

import json

import click
from pydantic import ValidationError

from linklog.config import LoggerConfig, get_config_path, get_session_path, get_storage_path
from linklog.constants import EMERGENCY_LOG_FILENAME
from linklog.telemetry.models.entry import LEVEL_ORDER
from linklog.utils.cli import load_config_or_exit

from ..styling import style_header, style_success


def _default_marker() -> str:
    """Return styled (default) marker."""
    return click.style(" (default)", dim=True)


@click.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command("init")
@click.option(
    "--level",
    type=click.Choice([level.value for level in LEVEL_ORDER], case_sensitive=False),
    default="INFO",
    show_default=True,
    help="Minimum level that produces an entry",
)
@click.option("--remote-endpoint", help="Enable remote delivery to this URL")
@click.option("--max-storage-entries", type=int, help="Durable store capacity")
@click.option("--buffer-size", type=int, help="Ring buffer capacity")
@click.option("--flush-interval", type=float, help="Seconds between scheduled flushes (0 disables)")
@click.option("--no-console", is_flag=True, help="Disable console output")
@click.option("--force", is_flag=True, help="Overwrite an existing config file")
def config_init(
    level: str,
    remote_endpoint: str | None,
    max_storage_entries: int | None,
    buffer_size: int | None,
    flush_interval: float | None,
    no_console: bool,
    force: bool,
) -> None:
    """Write a config file (defaults plus the given options)."""
    config_path = get_config_path()
    if config_path.exists() and not force:
        raise click.ClickException(
            f"Config already exists at {config_path}\nUse --force to overwrite it."
        )

    values: dict[str, object] = {"level": level, "enable_console": not no_console}
    if remote_endpoint:
        values["remote_endpoint"] = remote_endpoint
        values["enable_remote"] = True
    if max_storage_entries is not None:
        values["max_storage_entries"] = max_storage_entries
    if buffer_size is not None:
        values["buffer_size"] = buffer_size
    if flush_interval is not None:
        values["flush_interval"] = flush_interval

    try:
        new_config = LoggerConfig.model_validate(values)
    except ValidationError as e:
        errors = "\n".join(
            f"  - {'.'.join(str(x) for x in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise click.ClickException(f"Invalid configuration:\n{errors}") from e

    try:
        new_config.save_to_file(config_path)
    except OSError as e:
        raise click.ClickException(f"Failed to write {config_path}: {e}") from e

    click.echo(style_success(f"Configuration saved to {config_path}"))


@config.command("show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def config_show(as_json: bool) -> None:
    """Display current configuration.

    Values marked (default) are not in the config file - using built-in defaults.
    """
    config_path = get_config_path()
    loaded = load_config_or_exit()
    raw: dict[str, object] = {}
    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            raw = json.load(f)

    storage_path = get_storage_path(loaded)

    if as_json:
        document = loaded.model_dump(mode="json")
        document["_computed"] = {
            "config_file": str(config_path),
            "storage_file": str(storage_path),
            "session_file": str(get_session_path(loaded)),
            "emergency_log": str(storage_path.parent / EMERGENCY_LOG_FILENAME),
        }
        click.echo(json.dumps(document, indent=2))
        return

    def show(field: str) -> None:
        value = getattr(loaded, field)
        if hasattr(value, "value"):
            value = value.value
        click.echo(f"  {field}: {value}" + ("" if field in raw else _default_marker()))

    click.echo("\nlinklog configuration:\n")

    click.echo(style_header("Pipeline"))
    for field in ("level", "enable_console", "enable_storage", "enable_remote", "user_id", "app_url"):
        show(field)
    click.echo()

    click.echo(style_header("Durable store"))
    for field in ("max_storage_entries", "storage_quota_bytes"):
        show(field)
    click.echo(f"  file: {storage_path}")
    click.echo()

    click.echo(style_header("Remote delivery"))
    for field in (
        "remote_endpoint",
        "buffer_size",
        "flush_interval",
        "retry_attempts",
        "retry_base_delay",
        "request_timeout",
    ):
        show(field)
    click.echo()

    click.echo(style_header("Session"))
    click.echo(f"  file: {get_session_path(loaded)}")
    click.echo()


@config.command("path")
def config_path_cmd() -> None:
    """Show the config file location."""
    click.echo(str(get_config_path()))
