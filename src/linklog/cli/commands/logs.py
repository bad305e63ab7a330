"""Logs command group for linklog CLI.

Provides commands that read and manage the durable log store directly
from disk. No running application required.
"""

from __future__ import annotations

__all__ = ["logs"]

import json
from datetime import datetime
from pathlib import Path

import click
from pydantic import ValidationError

from linklog.config import get_storage_path
from linklog.telemetry.formatters import EXPORT_FORMATS, LogFormatter
from linklog.telemetry.models.entry import LEVEL_ORDER, LogEntry, LogFilter, LogLevel
from linklog.utils.cli import load_config_or_exit, open_durable_store
from linklog.utils.file_helpers import format_size

from ..styling import style_dim, style_label, style_level, style_success

LEVEL_CHOICES = [level.value for level in LEVEL_ORDER]


def _render(entry: LogEntry) -> str:
    """One display line, with the level coloured."""
    line = LogFormatter.format_single_entry(entry)
    return line.replace(f"] {entry.level.value}", f"] {style_level(entry.level)}", 1)


@click.group()
def logs() -> None:
    """Durable log store commands.

    Read, export and clear the entries persisted by the pipeline.
    No running application required.
    """
    pass


@logs.command("show")
@click.option("--level", "-l", type=click.Choice(LEVEL_CHOICES, case_sensitive=False), help="Exact level")
@click.option(
    "--min-level",
    "-m",
    type=click.Choice(LEVEL_CHOICES, case_sensitive=False),
    help="Minimum level (e.g. ERROR shows ERROR and FATAL)",
)
@click.option("--component", "-c", help="Exact component name")
@click.option("--search", "-s", "search_term", help="Case-insensitive text in message or component")
@click.option("--since", type=click.DateTime(), help="Only entries at or after this time (UTC)")
@click.option("--until", type=click.DateTime(), help="Only entries at or before this time (UTC)")
@click.option("--limit", "-n", default=50, show_default=True, help="Number of entries to show")
@click.option("--json", "as_json", is_flag=True, help="Output JSONL (one entry per line)")
def logs_show(
    level: str | None,
    min_level: str | None,
    component: str | None,
    search_term: str | None,
    since: datetime | None,
    until: datetime | None,
    limit: int,
    as_json: bool,
) -> None:
    """Show stored entries, newest first."""
    config = load_config_or_exit()
    store = open_durable_store(config)

    try:
        log_filter = LogFilter(
            level=LogLevel.parse(level) if level else None,
            min_level=LogLevel.parse(min_level) if min_level else None,
            component=component,
            start_date=since,
            end_date=until,
            search_term=search_term,
        )
    except ValidationError as e:
        raise click.ClickException(f"Invalid filter: {e}") from e

    entries = store.retrieve(log_filter)[: max(0, limit)]

    if as_json:
        for entry in entries:
            click.echo(json.dumps(entry.to_record()))
        return

    if not entries:
        click.echo(style_dim("No log entries."))
        return

    for entry in entries:
        click.echo(_render(entry))


@logs.command("status")
def logs_status() -> None:
    """Show where the durable store lives and how full it is."""
    config = load_config_or_exit()
    store = open_durable_store(config)
    storage_path = get_storage_path(config)

    click.echo(style_label("File") + f" {storage_path}")
    click.echo(style_label("Entries") + f" {store.entry_count()} / {config.max_storage_entries}")
    size = format_size(store.storage_size())
    quota = format_size(config.storage_quota_bytes) if config.storage_quota_bytes else "unbounded"
    click.echo(style_label("Size") + f" {size} (quota: {quota})")


@logs.command("export")
@click.option(
    "--format",
    "-f",
    "fmt",
    type=click.Choice(list(EXPORT_FORMATS), case_sensitive=False),
    default="json",
    show_default=True,
    help="Export format",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True, path_type=Path),
    help="Write to this file instead of stdout",
)
def logs_export(fmt: str, output: Path | None) -> None:
    """Export all stored entries (newest first) as JSON or CSV."""
    config = load_config_or_exit()
    store = open_durable_store(config)
    entries = store.retrieve()
    text = LogFormatter.format(entries, fmt)

    if output is None:
        click.echo(text)
        return

    try:
        output.write_text(text if text.endswith("\n") else text + "\n", encoding="utf-8")
    except OSError as e:
        raise click.ClickException(f"Failed to write {output}: {e}") from e
    click.echo(style_success(f"Exported {len(entries)} entries to {output}"), err=True)


@logs.command("clear")
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation")
def logs_clear(yes: bool) -> None:
    """Delete every stored entry."""
    config = load_config_or_exit()
    store = open_durable_store(config)
    count = store.entry_count()

    if count == 0:
        click.echo(style_dim("Log store is already empty."))
        return

    if not yes:
        click.confirm(f"Delete {count} stored entries?", abort=True)

    store.clear()
    click.echo(style_success(f"Cleared {count} entries"))
