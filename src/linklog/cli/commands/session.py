"""Session command group for linklog CLI.

Reads and renews the session record shared by every pipeline instance
started on the same day.
"""

from __future__ import annotations

__all__ = ["session"]

import json
from datetime import datetime

import click

from linklog.config import get_session_path
from linklog.telemetry.session import SessionIdentity, load_session_record
from linklog.utils.cli import load_config_or_exit
from linklog.utils.logging.iso_formatter import format_iso8601

from ..styling import style_dim, style_label, style_success, style_warning


@click.group()
def session() -> None:
    """Session record commands."""
    pass


@session.command("show")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def session_show(as_json: bool) -> None:
    """Show the stored session record.

    A record started on an earlier day is reported as expired; the next
    pipeline start will mint a new session.
    """
    config = load_config_or_exit()
    record = load_session_record(get_session_path(config))

    if record is None:
        if as_json:
            click.echo(json.dumps({"session": None}))
        else:
            click.echo(style_dim("No session recorded."))
        return

    now = datetime.now().astimezone()
    expired = record.start_time.astimezone(now.tzinfo).date() != now.date()

    if as_json:
        document = record.model_dump(mode="json")
        document["expired"] = expired
        click.echo(json.dumps(document, indent=2))
        return

    click.echo(style_label("Session") + f" {record.id}")
    click.echo(style_label("Started") + f" {format_iso8601(record.start_time)}")
    if record.last_activity is not None:
        click.echo(
            style_label("Last activity")
            + f" {record.last_activity_type or 'unknown'} at {format_iso8601(record.last_activity)}"
        )
    if record.url:
        click.echo(style_label("URL") + f" {record.url}")
    if expired:
        click.echo(style_warning("Session is from an earlier day and will be replaced on next start"))


@session.command("renew")
def session_renew() -> None:
    """Start a new session now."""
    config = load_config_or_exit()
    identity = SessionIdentity(
        get_session_path(config),
        user_agent=config.user_agent,
        url_provider=lambda: config.app_url,
        track_exit=False,
    )
    session_id = identity.renew_session()
    click.echo(style_success(f"New session: {session_id}"))
