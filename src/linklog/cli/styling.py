"""Styling for `linklog` command output.

Entry levels are coloured the same way the console sink colours them, so
`linklog logs show` reads like the live pipeline output. click drops the
styling when output is not a terminal.
"""

from __future__ import annotations

__all__ = [
    "style_dim",
    "style_header",
    "style_label",
    "style_level",
    "style_success",
    "style_warning",
]

import click

from linklog.telemetry.models.entry import LogLevel
from linklog.telemetry.sinks.console import LEVEL_STYLES


def style_header(title: str) -> str:
    """Section heading in `config show`, e.g. ``--- Durable store ---``."""
    return click.style(f"--- {title} ---", fg="cyan", bold=True)


def style_label(label: str) -> str:
    """Field name in `logs status` and `session show`; the colon is added here."""
    return click.style(f"{label}:", fg="cyan", bold=True)


def style_success(message: str) -> str:
    return click.style(f"✓ {message}", fg="green")


def style_dim(message: str) -> str:
    """Empty-state notices such as an empty log store."""
    return click.style(message, dim=True)


def style_warning(message: str) -> str:
    return click.style(f"Warning: {message}", fg="yellow", bold=True)


def style_level(level: LogLevel) -> str:
    """Level name in the console sink's colour for that level."""
    return click.style(level.value, **LEVEL_STYLES[level])
