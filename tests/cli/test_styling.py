"""Unit tests for CLI styling helpers."""

from __future__ import annotations

import click

from linklog.cli.styling import style_label, style_level
from linklog.telemetry.models.entry import LogLevel


class TestStyleLevel:
    """Tests for level colouring."""

    def test_matches_console_sink_colours(self) -> None:
        assert style_level(LogLevel.WARN) == click.style("WARN", fg="yellow")
        assert style_level(LogLevel.FATAL) == click.style("FATAL", fg="red", bold=True)

    def test_unstyled_text_is_level_name(self) -> None:
        for level in LogLevel:
            assert click.unstyle(style_level(level)) == level.value


class TestStyleLabel:
    """Tests for field labels."""

    def test_adds_colon(self) -> None:
        assert click.unstyle(style_label("Entries")) == "Entries:"
