"""Unit tests for the session command group."""

from __future__ import annotations

import json
from pathlib import Path

from click.testing import CliRunner

from linklog.cli import cli
from linklog.telemetry.session import SessionIdentity, load_session_record


class TestSessionShow:
    """Tests for session show."""

    def test_no_session(self, runner: CliRunner, app_dir: Path) -> None:
        result = runner.invoke(cli, ["session", "show"])

        assert result.exit_code == 0
        assert "No session recorded." in result.output

    def test_no_session_json(self, runner: CliRunner, app_dir: Path) -> None:
        result = runner.invoke(cli, ["session", "show", "--json"])
        assert json.loads(result.output) == {"session": None}

    def test_current_session(self, runner: CliRunner, app_dir: Path) -> None:
        # Arrange
        identity = SessionIdentity(app_dir / "session.json", track_exit=False)
        identity.record_activity("visible")

        # Act
        result = runner.invoke(cli, ["session", "show"])

        # Assert
        assert result.exit_code == 0
        assert f"Session: {identity.session_id}" in result.output
        assert "Last activity: visible at" in result.output
        assert "earlier day" not in result.output

    def test_expired_session(self, runner: CliRunner, app_dir: Path) -> None:
        app_dir.mkdir(parents=True)
        (app_dir / "session.json").write_text(
            json.dumps({"id": "old-session", "start_time": "2020-01-01T08:00:00+00:00"})
        )

        text = runner.invoke(cli, ["session", "show"])
        as_json = runner.invoke(cli, ["session", "show", "--json"])

        assert "earlier day" in text.output
        assert json.loads(as_json.output)["expired"] is True
        assert json.loads(as_json.output)["id"] == "old-session"


class TestSessionRenew:
    """Tests for session renew."""

    def test_renew_writes_new_record(self, runner: CliRunner, app_dir: Path) -> None:
        old = SessionIdentity(app_dir / "session.json", track_exit=False).session_id

        result = runner.invoke(cli, ["session", "renew"])

        assert result.exit_code == 0
        new_id = load_session_record(app_dir / "session.json").id
        assert new_id != old
        assert f"New session: {new_id}" in result.output
