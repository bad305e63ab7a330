"""Fixtures for CLI tests: an isolated app directory and a seeded store."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest
from click.testing import CliRunner

from linklog.telemetry.models.entry import LogEntry
from linklog.telemetry.sinks.storage import DurableStore, FileStorageBackend


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI runner for testing."""
    return CliRunner()


@pytest.fixture
def app_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point config, store and session paths at a temporary directory."""
    directory = tmp_path / "app"
    monkeypatch.setattr("linklog.config.get_app_dir", lambda: directory)
    return directory


@pytest.fixture
def seed_store(app_dir: Path) -> Callable[[list[LogEntry]], None]:
    """Persist entries to the default store location."""

    def _seed(entries: list[LogEntry]) -> None:
        store = DurableStore(FileStorageBackend(app_dir / "logs.json"))
        for entry in entries:
            store.store(entry)

    return _seed
