"""Tests for LoggerConfig validation and load/save behavior."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from linklog.config import (
    LoggerConfig,
    default_user_agent,
    get_config_path,
    get_session_path,
    get_storage_path,
)
from linklog.telemetry.models.entry import LogLevel


# ============================================================================
# Defaults and validation
# ============================================================================


class TestDefaults:
    """Default values."""

    def test_defaults(self):
        # Act
        config = LoggerConfig()

        # Assert
        assert config.level is LogLevel.INFO
        assert config.enable_console is True
        assert config.enable_storage is True
        assert config.enable_remote is False
        assert config.max_storage_entries == 1000
        assert config.buffer_size == 50
        assert config.flush_interval == 5.0
        assert config.retry_attempts == 3
        assert config.remote_endpoint is None

    def test_default_user_agent(self):
        assert default_user_agent().startswith("linklog/0.1.0 (Python ")
        assert LoggerConfig().user_agent == default_user_agent()


class TestValidation:
    """Field validation."""

    @pytest.mark.parametrize("value,expected", [("debug", LogLevel.DEBUG), ("warning", LogLevel.WARN)])
    def test_level_parsed_case_insensitively(self, value, expected):
        assert LoggerConfig(level=value).level is expected

    def test_unknown_level_rejected(self):
        with pytest.raises(ValidationError):
            LoggerConfig(level="verbose")

    @pytest.mark.parametrize(
        "field,value",
        [
            ("max_storage_entries", 0),
            ("buffer_size", 0),
            ("flush_interval", -1),
            ("retry_attempts", 0),
            ("retry_attempts", 11),
            ("request_timeout", 0),
            ("remote_endpoint", "ftp://logs.example.com"),
            ("user_agent", ""),
        ],
    )
    def test_rejects_out_of_range(self, field, value):
        with pytest.raises(ValidationError):
            LoggerConfig(**{field: value})

    def test_zero_flush_interval_allowed(self):
        assert LoggerConfig(flush_interval=0).flush_interval == 0


# ============================================================================
# Load / save
# ============================================================================


class TestLoadSave:
    """File round trip."""

    def test_save_then_load(self, tmp_path: Path):
        # Arrange
        path = tmp_path / "nested" / "config.json"
        config = LoggerConfig(level="DEBUG", enable_remote=True, remote_endpoint="https://logs.sho.rt/ingest")

        # Act
        config.save_to_file(path)
        loaded = LoggerConfig.load_from_file(path)

        # Assert
        assert loaded == config
        assert json.loads(path.read_text())["level"] == "DEBUG"

    def test_load_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError, match="linklog config init"):
            LoggerConfig.load_from_file(tmp_path / "config.json")

    def test_load_invalid_json(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text("{not json")

        with pytest.raises(ValueError, match="Invalid JSON"):
            LoggerConfig.load_from_file(path)

    def test_load_invalid_values_lists_fields(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"buffer_size": 0}))

        with pytest.raises(ValueError, match="buffer_size"):
            LoggerConfig.load_from_file(path)


# ============================================================================
# Paths
# ============================================================================


class TestPaths:
    """Path resolution against the app directory."""

    def test_defaults_under_app_dir(self, tmp_path: Path, monkeypatch):
        monkeypatch.setattr("linklog.config.get_app_dir", lambda: tmp_path)
        config = LoggerConfig()

        assert get_config_path() == tmp_path / "config.json"
        assert get_storage_path(config) == tmp_path / "logs.json"
        assert get_session_path(config) == tmp_path / "session.json"

    def test_overrides(self, tmp_path: Path):
        config = LoggerConfig(
            storage_path=str(tmp_path / "store.json"),
            session_path=str(tmp_path / "sess.json"),
        )

        assert get_storage_path(config) == tmp_path / "store.json"
        assert get_session_path(config) == tmp_path / "sess.json"
