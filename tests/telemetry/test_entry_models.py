"""Tests for LogLevel, LogEntry and LogFilter models."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from linklog.telemetry.models.entry import LogEntry, LogFilter, LogLevel
from linklog.telemetry.models.wire import RemoteLogPayload

BASE_TIME = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class TestLogLevel:
    """Tests for level ordering and parsing."""

    def test_ordering(self) -> None:
        assert LogLevel.DEBUG < LogLevel.INFO < LogLevel.WARN < LogLevel.ERROR < LogLevel.FATAL

    def test_ordering_is_by_severity_not_name(self) -> None:
        # "FATAL" < "INFO" alphabetically
        assert LogLevel.FATAL > LogLevel.INFO

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("debug", LogLevel.DEBUG),
            ("Info", LogLevel.INFO),
            ("WARN", LogLevel.WARN),
            ("warning", LogLevel.WARN),
            ("critical", LogLevel.FATAL),
            (" error ", LogLevel.ERROR),
        ],
    )
    def test_parse(self, name: str, expected: LogLevel) -> None:
        assert LogLevel.parse(name) is expected

    def test_parse_unknown_raises(self) -> None:
        with pytest.raises(ValueError):
            LogLevel.parse("verbose")


class TestLogEntry:
    """Tests for entry serialization."""

    def test_is_frozen(self, make_entry) -> None:
        entry = make_entry()
        with pytest.raises(ValidationError):
            entry.message = "changed"

    def test_record_uses_camel_case_and_iso_timestamp(self, make_entry) -> None:
        entry = make_entry(user_id="u-1", url="https://sho.rt/x", metadata={"a": [1, 2]})

        record = entry.to_record()

        assert record["timestamp"] == "2025-06-01T12:00:00.000Z"
        assert record["userId"] == "u-1"
        assert record["sessionId"] == "session-1"
        assert record["userAgent"] == "pytest-agent"
        assert record["metadata"] == {"a": [1, 2]}
        assert "stack" not in record

    def test_record_round_trip(self, make_entry) -> None:
        entry = make_entry(metadata={"nested": {"ok": True, "ratio": 1.5}})
        assert LogEntry.from_record(entry.to_record()) == entry

    def test_naive_timestamp_treated_as_utc(self, make_entry) -> None:
        entry = make_entry(timestamp=datetime(2025, 1, 1, 8, 0, 0))
        assert entry.timestamp.tzinfo is not None
        assert entry.timestamp.utcoffset() == timedelta(0)

    def test_metadata_preserves_key_order(self, make_entry) -> None:
        entry = make_entry(metadata={"z": 1, "a": 2, "m": 3})
        assert list(entry.to_record()["metadata"]) == ["z", "a", "m"]


class TestLogFilter:
    """Tests for LogFilter.matches()."""

    def test_empty_filter_matches_everything(self, make_entry) -> None:
        assert LogFilter().matches(make_entry())

    def test_exact_level(self, make_entry) -> None:
        log_filter = LogFilter(level=LogLevel.WARN)
        assert log_filter.matches(make_entry(level=LogLevel.WARN))
        assert not log_filter.matches(make_entry(level=LogLevel.ERROR))

    def test_min_level(self, make_entry) -> None:
        log_filter = LogFilter(min_level=LogLevel.ERROR)
        assert not log_filter.matches(make_entry(level=LogLevel.WARN))
        assert log_filter.matches(make_entry(level=LogLevel.ERROR))
        assert log_filter.matches(make_entry(level=LogLevel.FATAL))

    def test_component(self, make_entry) -> None:
        log_filter = LogFilter(component="StatisticsPage")
        assert log_filter.matches(make_entry(component="StatisticsPage"))
        assert not log_filter.matches(make_entry(component="URLForm"))

    def test_time_range_is_inclusive(self, make_entry) -> None:
        start = BASE_TIME
        end = BASE_TIME + timedelta(minutes=1)
        log_filter = LogFilter(start_date=start, end_date=end)

        assert log_filter.matches(make_entry(timestamp=start))
        assert log_filter.matches(make_entry(timestamp=end))
        assert not log_filter.matches(make_entry(timestamp=start - timedelta(milliseconds=1)))
        assert not log_filter.matches(make_entry(timestamp=end + timedelta(milliseconds=1)))

    def test_search_is_case_insensitive_over_message_and_component(self, make_entry) -> None:
        log_filter = LogFilter(search_term="shortcode")
        assert log_filter.matches(make_entry("Invalid SHORTCODE given", component="URLForm"))
        assert log_filter.matches(make_entry("Generated", component="ShortcodeGenerator"))
        assert not log_filter.matches(make_entry("Redirect served", component="RedirectHandler"))

    def test_empty_search_is_ignored(self, make_entry) -> None:
        assert LogFilter(search_term="").matches(make_entry())


class TestRemoteLogPayload:
    """Tests for the wire document."""

    def test_document_shape(self, make_entry) -> None:
        entry = make_entry()
        payload = RemoteLogPayload(
            entries=[entry],
            timestamp=datetime(2025, 6, 1, 12, 0, 5, tzinfo=timezone.utc),
            session_id="session-1",
            user_id=None,
            user_agent="pytest-agent",
            url="https://sho.rt/stats",
        )

        document = payload.to_document()

        assert set(document) == {"entries", "timestamp", "sessionId", "userId", "userAgent", "url"}
        assert document["timestamp"] == "2025-06-01T12:00:05.000Z"
        assert document["entries"] == [entry.to_record()]
