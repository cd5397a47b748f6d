from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest

from fanlog.core.errors import SerializationError
from fanlog.core.events import LogEntry
from fanlog.core.formatting import (
    Colors,
    stream_labels,
    to_console_format,
    to_line_format,
    to_remote_batch,
)
from fanlog.core.levels import LogLevel

BASE = datetime(2025, 11, 4, 10, 0, 0, tzinfo=timezone.utc)


def _entry(
    message: str = "hello",
    level: LogLevel = LogLevel.INFO,
    metadata: dict | None = None,
    offset_ms: int = 0,
    service: str = "svc",
) -> LogEntry:
    return LogEntry(
        level=level,
        service=service,
        message=message,
        metadata=metadata,
        timestamp=BASE + timedelta(milliseconds=offset_ms),
    )


class TestLineFormat:
    def test_single_line_with_reserved_fields_first(self) -> None:
        line = to_line_format(_entry(metadata={"x": 1}))
        assert line.endswith("\n")
        assert line.count("\n") == 1
        parsed = json.loads(line)
        assert list(parsed) == ["timestamp", "level", "service", "message", "x"]
        assert parsed == {
            "timestamp": "2025-11-04T10:00:00.000Z",
            "level": "info",
            "service": "svc",
            "message": "hello",
            "x": 1,
        }

    def test_compact_encoding(self) -> None:
        line = to_line_format(_entry())
        assert ", " not in line and ": " not in line

    def test_metadata_overrides_reserved_key(self) -> None:
        parsed = json.loads(to_line_format(_entry(metadata={"message": "spoofed"})))
        assert parsed["message"] == "spoofed"

    def test_unserializable_metadata_raises(self) -> None:
        with pytest.raises(SerializationError):
            to_line_format(_entry(metadata={"obj": object()}))

    def test_nested_and_special_values(self) -> None:
        parsed = json.loads(
            to_line_format(_entry(metadata={"nested": {"a": [1, 2]}, "tags": {"x"}}))
        )
        assert parsed["nested"] == {"a": [1, 2]}
        assert parsed["tags"] == ["x"]


class TestConsoleFormat:
    def test_plain_structure(self) -> None:
        text = to_console_format(_entry(metadata={"x": 1}), colors=False)
        assert text.startswith("[")
        assert "] INFO : hello {\"x\":1}" in text
        assert "\x1b[" not in text

    def test_level_padding(self) -> None:
        assert "] WARN : " in to_console_format(_entry(level=LogLevel.WARN), colors=False)
        assert "] ERROR: " in to_console_format(_entry(level=LogLevel.ERROR), colors=False)

    def test_empty_metadata_omitted(self) -> None:
        text = to_console_format(_entry(metadata={}), colors=False)
        assert text.endswith(": hello")

    def test_unserializable_metadata_omitted(self) -> None:
        text = to_console_format(_entry(metadata={"obj": object()}), colors=False)
        assert text.endswith(": hello")

    @pytest.mark.parametrize(
        ("level", "color"),
        [
            (LogLevel.DEBUG, Colors.GRAY),
            (LogLevel.INFO, Colors.CYAN),
            (LogLevel.WARN, Colors.YELLOW),
            (LogLevel.ERROR, Colors.RED),
        ],
    )
    def test_level_colors(self, level: LogLevel, color: str) -> None:
        text = to_console_format(_entry(level=level, metadata={"k": "v"}))
        assert f"{color}{level.value.upper().ljust(5)}{Colors.RESET}" in text
        assert f"{Colors.DIM}" in text


class TestRemoteBatch:
    def test_labels_include_event_and_static(self) -> None:
        labels = stream_labels(
            _entry(metadata={"event": "login"}), {"environment": "prod"}
        )
        assert labels == {
            "service": "svc",
            "level": "info",
            "event": "login",
            "environment": "prod",
        }

    def test_static_labels_take_precedence(self) -> None:
        labels = stream_labels(_entry(), {"service": "override"})
        assert labels["service"] == "override"

    def test_groups_by_label_set_in_first_seen_order(self) -> None:
        entries = [
            _entry("a", LogLevel.INFO, offset_ms=0),
            _entry("b", LogLevel.ERROR, offset_ms=1),
            _entry("c", LogLevel.INFO, offset_ms=2),
            _entry("d", LogLevel.INFO, {"event": "signup"}, offset_ms=3),
        ]
        payload = to_remote_batch(entries)
        streams = payload["streams"]
        assert [s["stream"] for s in streams] == [
            {"service": "svc", "level": "info"},
            {"service": "svc", "level": "error"},
            {"service": "svc", "level": "info", "event": "signup"},
        ]
        assert [json.loads(v[1])["message"] for v in streams[0]["values"]] == ["a", "c"]

    def test_values_are_ns_strings_and_json_lines(self) -> None:
        payload = to_remote_batch([_entry(metadata={"user_id": "u1", "event": "x"})])
        ts, line = payload["streams"][0]["values"][0]
        assert ts == str(int(BASE.timestamp()) * 1_000_000_000)
        assert json.loads(line) == {"message": "hello", "user_id": "u1", "event": "x"}

    def test_high_cardinality_metadata_not_a_label(self) -> None:
        payload = to_remote_batch([_entry(metadata={"request_id": "r-1"})])
        assert "request_id" not in payload["streams"][0]["stream"]

    def test_unserializable_metadata_is_rendered_not_fatal(self) -> None:
        payload = to_remote_batch([_entry(metadata={"obj": object()})])
        line = json.loads(payload["streams"][0]["values"][0][1])
        assert line["message"] == "hello"
        assert line["obj"].startswith("<object")

    def test_empty_input(self) -> None:
        assert to_remote_batch([]) == {"streams": []}
