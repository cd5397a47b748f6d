"""Unit tests for entry construction and error/metadata merging."""

from __future__ import annotations

from types import MappingProxyType

import pytest

from fanlog.core.envelope import build_entry, merge_metadata
from fanlog.core.events import LogEntry
from fanlog.core.levels import LogLevel


def _raise_and_catch() -> ValueError:
    try:
        raise ValueError("boom")
    except ValueError as exc:
        return exc


class TestMergeMetadata:
    def test_nothing_supplied_returns_none(self) -> None:
        assert merge_metadata() is None

    def test_mapping_is_plain_metadata(self) -> None:
        merged = merge_metadata({"code": 1})
        assert merged == {"code": 1}
        assert "error" not in merged

    def test_exception_fields(self) -> None:
        merged = merge_metadata(Exception("boom"))
        assert merged is not None
        assert merged["error"] == "boom"
        assert merged["errorName"] == "Exception"
        assert merged["errorStack"]

    def test_exception_with_metadata(self) -> None:
        merged = merge_metadata(Exception("boom"), {"code": 1})
        assert merged is not None
        assert merged["code"] == 1
        assert merged["error"] == "boom"
        assert merged["errorName"] == "Exception"

    def test_explicit_metadata_overrides_error_fields(self) -> None:
        merged = merge_metadata(Exception("boom"), {"error": "custom"})
        assert merged is not None
        assert merged["error"] == "custom"
        assert merged["errorName"] == "Exception"

    def test_raised_exception_stack_contains_traceback(self) -> None:
        merged = merge_metadata(_raise_and_catch())
        assert merged is not None
        assert "Traceback" in merged["errorStack"]
        assert "_raise_and_catch" in merged["errorStack"]
        assert merged["errorStack"].endswith("ValueError: boom")

    def test_keyword_fields_win_last(self) -> None:
        merged = merge_metadata({"a": 1, "b": 1}, None, {"b": 2})
        assert merged == {"a": 1, "b": 2}


class TestBuildEntry:
    def test_fields(self) -> None:
        entry = build_entry("info", "hello", service="svc", fields={"x": 1})
        assert entry.level is LogLevel.INFO
        assert entry.service == "svc"
        assert entry.message == "hello"
        assert dict(entry.metadata or {}) == {"x": 1}
        assert entry.timestamp.tzinfo is not None

    def test_metadata_is_read_only_copy(self) -> None:
        source = {"x": 1}
        entry = build_entry("info", "hello", service="svc", error_or_metadata=source)
        source["x"] = 2
        assert entry.metadata is not None
        assert entry.metadata["x"] == 1
        assert isinstance(entry.metadata, MappingProxyType)
        with pytest.raises(TypeError):
            entry.metadata["x"] = 3  # type: ignore[index]

    def test_nested_containers_are_copied(self) -> None:
        user = {"id": "u1", "roles": ["admin"]}
        marker = object()
        entry = LogEntry(
            LogLevel.INFO,
            "svc",
            "m",
            {"user": user, "pair": ([1], 2), "obj": marker},
        )

        user["id"] = "u2"
        user["roles"].append("root")  # type: ignore[attr-defined]

        assert entry.metadata is not None
        assert entry.metadata["user"] == {"id": "u1", "roles": ["admin"]}
        assert entry.metadata["pair"] == ([1], 2)
        assert entry.metadata["obj"] is marker

    def test_entry_is_frozen(self) -> None:
        entry = LogEntry(level=LogLevel.INFO, service="svc", message="m")
        with pytest.raises(AttributeError):
            entry.message = "other"  # type: ignore[misc]

    def test_event_label_only_when_truthy(self) -> None:
        assert LogEntry(LogLevel.INFO, "svc", "m", {"event": ""}).event is None
        assert LogEntry(LogLevel.INFO, "svc", "m", {"event": 7}).event == "7"
        assert LogEntry(LogLevel.INFO, "svc", "m").event is None
