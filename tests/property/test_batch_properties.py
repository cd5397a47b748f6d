from __future__ import annotations

import asyncio
import gzip
import json
from datetime import datetime, timedelta, timezone
from typing import Any

import httpx
import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from fanlog.core.events import LogEntry
from fanlog.core.formatting import stream_labels, to_remote_batch
from fanlog.core.levels import LogLevel
from fanlog.plugins.sinks.loki import LokiSink

pytestmark = pytest.mark.property

BASE = datetime(2025, 11, 4, 10, 0, 0, tzinfo=timezone.utc)

# (offset_ms, level, event) per entry; small ranges force timestamp ties
entry_specs = st.lists(
    st.tuples(
        st.integers(min_value=0, max_value=5),
        st.sampled_from(list(LogLevel)),
        st.sampled_from([None, "login", "signup"]),
    ),
    min_size=1,
    max_size=40,
)


def _entries(specs: list[tuple[int, LogLevel, str | None]]) -> list[LogEntry]:
    return [
        LogEntry(
            level=level,
            service="svc",
            message=f"m{index}",
            metadata={"event": event} if event else None,
            timestamp=BASE + timedelta(milliseconds=offset),
        )
        for index, (offset, level, event) in enumerate(specs)
    ]


def _send_through_sink(entries: list[LogEntry]) -> list[dict[str, Any]]:
    bodies: list[dict[str, Any]] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(gzip.decompress(request.content)))
        return httpx.Response(204)

    async def run() -> None:
        sink = LokiSink(
            url="http://loki:3100",
            batch_size=len(entries) + 1,
            batch_interval_ms=3_600_000,
            transport=httpx.MockTransport(handler),
        )
        for entry in entries:
            sink.deliver(entry)
        await sink.drain()

    asyncio.run(run())
    return bodies


@settings(max_examples=50, deadline=None)
@given(entry_specs)
def test_sent_values_are_time_ordered_and_stable(
    specs: list[tuple[int, LogLevel, str | None]],
) -> None:
    entries = _entries(specs)
    (body,) = _send_through_sink(entries)

    seen: list[str] = []
    for stream in body["streams"]:
        keys = [
            (int(ts), int(json.loads(line)["message"][1:]))
            for ts, line in stream["values"]
        ]
        # Ties on timestamp keep delivery order
        assert keys == sorted(keys)
        seen.extend(json.loads(line)["message"] for _, line in stream["values"])

    assert sorted(seen) == sorted(e.message for e in entries)


@settings(max_examples=100, deadline=None)
@given(entry_specs)
def test_one_stream_per_distinct_label_set(
    specs: list[tuple[int, LogLevel, str | None]],
) -> None:
    entries = _entries(specs)
    payload = to_remote_batch(entries, {"environment": "test"})

    expected = {tuple(sorted(stream_labels(e, {"environment": "test"}).items())) for e in entries}
    actual = [tuple(sorted(s["stream"].items())) for s in payload["streams"]]
    assert len(actual) == len(set(actual))
    assert set(actual) == expected

    by_message = {e.message: e for e in entries}
    for stream in payload["streams"]:
        for _, line in stream["values"]:
            entry = by_message[json.loads(line)["message"]]
            assert stream_labels(entry, {"environment": "test"}) == stream["stream"]
