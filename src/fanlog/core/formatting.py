"""
Formatters turning a ``LogEntry`` into each sink's wire representation.

- ``to_line_format``: JSON Lines record for the file sink
- ``to_console_format``: human-readable, optionally ANSI-colored line
- ``to_remote_batch``: Loki push payload grouped into label-keyed streams
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, TypedDict

from .errors import SerializationError
from .events import LogEntry
from .levels import LogLevel
from .serialization import dumps_lenient, serialize_mapping_to_json_bytes
from .timestamps import format_console_timestamp


class LokiStream(TypedDict):
    stream: dict[str, str]
    values: list[list[str]]


class LokiPushPayload(TypedDict):
    streams: list[LokiStream]


class Colors:
    RESET = "\x1b[0m"
    DIM = "\x1b[2m"
    RED = "\x1b[31m"
    YELLOW = "\x1b[33m"
    CYAN = "\x1b[36m"
    GRAY = "\x1b[90m"


_LEVEL_COLORS: dict[LogLevel, str] = {
    LogLevel.DEBUG: Colors.GRAY,
    LogLevel.INFO: Colors.CYAN,
    LogLevel.WARN: Colors.YELLOW,
    LogLevel.ERROR: Colors.RED,
}

LEVEL_WIDTH = 5


def to_line_format(entry: LogEntry) -> str:
    """Serialize as one JSON object terminated by a newline.

    Metadata is spread after ``timestamp``/``level``/``service``/``message``,
    so a metadata key with one of those names replaces the reserved value.

    Raises:
        SerializationError: If metadata holds values that cannot be encoded.
    """
    return serialize_mapping_to_json_bytes(entry.to_dict()).decode() + "\n"


def _paint(text: str, color: str, colors: bool) -> str:
    if not colors:
        return text
    return f"{color}{text}{Colors.RESET}"


def _format_metadata(metadata: Mapping[str, Any] | None, colors: bool) -> str:
    if not metadata:
        return ""
    try:
        rendered = serialize_mapping_to_json_bytes(metadata).decode()
    except SerializationError:
        return ""
    return " " + _paint(rendered, Colors.DIM, colors)


def to_console_format(entry: LogEntry, *, colors: bool = True) -> str:
    """Format as ``[ts] LEVEL: message {"k":"v"}``.

    The level is upper-cased and left-justified to five columns before the
    colon, so ``INFO`` renders as ``INFO :`` and ``ERROR`` as ``ERROR:``:

        [2025-11-04 10:00:00] INFO : Server started {"port":3000}
        [2025-11-04 10:00:01] ERROR: Database error

    The metadata suffix is omitted when empty or unserializable.
    """
    timestamp = _paint(
        f"[{format_console_timestamp(entry.timestamp)}]", Colors.GRAY, colors
    )
    level = _paint(
        entry.level.value.upper().ljust(LEVEL_WIDTH),
        _LEVEL_COLORS[entry.level],
        colors,
    )
    metadata = _format_metadata(entry.metadata, colors)
    return f"{timestamp} {level}: {entry.message}{metadata}"


def stream_labels(
    entry: LogEntry, static_labels: Mapping[str, str] | None = None
) -> dict[str, str]:
    """Derive the stream label set; static labels win on key collision."""
    labels: dict[str, str] = {
        "service": entry.service,
        "level": entry.level.value,
    }
    event = entry.event
    if event is not None:
        labels["event"] = event
    if static_labels:
        labels.update(static_labels)
    return labels


def _remote_line(entry: LogEntry) -> str:
    line: dict[str, Any] = {"message": entry.message}
    if entry.metadata:
        line.update(entry.metadata)
    try:
        return dumps_lenient(line).decode()
    except SerializationError as exc:
        fallback = {"message": entry.message, "serializationError": str(exc.cause)}
        return dumps_lenient(fallback).decode()


def to_remote_batch(
    entries: Iterable[LogEntry],
    static_labels: Mapping[str, str] | None = None,
) -> LokiPushPayload:
    """Group entries into Loki streams keyed by their label set.

    Streams appear in first-seen order and values keep the input order within
    each stream; callers sort by timestamp beforehand.
    """
    groups: dict[tuple[tuple[str, str], ...], LokiStream] = {}
    for entry in entries:
        labels = stream_labels(entry, static_labels)
        key = tuple(sorted(labels.items()))
        stream = groups.get(key)
        if stream is None:
            stream = {"stream": labels, "values": []}
            groups[key] = stream
        stream["values"].append([entry.timestamp_ns, _remote_line(entry)])
    return {"streams": list(groups.values())}
