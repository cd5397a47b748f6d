"""
JSON serialization helpers built on orjson.

Output is compact (no whitespace) and preserves mapping insertion order,
which the JSONL and Loki formats rely on: reserved fields come first and
metadata is spread after them.
"""

from __future__ import annotations

import gzip
from dataclasses import dataclass
from pathlib import PurePath
from typing import Any, Mapping

import orjson

from .errors import SerializationError


def _default(obj: Any) -> Any:
    """Fallback hook for types orjson does not handle natively."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump(exclude_none=True)
    if isinstance(obj, BaseException):
        return str(obj)
    if isinstance(obj, (set, frozenset)):
        return list(obj)
    if isinstance(obj, PurePath):
        return str(obj)
    if isinstance(obj, Mapping):
        return dict(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


@dataclass
class SerializedView:
    """Serialized JSON bytes with cheap accessors."""

    data: bytes

    @property
    def view(self) -> memoryview:
        return memoryview(self.data)

    def __bytes__(self) -> bytes:
        return self.data

    def decode(self) -> str:
        return self.data.decode("utf-8")

    def gzip(self) -> bytes:
        return gzip.compress(self.data)


def dumps(payload: Any) -> SerializedView:
    """Serialize any JSON-compatible value.

    Raises:
        SerializationError: If a value cannot be represented as JSON.
    """
    try:
        data = orjson.dumps(payload, default=_default, option=orjson.OPT_NON_STR_KEYS)
    except TypeError as e:
        raise SerializationError("Serialization failed", cause=e) from e
    return SerializedView(data=data)


def _lenient_default(obj: Any) -> Any:
    try:
        return _default(obj)
    except TypeError:
        return repr(obj)


def dumps_lenient(payload: Any) -> SerializedView:
    """Like :func:`dumps` but renders unsupported values with ``repr``.

    Used for Loki lines, where one odd metadata value must not sink the
    whole batch.
    """
    try:
        data = orjson.dumps(
            payload, default=_lenient_default, option=orjson.OPT_NON_STR_KEYS
        )
    except TypeError as e:
        # e.g. integers beyond 64 bits
        raise SerializationError("Serialization failed", cause=e) from e
    return SerializedView(data=data)


def serialize_mapping_to_json_bytes(payload: Mapping[str, Any]) -> SerializedView:
    """Serialize a mapping, accepting read-only proxies as well as dicts."""
    if not isinstance(payload, dict):
        payload = dict(payload)
    return dumps(payload)
