"""
Log entry model.

A ``LogEntry`` is created once by the logger facade and handed to every
sink. It is immutable: the metadata mapping is a private copy exposed through
a read-only proxy. Nested dicts, lists, tuples and sets are copied too, so
sinks that keep entries around (the Loki batch buffer) are unaffected by
later changes the caller makes. Other objects (models, exceptions) are
shared by reference.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping

from .levels import LogLevel
from .timestamps import to_iso, to_nanoseconds, utc_now


def _copy_containers(value: Any) -> Any:
    """Copy nested dicts, lists, tuples and sets; other values are shared."""
    if isinstance(value, Mapping):
        return {k: _copy_containers(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_copy_containers(v) for v in value]
    if type(value) is tuple:
        return tuple(_copy_containers(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return type(value)(_copy_containers(v) for v in value)
    return value


@dataclass(frozen=True)
class LogEntry:
    """One structured log event."""

    level: LogLevel
    service: str
    message: str
    metadata: Mapping[str, Any] | None = None
    timestamp: datetime = field(default_factory=utc_now)

    def __post_init__(self) -> None:
        object.__setattr__(self, "level", LogLevel.parse(self.level))
        if self.metadata is not None:
            object.__setattr__(
                self, "metadata", MappingProxyType(_copy_containers(self.metadata))
            )

    @property
    def iso_timestamp(self) -> str:
        return to_iso(self.timestamp)

    @property
    def timestamp_ns(self) -> str:
        return to_nanoseconds(self.timestamp)

    @property
    def event(self) -> str | None:
        """Bounded-cardinality ``event`` label taken from metadata, if truthy."""
        if not self.metadata:
            return None
        value = self.metadata.get("event")
        if not value:
            return None
        return str(value)

    def to_dict(self) -> dict[str, Any]:
        """Flat mapping: reserved fields first, then metadata spread on top."""
        data: dict[str, Any] = {
            "timestamp": self.iso_timestamp,
            "level": self.level.value,
            "service": self.service,
            "message": self.message,
        }
        if self.metadata:
            data.update(self.metadata)
        return data
