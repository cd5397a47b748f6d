from __future__ import annotations

from typing import Awaitable, Protocol, runtime_checkable

from ...core.events import LogEntry
from .console import ConsoleSink, ConsoleSinkConfig
from .jsonl_file import JsonlFileSink, JsonlFileSinkConfig
from .loki import LokiSink, LokiSinkConfig


@runtime_checkable
class BaseSink(Protocol):
    """Sink contract used by the logger facade.

    ``deliver`` may return ``None`` (synchronous sinks) or an awaitable that
    completes when the entry has been handled. Implementations should contain
    their own I/O errors; anything that does escape is isolated and reported
    by the facade.
    """

    name: str

    def deliver(self, entry: LogEntry) -> None | Awaitable[None]:  # noqa: D401
        """Hand one entry to the sink."""
        ...


@runtime_checkable
class DrainableSink(BaseSink, Protocol):
    """A sink with buffered state that must be flushed at shutdown."""

    async def drain(self) -> None: ...


__all__ = [
    "BaseSink",
    "ConsoleSink",
    "ConsoleSinkConfig",
    "DrainableSink",
    "JsonlFileSink",
    "JsonlFileSinkConfig",
    "LokiSink",
    "LokiSinkConfig",
]
