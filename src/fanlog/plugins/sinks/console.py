from __future__ import annotations

import os
import sys
from typing import Any, TextIO

from pydantic import BaseModel, ConfigDict

from ...core.events import LogEntry
from ...core.formatting import to_console_format
from ..utils import parse_plugin_config

__all__ = ["ConsoleSink", "ConsoleSinkConfig", "detect_colors"]


class ConsoleSinkConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    colors: bool | None = None


def detect_colors(stream: TextIO) -> bool:
    """True when ``stream`` is a TTY and ``NO_COLOR`` is unset."""
    if os.getenv("NO_COLOR"):
        return False
    try:
        return bool(stream.isatty())
    except Exception:
        return False


class ConsoleSink:
    """Writes one human-readable line per entry to stdout.

    Synchronous and stateless; there is nothing to drain.
    """

    name = "console"

    def __init__(
        self,
        config: ConsoleSinkConfig | dict | None = None,
        *,
        stream: TextIO | None = None,
        **kwargs: Any,
    ) -> None:
        cfg = parse_plugin_config(ConsoleSinkConfig, config, **kwargs)
        self._config = cfg
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        # Resolved per call so redirected/captured stdout is honored
        return self._stream if self._stream is not None else sys.stdout

    @property
    def colors(self) -> bool:
        if self._config.colors is not None:
            return self._config.colors
        return detect_colors(self.stream)

    def deliver(self, entry: LogEntry) -> None:
        stream = self.stream
        stream.write(to_console_format(entry, colors=self.colors) + "\n")
        stream.flush()
