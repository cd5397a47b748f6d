"""
Internal diagnostics channel.

Non-fatal failures (sink dispatch errors, dropped Loki batches, file write
errors) are reported here instead of being raised to the caller. Each
diagnostic is one JSON line on stderr so it never mixes with the console
sink's stdout stream.

The enabled flag is read from ``Settings.internal_logging_enabled`` on first
use and cached; tests reset the cache with :func:`_reset_for_tests` and swap
the output with :func:`set_writer_for_tests`.

Loggers report through a :class:`DiagnosticsChannel`, which can pin the
flag for that logger alone; the module-level functions use the process
default.
"""

from __future__ import annotations

import sys
import time
from typing import Any, Callable

import orjson

Writer = Callable[[dict[str, Any]], None]

_internal_logging_enabled: bool | None = None


def _default_writer(payload: dict[str, Any]) -> None:
    data = orjson.dumps(payload, default=str)
    stream = sys.stderr
    stream.write(data.decode("utf-8") + "\n")
    stream.flush()


_writer: Writer = _default_writer


def set_writer_for_tests(writer: Writer) -> None:
    global _writer
    _writer = writer


def _reset_for_tests() -> None:
    global _internal_logging_enabled, _writer
    _internal_logging_enabled = None
    _writer = _default_writer


def configure(*, enabled: bool) -> None:
    """Force the enabled flag, bypassing settings lookup."""
    global _internal_logging_enabled
    _internal_logging_enabled = bool(enabled)


def is_enabled() -> bool:
    global _internal_logging_enabled
    if _internal_logging_enabled is None:
        try:
            from .settings import internal_logging_enabled_from_env

            _internal_logging_enabled = internal_logging_enabled_from_env()
        except Exception:
            _internal_logging_enabled = True
    return _internal_logging_enabled


def _emit(
    level: str,
    component: str,
    message: str,
    fields: dict[str, Any],
    *,
    enabled: bool | None = None,
) -> None:
    if not (is_enabled() if enabled is None else enabled):
        return
    payload: dict[str, Any] = {
        "ts": time.time(),
        "level": level,
        "component": component,
        "message": message,
    }
    payload.update(fields)
    try:
        _writer(payload)
    except Exception:
        # Diagnostics must never raise into sinks or the facade
        pass


def warn(component: str, message: str, **fields: Any) -> None:
    """Report a recoverable failure."""
    _emit("WARN", component, message, fields)


def error(component: str, message: str, **fields: Any) -> None:
    """Report a failure that lost data (e.g. a dropped batch)."""
    _emit("ERROR", component, message, fields)


def debug(component: str, message: str, **fields: Any) -> None:
    _emit("DEBUG", component, message, fields)


class DiagnosticsChannel:
    """Diagnostics scoped to one logger and its sinks.

    ``enabled=None`` follows the process-wide flag; ``True``/``False`` pins
    this channel without touching other loggers.
    """

    def __init__(self, *, enabled: bool | None = None) -> None:
        self.enabled = enabled

    def is_enabled(self) -> bool:
        return is_enabled() if self.enabled is None else self.enabled

    def warn(self, component: str, message: str, **fields: Any) -> None:
        _emit("WARN", component, message, fields, enabled=self.enabled)

    def error(self, component: str, message: str, **fields: Any) -> None:
        _emit("ERROR", component, message, fields, enabled=self.enabled)

    def debug(self, component: str, message: str, **fields: Any) -> None:
        _emit("DEBUG", component, message, fields, enabled=self.enabled)
