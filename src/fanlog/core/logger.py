"""
Logger facade.

Builds one ``LogEntry`` per call and fans it out to every configured sink.
Each sink is dispatched independently:

- a synchronous exception from ``deliver`` is caught and reported
- an awaitable returned by ``deliver`` is scheduled as a task whose failure
  is reported from a done-callback

Neither path ever raises to the caller or affects the other sinks.
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Awaitable, Iterable, Mapping

from . import diagnostics
from .envelope import build_entry
from .events import LogEntry
from .levels import LogLevel
from .settings import Settings
from ..metrics.metrics import MetricsCollector
from ..plugins.utils import get_plugin_name


class Logger:
    """Structured logger dispatching to console, file and Loki sinks."""

    def __init__(
        self,
        service: str,
        *,
        sinks: Iterable[Any],
        metrics: MetricsCollector | None = None,
        channel: diagnostics.DiagnosticsChannel | None = None,
    ) -> None:
        self._service = service
        self._channel = channel or diagnostics.DiagnosticsChannel()
        self._sinks: list[Any] = list(sinks)
        self._metrics = metrics
        self._tasks: set[asyncio.Future[Any]] = set()

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        transport: Any | None = None,
    ) -> Logger:
        """Build sinks in fixed order: console, file, Loki.

        ``transport`` is handed to the Loki sink's ``httpx.AsyncClient``.
        """
        from ..plugins.sinks.console import ConsoleSink
        from ..plugins.sinks.jsonl_file import JsonlFileSink
        from ..plugins.sinks.loki import LokiSink

        channel = diagnostics.DiagnosticsChannel(
            enabled=settings.internal_logging_enabled
        )
        metrics = MetricsCollector(enabled=True) if settings.enable_metrics else None
        sinks: list[Any] = []
        if settings.enable_console:
            sinks.append(ConsoleSink(colors=settings.console_colors))
        if settings.file and settings.enable_file:
            sinks.append(JsonlFileSink(path=settings.file, channel=channel))
        if settings.loki.url and settings.enable_loki:
            loki = settings.loki
            sinks.append(
                LokiSink(
                    url=loki.url,
                    push_path=loki.push_path,
                    batch_interval_ms=loki.batch_interval_ms,
                    batch_size=loki.batch_size,
                    retries=loki.retries,
                    timeout_ms=loki.timeout_ms,
                    compress=loki.compress,
                    basic_auth=loki.basic_auth,
                    labels=settings.static_labels(),
                    metrics=metrics,
                    transport=transport,
                    channel=channel,
                )
            )
        return cls(settings.service, sinks=sinks, metrics=metrics, channel=channel)

    @property
    def service(self) -> str:
        return self._service

    @property
    def sinks(self) -> tuple[Any, ...]:
        return tuple(self._sinks)

    @property
    def metrics(self) -> MetricsCollector | None:
        return self._metrics

    # Level methods -----------------------------------------------------

    def debug(
        self, message: str, metadata: Mapping[str, Any] | None = None, **fields: Any
    ) -> None:
        self.log(LogLevel.DEBUG, message, metadata, **fields)

    def info(
        self, message: str, metadata: Mapping[str, Any] | None = None, **fields: Any
    ) -> None:
        self.log(LogLevel.INFO, message, metadata, **fields)

    def warn(
        self, message: str, metadata: Mapping[str, Any] | None = None, **fields: Any
    ) -> None:
        self.log(LogLevel.WARN, message, metadata, **fields)

    warning = warn

    def error(
        self,
        message: str,
        error_or_metadata: BaseException | Mapping[str, Any] | None = None,
        metadata: Mapping[str, Any] | None = None,
        **fields: Any,
    ) -> None:
        """Log at error level.

        ``error_or_metadata`` may be an exception, whose message, class name
        and traceback become ``error``/``errorName``/``errorStack``; explicit
        ``metadata`` and keyword fields are merged on top and win on collision.
        A mapping in that position is used as plain metadata.
        """
        self._emit(
            LogLevel.ERROR,
            message,
            error_or_metadata=error_or_metadata,
            metadata=metadata,
            fields=fields,
        )

    def log(
        self,
        level: LogLevel | str,
        message: str,
        metadata: Mapping[str, Any] | None = None,
        **fields: Any,
    ) -> None:
        self._emit(level, message, error_or_metadata=metadata, fields=fields)

    # Dispatch ----------------------------------------------------------

    def _emit(
        self,
        level: LogLevel | str,
        message: str,
        *,
        error_or_metadata: BaseException | Mapping[str, Any] | None = None,
        metadata: Mapping[str, Any] | None = None,
        fields: Mapping[str, Any] | None = None,
    ) -> None:
        try:
            entry = build_entry(
                level,
                message,
                service=self._service,
                error_or_metadata=error_or_metadata,
                metadata=metadata,
                fields=fields,
            )
        except Exception as exc:
            self._channel.warn("logger", "failed to build log entry", error=str(exc))
            return
        self.dispatch(entry)

    def dispatch(self, entry: LogEntry) -> None:
        """Hand ``entry`` to every sink, isolating each sink's failures."""
        for sink in self._sinks:
            try:
                result = sink.deliver(entry)
            except Exception as exc:
                self._report_sink_error(sink, exc)
                continue
            if inspect.isawaitable(result):
                self._track(sink, result)

    def _track(self, sink: Any, awaitable: Awaitable[Any]) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None
        if loop is None:
            try:
                asyncio.run(_await(awaitable))
            except Exception as exc:
                self._report_sink_error(sink, exc)
            return

        future = asyncio.ensure_future(awaitable)
        self._tasks.add(future)

        def _done(fut: asyncio.Future[Any]) -> None:
            self._tasks.discard(fut)
            if fut.cancelled():
                return
            exc = fut.exception()
            if exc is not None:
                self._report_sink_error(sink, exc)

        future.add_done_callback(_done)

    def _report_sink_error(self, sink: Any, exc: BaseException) -> None:
        name = get_plugin_name(sink)
        self._channel.warn(
            "logger",
            "sink delivery failed",
            sink=name,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        if self._metrics is not None:
            self._metrics.record_sink_error(sink_name=name)

    # Shutdown ----------------------------------------------------------

    async def drain_all(self) -> None:
        """Wait for outstanding deliveries, then drain every drainable sink.

        Sinks are drained concurrently; one sink's failure is reported and
        does not stop the others.
        """
        if self._tasks:
            loop = asyncio.get_running_loop()
            pending = [t for t in self._tasks if t.get_loop() is loop]
            await asyncio.gather(*pending, return_exceptions=True)

        drainable = [s for s in self._sinks if callable(getattr(s, "drain", None))]
        results = await asyncio.gather(
            *(s.drain() for s in drainable), return_exceptions=True
        )
        for sink, result in zip(drainable, results):
            if isinstance(result, BaseException):
                self._channel.warn(
                    "logger",
                    "sink drain failed",
                    sink=get_plugin_name(sink),
                    error_type=type(result).__name__,
                    error=str(result),
                )

    async def flush(self) -> None:
        """Alias of :meth:`drain_all`."""
        await self.drain_all()

    async def __aenter__(self) -> Logger:
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.drain_all()


async def _await(awaitable: Awaitable[Any]) -> Any:
    return await awaitable
