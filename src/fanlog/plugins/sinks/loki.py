"""
Grafana Loki sink: batched, retried, best-effort delivery.

``deliver`` only appends to an in-memory buffer; network I/O happens in
background tasks. A batch is sent when either

- the buffer reaches ``batch_size`` entries, or
- the periodic timer fires and the buffer is non-empty.

Both triggers go through ``_schedule_send``, which refuses to start a send
while another one is in flight or a drain is running. Taking a batch swaps
the buffer for a fresh list before the first await, so entries arriving
during a send start the next batch.

Each batch is sorted by timestamp (stable), grouped into label-keyed
streams, gzip-compressed when enabled, and POSTed with up to ``retries``
additional attempts using exponential backoff (1s, 2s, 4s, ...). A batch
that still fails is reported and dropped; nothing is re-buffered and no
error reaches the caller.
"""

from __future__ import annotations

import asyncio
import base64
from operator import attrgetter
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...core import diagnostics
from ...core.errors import RemoteDeliveryError, RetryExhaustedError
from ...core.events import LogEntry
from ...core.formatting import to_remote_batch
from ...core.retry import AsyncRetrier, RetryCallable, RetryConfig, SleepFn
from ...core.serialization import dumps
from ...core.settings import DEFAULT_PUSH_PATH
from ...metrics.metrics import MetricsCollector
from ..utils import parse_plugin_config

__all__ = ["LokiSink", "LokiSinkConfig", "RETRY_BASE_DELAY_SECONDS"]

RETRY_BASE_DELAY_SECONDS = 1.0
_BODY_SNIPPET_CHARS = 512


class LokiSinkConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", validate_default=True)

    url: str
    push_path: str = DEFAULT_PUSH_PATH
    batch_interval_ms: int = Field(default=5000, ge=1)
    batch_size: int = Field(default=100, ge=1)
    retries: int = Field(default=3, ge=0)
    timeout_ms: int = Field(default=30_000, gt=0)
    compress: bool = True
    basic_auth: str | None = None
    labels: dict[str, str] = Field(default_factory=dict)

    @field_validator("url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip().rstrip("/")
        if not value:
            raise ValueError("url must not be empty")
        return value

    @field_validator("push_path")
    @classmethod
    def _ensure_leading_slash(cls, value: str) -> str:
        return value if value.startswith("/") else f"/{value}"

    @field_validator("labels", mode="before")
    @classmethod
    def _coerce_labels(cls, value: Any) -> dict[str, str]:
        if value is None:
            return {}
        return {str(k): str(v) for k, v in dict(value).items()}

    @property
    def push_url(self) -> str:
        return f"{self.url}{self.push_path}"


class LokiSink:
    """Remote sink pushing batches to the Loki push API."""

    name = "loki"

    def __init__(
        self,
        config: LokiSinkConfig | dict | None = None,
        *,
        metrics: MetricsCollector | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retrier: RetryCallable | None = None,
        sleep: SleepFn | None = None,
        channel: diagnostics.DiagnosticsChannel | None = None,
        **kwargs: Any,
    ) -> None:
        cfg = parse_plugin_config(LokiSinkConfig, config, **kwargs)
        self._config = cfg
        self._channel = channel or diagnostics.DiagnosticsChannel()
        self._metrics = metrics
        self._transport = transport
        if retrier is None:
            retrier = AsyncRetrier(
                RetryConfig(
                    max_retries=cfg.retries,
                    base_delay=RETRY_BASE_DELAY_SECONDS,
                    multiplier=2.0,
                ),
                sleep=sleep,
            )
        self._retrier = retrier
        self._headers = self._build_headers()

        self._pending: list[LogEntry] = []
        self._in_flight = False
        self._flushing = 0
        self._timer: asyncio.Task[None] | None = None
        self._timer_stopped = False
        self._send_task: asyncio.Task[None] | None = None
        self._last_status: int | None = None
        self._last_error: str | None = None

    @property
    def config(self) -> LokiSinkConfig:
        return self._config

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def timer_running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    def _build_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._config.compress:
            headers["Content-Encoding"] = "gzip"
        if self._config.basic_auth:
            token = base64.b64encode(self._config.basic_auth.encode("utf-8"))
            headers["Authorization"] = f"Basic {token.decode('ascii')}"
        return headers

    async def start(self) -> None:
        """Start the periodic flush timer on the running loop."""
        self._ensure_timer()

    def deliver(self, entry: LogEntry) -> None:
        self._pending.append(entry)
        self._ensure_timer()
        if len(self._pending) >= self._config.batch_size:
            self._schedule_send()

    def _ensure_timer(self) -> None:
        if self._timer_stopped or self.timer_running:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No loop yet; entries wait for a later trigger or drain()
            return
        self._timer = loop.create_task(self._run_timer())

    async def _run_timer(self) -> None:
        interval = self._config.batch_interval_ms / 1000.0
        while True:
            await asyncio.sleep(interval)
            if self._pending:
                self._schedule_send()

    def _stop_timer(self) -> None:
        self._timer_stopped = True
        timer, self._timer = self._timer, None
        if timer is None or timer.done():
            return
        try:
            timer.cancel()
        except RuntimeError:
            # Owning loop already closed; the task can no longer run
            pass

    def _schedule_send(self) -> asyncio.Task[None] | None:
        if self._flushing or self._in_flight or not self._pending:
            return None
        if self._send_task is not None and not self._send_task.done():
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return None
        return self._start_send(loop)

    def _start_send(self, loop: asyncio.AbstractEventLoop) -> asyncio.Task[None]:
        """Start a send as the sink's single tracked send task."""
        task = loop.create_task(self.send_batch())
        self._send_task = task
        task.add_done_callback(self._on_send_done)
        return task

    def _on_send_done(self, task: asyncio.Task[None]) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            self._channel.error(
                "loki-sink",
                "unexpected failure while sending batch",
                endpoint=self._config.push_url,
                error=str(exc),
            )
        # Entries that piled up during the send may already fill a batch
        if len(self._pending) >= self._config.batch_size:
            self._schedule_send()

    async def send_batch(self) -> None:
        """Send everything currently pending as one batch.

        No-op when the buffer is empty or a send is already in flight.
        Never raises for delivery failures; exhausted batches are dropped.
        """
        if not self._pending or self._in_flight:
            return
        self._in_flight = True
        entries, self._pending = self._pending, []
        try:
            entries.sort(key=attrgetter("timestamp"))
            try:
                await self._deliver_batch(entries)
            except Exception as exc:
                self._report_drop(entries, exc)
            else:
                if self._metrics is not None:
                    self._metrics.record_batch_sent(len(entries))
        finally:
            self._in_flight = False

    async def _deliver_batch(self, entries: list[LogEntry]) -> None:
        payload = to_remote_batch(entries, self._config.labels)
        view = dumps(payload)
        content = view.gzip() if self._config.compress else view.data
        async with httpx.AsyncClient(transport=self._transport) as client:

            async def _attempt() -> None:
                await self._push(client, content)

            await self._retrier(_attempt)

    async def _push(self, client: httpx.AsyncClient, content: bytes) -> None:
        if self._metrics is not None:
            self._metrics.record_send_attempt()
        timeout = self._config.timeout_ms / 1000.0
        try:
            response = await asyncio.wait_for(
                client.post(
                    self._config.push_url,
                    content=content,
                    headers=self._headers,
                    timeout=timeout,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError as exc:
            self._record_failure(f"timed out after {self._config.timeout_ms} ms")
            raise RemoteDeliveryError(
                f"Loki request timed out after {self._config.timeout_ms} ms",
                cause=exc,
            ) from exc
        except httpx.HTTPError as exc:
            self._record_failure(str(exc) or type(exc).__name__)
            raise RemoteDeliveryError(
                f"Loki request failed: {type(exc).__name__}: {exc}",
                cause=exc,
            ) from exc

        self._last_status = response.status_code
        if not response.is_success:
            body = response.text[:_BODY_SNIPPET_CHARS]
            self._record_failure(f"HTTP {response.status_code}")
            self._channel.warn(
                "loki-sink",
                "delivery attempt rejected",
                status_code=response.status_code,
                endpoint=self._config.push_url,
                body=body,
            )
            raise RemoteDeliveryError(
                f"Loki responded with {response.status_code}: {body}",
                status_code=response.status_code,
                body=body,
            )
        self._last_error = None

    def _record_failure(self, reason: str) -> None:
        self._last_error = reason

    def _report_drop(self, entries: list[LogEntry], exc: Exception) -> None:
        cause = exc.__cause__ if isinstance(exc, RetryExhaustedError) else exc
        self._channel.error(
            "loki-sink",
            "dropping batch after failed delivery",
            entries=len(entries),
            attempts=getattr(exc, "attempts", None),
            endpoint=self._config.push_url,
            error=str(cause) if cause is not None else str(exc),
        )
        if self._metrics is not None:
            self._metrics.record_batch_dropped(len(entries))

    async def drain(self) -> None:
        """Stop the timer and send whatever is pending.

        Idempotent and safe to call concurrently. Every send runs as the
        tracked send task; drain waits for it and keeps sending until the
        buffer is empty.
        """
        self._stop_timer()
        self._flushing += 1
        try:
            loop = asyncio.get_running_loop()
            while True:
                task = self._send_task
                if task is not None and not task.done() and task.get_loop() is loop:
                    await asyncio.gather(task, return_exceptions=True)
                    continue
                # A send owned by another loop cannot be awaited here
                if not self._pending or self._in_flight:
                    break
                await asyncio.gather(self._start_send(loop), return_exceptions=True)
        finally:
            self._flushing -= 1

    async def health_check(self) -> bool:
        return (
            self._last_error is None
            and self._last_status is not None
            and 200 <= self._last_status < 300
        )
