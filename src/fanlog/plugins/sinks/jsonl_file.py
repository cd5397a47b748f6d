"""
Append-only JSON Lines file sink.

Writes are serialized through an explicit FIFO: ``deliver`` enqueues the
formatted line on an ``asyncio.Queue`` consumed by a single worker task, so
lines land in the file in call order even though each write runs in a
thread. ``deliver`` returns a future that resolves once its line has been
written; ``drain`` returns only after every queued line is on disk.

Without a running event loop the sink writes synchronously.
"""

from __future__ import annotations

import asyncio
import threading
from pathlib import Path
from typing import IO, Any

from pydantic import BaseModel, ConfigDict

from ...core import diagnostics
from ...core.events import LogEntry
from ...core.formatting import to_line_format
from ..utils import parse_plugin_config

__all__ = ["JsonlFileSink", "JsonlFileSinkConfig"]

_QueueItem = tuple[str, "asyncio.Future[None]"]


class JsonlFileSinkConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    path: Path
    create_dirs: bool = True


class JsonlFileSink:
    name = "file"

    def __init__(
        self,
        config: JsonlFileSinkConfig | dict | None = None,
        *,
        channel: diagnostics.DiagnosticsChannel | None = None,
        **kwargs: Any,
    ) -> None:
        cfg = parse_plugin_config(JsonlFileSinkConfig, config, **kwargs)
        self._config = cfg
        self._channel = channel or diagnostics.DiagnosticsChannel()
        self._fh: IO[str] | None = None
        self._file_lock = threading.Lock()
        self._queue: asyncio.Queue[_QueueItem] | None = None
        self._worker: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._last_error: str | None = None

    @property
    def path(self) -> Path:
        return self._config.path

    def _open(self) -> IO[str]:
        if self._config.create_dirs:
            self.path.parent.mkdir(parents=True, exist_ok=True)
        return open(self.path, "a", encoding="utf-8")

    def _write_now(self, line: str) -> bool:
        """Write and flush one line; report and swallow I/O errors."""
        try:
            with self._file_lock:
                if self._fh is None:
                    self._fh = self._open()
                self._fh.write(line)
                self._fh.flush()
        except OSError as exc:
            self._last_error = str(exc)
            self._channel.warn(
                "file-sink",
                "failed to write log line",
                path=str(self.path),
                error=str(exc),
            )
            return False
        self._last_error = None
        return True

    def _ensure_worker(self, loop: asyncio.AbstractEventLoop) -> asyncio.Queue[_QueueItem]:
        if (
            self._queue is None
            or self._worker is None
            or self._worker.done()
            or self._loop is not loop
        ):
            self._queue = asyncio.Queue()
            self._loop = loop
            self._worker = loop.create_task(self._run(self._queue))
        return self._queue

    async def _run(self, queue: asyncio.Queue[_QueueItem]) -> None:
        while True:
            line, future = await queue.get()
            try:
                await asyncio.to_thread(self._write_now, line)
            finally:
                if not future.done():
                    future.set_result(None)
                queue.task_done()

    def deliver(self, entry: LogEntry) -> asyncio.Future[None] | None:
        """Queue one entry for writing.

        Raises:
            SerializationError: If the entry's metadata cannot be encoded.
        """
        line = to_line_format(entry)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._write_now(line)
            return None
        queue = self._ensure_worker(loop)
        future: asyncio.Future[None] = loop.create_future()
        queue.put_nowait((line, future))
        return future

    async def drain(self) -> None:
        """Wait for queued writes, stop the worker and close the file."""
        queue, worker = self._queue, self._worker
        same_loop = self._loop is asyncio.get_running_loop()
        if same_loop and queue is not None and worker is not None and not worker.done():
            await queue.join()
            worker.cancel()
            await asyncio.gather(worker, return_exceptions=True)
        self._queue = None
        self._worker = None
        self._loop = None
        with self._file_lock:
            if self._fh is not None:
                try:
                    self._fh.close()
                finally:
                    self._fh = None

    async def health_check(self) -> bool:
        return self._last_error is None
