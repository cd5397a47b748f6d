"""
Delivery metrics for fanlog sinks.

Prometheus-compatible counters with an isolated registry per collector.
When disabled, exporters are not created but in-memory counters are still
tracked so tests can assert on them.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from prometheus_client import CollectorRegistry, Counter


@dataclass
class DeliveryMetrics:
    """Captured runtime counters for quick assertions in tests."""

    events_delivered: int = 0
    events_dropped: int = 0
    send_attempts: int = 0
    batches_sent: int = 0
    batches_dropped: int = 0
    sink_errors: int = 0


class MetricsCollector:
    """Logger-scoped metrics collector.

    All record methods are synchronous and safe to call from the event loop
    thread; they never raise.
    """

    def __init__(self, *, enabled: bool = False) -> None:
        self._enabled = bool(enabled)
        self._state = DeliveryMetrics()

        self._c_delivered: Any | None = None
        self._c_dropped: Any | None = None
        self._c_attempts: Any | None = None
        self._c_batches: Any | None = None
        self._c_sink_errors: Any | None = None
        self._registry: CollectorRegistry | None = None

        if self._enabled:
            self._registry = CollectorRegistry()
            self._c_delivered = Counter(
                "fanlog_events_delivered_total",
                "Entries accepted by a remote endpoint",
                registry=self._registry,
            )
            self._c_dropped = Counter(
                "fanlog_events_dropped_total",
                "Entries dropped after retries were exhausted",
                registry=self._registry,
            )
            self._c_attempts = Counter(
                "fanlog_send_attempts_total",
                "HTTP delivery attempts, including retries",
                registry=self._registry,
            )
            self._c_batches = Counter(
                "fanlog_batches_total",
                "Batches by outcome",
                ["outcome"],
                registry=self._registry,
            )
            self._c_sink_errors = Counter(
                "fanlog_sink_errors_total",
                "Sink dispatch failures",
                ["sink"],
                registry=self._registry,
            )

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def registry(self) -> CollectorRegistry | None:
        """Expose the isolated Prometheus registry when enabled."""
        return self._registry

    def record_send_attempt(self) -> None:
        self._state.send_attempts += 1
        if self._c_attempts is not None:
            self._c_attempts.inc()

    def record_batch_sent(self, size: int) -> None:
        self._state.batches_sent += 1
        self._state.events_delivered += size
        if self._c_batches is not None:
            self._c_batches.labels(outcome="sent").inc()
        if self._c_delivered is not None:
            self._c_delivered.inc(size)

    def record_batch_dropped(self, size: int) -> None:
        self._state.batches_dropped += 1
        self._state.events_dropped += size
        if self._c_batches is not None:
            self._c_batches.labels(outcome="dropped").inc()
        if self._c_dropped is not None:
            self._c_dropped.inc(size)

    def record_sink_error(self, *, sink_name: str | None = None) -> None:
        self._state.sink_errors += 1
        if self._c_sink_errors is not None:
            self._c_sink_errors.labels(sink=sink_name or "unknown").inc()

    def snapshot(self) -> DeliveryMetrics:
        return replace(self._state)
