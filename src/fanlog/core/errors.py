"""
Error taxonomy for fanlog.

Errors never escape a logging call. They are raised inside sinks and the
retry machinery, caught at the sink or dispatch boundary and reported
through :mod:`fanlog.core.diagnostics`.
"""

from __future__ import annotations

import traceback
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    SERIALIZATION = "serialization"
    SINK = "sink"
    NETWORK = "network"
    RETRY = "retry"
    CONFIG = "config"


class FanlogError(Exception):
    """Base class for all fanlog errors."""

    default_category = ErrorCategory.SINK

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        cause: BaseException | None = None,
        **context: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.cause = cause
        self.context = context
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "error": self.message,
            "category": self.category.value,
        }
        if self.cause is not None:
            data["cause"] = f"{type(self.cause).__name__}: {self.cause}"
        data.update(self.context)
        return data


class SerializationError(FanlogError):
    default_category = ErrorCategory.SERIALIZATION


class SinkError(FanlogError):
    """A sink failed to accept or write an entry."""

    def __init__(self, message: str, *, sink: str = "unknown", **kwargs: Any) -> None:
        super().__init__(message, sink=sink, **kwargs)
        self.sink = sink


class RemoteDeliveryError(SinkError):
    """One failed HTTP delivery attempt.

    ``status_code``/``body`` are set for non-2xx responses; transport errors
    and timeouts leave them ``None`` and chain the original exception.
    """

    default_category = ErrorCategory.NETWORK

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        body: str | None = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("sink", "loki")
        super().__init__(message, status_code=status_code, body=body, **kwargs)
        self.status_code = status_code
        self.body = body


class RetryExhaustedError(FanlogError):
    default_category = ErrorCategory.RETRY

    def __init__(self, message: str, *, attempts: int, **kwargs: Any) -> None:
        super().__init__(message, attempts=attempts, **kwargs)
        self.attempts = attempts


def serialize_exception(exc: BaseException) -> dict[str, str]:
    """Flatten an exception into the ``error``/``errorName``/``errorStack`` fields.

    ``errorStack`` always holds at least the ``Name: message`` line, even for
    exceptions that were never raised and so carry no traceback.
    """
    stack = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return {
        "error": str(exc),
        "errorName": type(exc).__name__,
        "errorStack": stack.rstrip("\n"),
    }
