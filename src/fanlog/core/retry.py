"""
Async retry with exponential backoff.

``AsyncRetrier`` makes ``max_retries + 1`` attempts in total. The delay
before retry *k* (k >= 1) is ``base_delay * multiplier ** (k - 1)``, capped at
``max_delay`` when one is configured.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol, TypeVar

from .errors import RetryExhaustedError

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


class RetryCallable(Protocol):
    async def __call__(self, fn: Callable[[], Awaitable[T]]) -> T: ...


@dataclass(frozen=True)
class RetryConfig:
    max_retries: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float | None = None
    retry_on: tuple[type[BaseException], ...] = (Exception,)

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")

    def delay_for(self, retry_number: int) -> float:
        """Delay before the given retry (1-based)."""
        delay = self.base_delay * (self.multiplier ** (retry_number - 1))
        if self.max_delay is not None:
            delay = min(delay, self.max_delay)
        return delay


class AsyncRetrier:
    """Run an async callable until it succeeds or attempts run out.

    ``sleep`` is injectable so tests can observe backoff without waiting.
    """

    def __init__(self, config: RetryConfig, *, sleep: SleepFn | None = None) -> None:
        self.config = config
        self._sleep = sleep or asyncio.sleep
        self.last_attempts = 0

    async def retry(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Return the first successful result.

        Raises:
            RetryExhaustedError: After the final attempt fails, chained to
                the last underlying exception.
        """
        attempts = self.config.max_retries + 1
        last_exc: BaseException | None = None
        for attempt in range(attempts):
            if attempt > 0:
                await self._sleep(self.config.delay_for(attempt))
            self.last_attempts = attempt + 1
            try:
                return await fn()
            except self.config.retry_on as exc:
                last_exc = exc
        raise RetryExhaustedError(
            f"All {attempts} attempts failed",
            attempts=attempts,
            cause=last_exc,
        )

    async def __call__(self, fn: Callable[[], Awaitable[T]]) -> T:
        return await self.retry(fn)
