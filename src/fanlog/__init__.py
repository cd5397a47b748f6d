"""
Public entrypoints for fanlog.

Example:
    ```python
    import asyncio
    from fanlog import create_logger

    logger = create_logger(
        service="checkout",
        environment="production",
        file="./logs/app.jsonl",
        loki={"url": "http://localhost:3100"},
    )
    logger.info("Server started", port=3000)
    logger.error("Database error", exc, {"event": "db_error"})

    # Before shutdown
    asyncio.run(logger.flush())
    ```
"""

from __future__ import annotations

from typing import Any

from ._version import __version__
from .core.events import LogEntry
from .core.levels import LogLevel
from .core.logger import Logger
from .core.settings import LokiSettings, Settings

__all__ = [
    "LogEntry",
    "LogLevel",
    "Logger",
    "LokiSettings",
    "Settings",
    "VERSION",
    "__version__",
    "create_logger",
]

VERSION = __version__


def create_logger(settings: Settings | None = None, **overrides: Any) -> Logger:
    """Return a logger wired to the sinks enabled in ``settings``.

    Without ``settings``, a ``Settings`` is built from ``overrides`` plus
    ``FANLOG_*`` environment variables. With ``settings``, ``overrides``
    replace individual top-level fields.

    Raises:
        pydantic.ValidationError: If the configuration is invalid (for
            example when no service name is available).
    """
    if settings is None:
        settings = Settings(**overrides)
    elif overrides:
        settings = Settings(**{**settings.model_dump(exclude_unset=True), **overrides})
    return Logger.from_settings(settings)
