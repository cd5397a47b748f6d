"""Log level model.

fanlog ships a fixed, ordered set of four levels. Each level has a numeric
priority so callers can compare severities, and a lowercase wire name used
in JSONL output and as the ``level`` Loki label.

Example:
    >>> LogLevel.parse("WARNING")
    <LogLevel.WARN: 'warn'>
    >>> LogLevel.ERROR.priority > LogLevel.INFO.priority
    True
"""

from __future__ import annotations

from enum import Enum
from typing import Final

_PRIORITIES: Final[dict[str, int]] = {
    "debug": 10,
    "info": 20,
    "warn": 30,
    "error": 40,
}

_ALIASES: Final[dict[str, str]] = {
    "warning": "warn",
}


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @property
    def priority(self) -> int:
        return _PRIORITIES[self.value]

    @classmethod
    def parse(cls, value: str | LogLevel) -> LogLevel:
        """Resolve a level from its name, case-insensitively.

        Raises:
            ValueError: If the name is not a known level or alias.
        """
        if isinstance(value, LogLevel):
            return value
        name = value.strip().lower()
        name = _ALIASES.get(name, name)
        try:
            return cls(name)
        except ValueError:
            raise ValueError(f"Unknown log level '{value}'") from None

    def __str__(self) -> str:
        return self.value


def get_level_priority(level: str | LogLevel) -> int:
    """Return the numeric priority for a level name (case-insensitive)."""
    return LogLevel.parse(level).priority


def get_all_levels() -> dict[str, int]:
    """Return every level name mapped to its priority, in severity order."""
    return dict(_PRIORITIES)
