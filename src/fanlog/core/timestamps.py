"""
Wall-clock timestamp helpers.

Three representations are needed across the sinks:

- ISO-8601 UTC with millisecond precision and a ``Z`` suffix (JSONL file)
- Unix nanoseconds as a decimal string (Loki push API)
- Local ``YYYY-MM-DD HH:MM:SS`` (console)
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utc_now() -> datetime:
    """Return the current instant as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_iso(value: datetime) -> str:
    """Format as ``2025-11-04T10:00:00.123Z``."""
    utc = _as_utc(value)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def to_nanoseconds(value: datetime | None = None) -> str:
    """Return Unix nanoseconds as a string; defaults to now.

    Precision is the datetime's microsecond; the last three digits are zero.
    """
    moment = _as_utc(value) if value is not None else utc_now()
    micros = (moment - _EPOCH) // timedelta(microseconds=1)
    return str(micros * 1000)


def format_console_timestamp(value: datetime) -> str:
    """Format in local time as ``2025-11-04 10:00:00``."""
    return _as_utc(value).astimezone().strftime("%Y-%m-%d %H:%M:%S")
