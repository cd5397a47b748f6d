"""
Entry construction for the logger facade.

Resolves the ``error(message, error_or_metadata, metadata)`` overload and
merges keyword fields before the immutable ``LogEntry`` is built.
"""

from __future__ import annotations

from typing import Any, Mapping

from .errors import serialize_exception
from .events import LogEntry
from .levels import LogLevel


def merge_metadata(
    error_or_metadata: BaseException | Mapping[str, Any] | None = None,
    metadata: Mapping[str, Any] | None = None,
    fields: Mapping[str, Any] | None = None,
) -> dict[str, Any] | None:
    """Merge error-derived fields, explicit metadata and keyword fields.

    Precedence (last write wins): error fields, then ``metadata``, then
    ``fields``. A mapping in the first position is treated as metadata.

    Returns:
        The merged dict, or ``None`` when nothing was supplied.
    """
    merged: dict[str, Any] = {}
    supplied = False

    if isinstance(error_or_metadata, BaseException):
        try:
            merged.update(serialize_exception(error_or_metadata))
        except Exception:
            # A broken __str__ must not break logging
            merged["errorName"] = type(error_or_metadata).__name__
        supplied = True
    elif error_or_metadata is not None:
        merged.update(error_or_metadata)
        supplied = True

    if metadata is not None:
        merged.update(metadata)
        supplied = True
    if fields:
        merged.update(fields)
        supplied = True

    return merged if supplied else None


def build_entry(
    level: LogLevel | str,
    message: str,
    *,
    service: str,
    error_or_metadata: BaseException | Mapping[str, Any] | None = None,
    metadata: Mapping[str, Any] | None = None,
    fields: Mapping[str, Any] | None = None,
) -> LogEntry:
    """Construct a timestamped ``LogEntry`` for ``service``."""
    return LogEntry(
        level=LogLevel.parse(level),
        service=service,
        message=str(message),
        metadata=merge_metadata(error_or_metadata, metadata, fields),
    )
