"""UTC helpers.

Records store naive datetimes that are implicitly UTC; API payloads carry
ISO-8601 strings with millisecond precision and a ``Z`` suffix.
"""

from __future__ import annotations

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Current time as a naive UTC datetime, the form records store."""
    return datetime.now(UTC).replace(tzinfo=None)


def isoformat_utc(value: datetime | None) -> str | None:
    """``2026-01-15T12:00:00.000Z``, or None for a missing timestamp."""
    if value is None:
        return None
    if value.tzinfo is not None:
        value = value.astimezone(UTC).replace(tzinfo=None)
    return value.isoformat(timespec="milliseconds") + "Z"
