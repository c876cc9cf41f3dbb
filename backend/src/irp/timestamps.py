"""Timestamp normalization for API projections.

Stored timestamps arrive as driver datetimes, ISO strings written into
JSON content, or occasionally garbage. Everything is rendered as a UTC
ISO-8601 string with millisecond precision and a ``Z`` suffix.
"""

from datetime import datetime, timezone
from typing import Any


def utc_now() -> datetime:
    """Current time, timezone-aware UTC."""
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Render a datetime in the canonical API representation."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return (
        value.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def parse_timestamp(value: Any) -> str | None:
    """Normalize a stored timestamp, or return None if it is absent or unparseable.

    Numbers are read as epoch milliseconds.
    """
    if value is None or value == "":
        return None

    try:
        if isinstance(value, datetime):
            parsed = value
        elif isinstance(value, bool):
            return None
        elif isinstance(value, (int, float)):
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        elif isinstance(value, str):
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        else:
            return None
        return format_timestamp(parsed)
    except (ValueError, OverflowError, OSError):
        return None


def timestamp_or_now(value: Any) -> str:
    """Normalize a stored timestamp, substituting the current time on failure.

    Absent or unparseable values silently become "now"; callers rely on
    always receiving a timestamp.
    """
    return parse_timestamp(value) or format_timestamp(utc_now())
