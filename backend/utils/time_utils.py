"""Timestamp helpers shared by mappers and services."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional


def to_utc(value: Any) -> Optional[datetime]:
    """Coerce a Firestore timestamp, datetime or ISO string to an aware UTC datetime."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    if isinstance(value, (int, float)):
        # Epoch milliseconds, as written by JS clients
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        return parse_iso(value)
    to_datetime = getattr(value, 'to_datetime', None)
    if callable(to_datetime):
        return to_utc(to_datetime())
    raise ValueError(f"Unsupported timestamp value: {value!r}")


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 string; a trailing Z and naive values are read as UTC."""
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        raise ValueError(f"Invalid ISO timestamp: {value}")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def isoformat(value: Any) -> Optional[str]:
    dt = to_utc(value)
    return dt.isoformat() if dt else None


def format_display(value: Any) -> Optional[str]:
    """Long human-readable form used by notices, e.g. '3/14/2026, 09:30:00 AM UTC'."""
    dt = to_utc(value)
    if dt is None:
        return None
    return f"{dt.month}/{dt.day}/{dt.year}, {dt.strftime('%I:%M:%S %p')} UTC"
