"""General utility helpers shared across modules."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

from .config import MAP_LINK_TEMPLATE


def format_duration(value: timedelta | float) -> str:
    """Format a duration (or seconds) into an ``H:MM:SS`` string."""

    seconds = value.total_seconds() if isinstance(value, timedelta) else float(value)
    sign = "-" if seconds < 0 else ""
    total = int(round(abs(seconds)))
    hours, rem = divmod(total, 3600)
    mins, sec = divmod(rem, 60)
    return f"{sign}{hours}:{mins:02d}:{sec:02d}"


def parse_iso8601(value: str) -> datetime:
    """Parse an RFC 3339 timestamp (trailing ``Z`` allowed) into aware UTC.

    Naive timestamps are assumed to be UTC, as GPX requires.
    """

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    dt = datetime.fromisoformat(text)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_utc(value: Optional[datetime]) -> str:
    """Format an aware datetime like ``2024-09-01T05:10:44Z``."""

    if value is None:
        return ""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Drop tzinfo after converting to UTC; Excel cannot store aware datetimes."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def map_link(lat: float, lon: float) -> str:
    return MAP_LINK_TEMPLATE.format(lat=lat, lon=lon)
