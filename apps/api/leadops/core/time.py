from __future__ import annotations

from datetime import date, datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def today() -> date:
    return utcnow().date()


def as_date(value: date | datetime) -> date:
    """Drop the time of day so date windows compare on calendar days."""
    if isinstance(value, datetime):
        return value.date()
    return value
