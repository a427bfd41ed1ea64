"""Clock helpers.

Timestamps are stored as naive UTC datetimes so that SQLite and PostgreSQL
round-trip them identically. Calendar-day logic (streaks, check-ins) works on
the UTC date.
"""
from datetime import date, datetime, timezone
from typing import Callable

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Current UTC time without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def today(clock: Clock = utcnow) -> date:
    return clock().date()
