from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any

# Local timezone is only used to pick "today" at the HTTP boundary.
LOCAL_TZ = datetime.now().astimezone().tzinfo


def parse_day(raw: Any) -> date | None:
    """Parse a canonical ``YYYY-MM-DD`` key; anything else is None."""
    if isinstance(raw, datetime):
        return None
    if isinstance(raw, date):
        return raw
    if not isinstance(raw, str) or len(raw) != 10:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        return None


def parse_iso(s: str | None) -> datetime | None:
    if not s:
        return None
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None


def day_key(d: date) -> str:
    return d.isoformat()


def days_between(earlier: date, later: date) -> int:
    """Calendar-day difference on date-only values."""
    return (later - earlier).days


def first_of_month(d: date) -> date:
    return d.replace(day=1)


def days_back(anchor: date, n: int) -> date:
    return anchor - timedelta(days=n)


def noon_timestamp(day: str) -> str:
    # Completions carry no time of day; report them at noon UTC.
    return f"{day}T12:00:00Z"


def local_today() -> date:
    return datetime.now(LOCAL_TZ).date()
