from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from .dates import day_key, days_back, first_of_month
from .kinds import Polarity
from .timeline import ActivityTimeline

LAST_DAYS_WINDOW = 7


@dataclass(frozen=True)
class WindowTotals:
    today_count: int
    last_7_days_count: int
    total_count: int
    month_active_days: int
    month_days_elapsed: int


def _round_half_up(x: float) -> int:
    return int(x + 0.5) if x >= 0 else -int(-x + 0.5)


def sum_between(timeline: ActivityTimeline, start: date, end: date) -> int:
    lo, hi = day_key(start), day_key(end)
    return sum(b.quantity for d, b in timeline.buckets.items() if lo <= d <= hi)


def active_days_between(timeline: ActivityTimeline, start: date, end: date) -> int:
    lo, hi = day_key(start), day_key(end)
    return sum(1 for d, b in timeline.buckets.items() if lo <= d <= hi and b.quantity > 0)


def aggregate_windows(timeline: ActivityTimeline, anchor: date) -> WindowTotals:
    month_start = first_of_month(anchor)
    return WindowTotals(
        today_count=timeline.quantity_on(anchor),
        last_7_days_count=sum_between(timeline, days_back(anchor, LAST_DAYS_WINDOW - 1), anchor),
        total_count=timeline.total,
        month_active_days=active_days_between(timeline, month_start, anchor),
        month_days_elapsed=(anchor - month_start).days + 1,
    )


def month_completion_rate(polarity: Polarity, active_days: int, days_elapsed: int) -> int:
    """Share of elapsed days in the month that went the habit's way.

    For good habits that is days with activity; for bad habits it is days
    without a lapse, so the two rates of the same timeline sum to 100.
    """
    if days_elapsed <= 0:
        return 0
    active_days = min(max(active_days, 0), days_elapsed)
    if polarity is Polarity.GOOD:
        rate = active_days / days_elapsed * 100
    else:
        rate = (days_elapsed - active_days) / days_elapsed * 100
    return min(100, max(0, _round_half_up(rate)))
