from __future__ import annotations

from datetime import date

from .dates import days_between, parse_day
from .kinds import Polarity, RiskLevel

NEVER_ACTED_DAYS = 999

# Bad habits: a clean run shorter than this still needs attention.
BAD_SAFE_STREAK = 7
# Good habits: days without action before warning / danger.
GOOD_WARNING_DAYS = 1
GOOD_DANGER_DAYS = 3


def days_since_last_action(last_action_date: str | None, anchor: date) -> int:
    last = parse_day(last_action_date)
    if last is None:
        return NEVER_ACTED_DAYS
    return days_between(last, anchor)


def classify_risk(
    polarity: Polarity,
    *,
    today_count: int,
    current_streak: int,
    total_count: int,
    days_since_last: int,
) -> RiskLevel:
    if polarity is Polarity.BAD:
        if today_count > 0:
            return RiskLevel.DANGER
        if current_streak < BAD_SAFE_STREAK and total_count > 0:
            return RiskLevel.WARNING
        return RiskLevel.GOOD

    if today_count > 0:
        return RiskLevel.GOOD
    if days_since_last >= GOOD_DANGER_DAYS:
        return RiskLevel.DANGER
    if days_since_last >= GOOD_WARNING_DAYS:
        return RiskLevel.WARNING
    return RiskLevel.GOOD
