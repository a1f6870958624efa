from __future__ import annotations

from datetime import date, timedelta

from .kinds import Polarity
from .timeline import ActivityTimeline

# Hard bound on the backward walk.
STREAK_CAP = 365


def current_streak(timeline: ActivityTimeline, polarity: Polarity, anchor: date) -> int:
    """Walk back from ``anchor`` one day at a time.

    Good habits count consecutive days with activity; bad habits count
    consecutive days without a lapse. The walk ends when the rule breaks or
    after ``STREAK_CAP`` days.
    """
    streak = 0
    check_date = anchor
    for _ in range(STREAK_CAP):
        acted = timeline.has_activity(check_date)
        if polarity is Polarity.GOOD:
            if not acted:
                break
        elif acted:
            break
        streak += 1
        check_date -= timedelta(days=1)
    return streak
