from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Any, Iterable, Mapping, Sequence

from .dates import day_key, days_back, noon_timestamp, parse_day
from .kinds import HabitDescriptor, Polarity, RawRecord, RiskLevel, TrackingMode, is_success
from .risk import classify_risk, days_since_last_action
from .streak import current_streak
from .timeline import ActivityTimeline, build_timeline, record_field
from .windows import aggregate_windows, month_completion_rate

DEFAULT_CALENDAR_DAYS = 28


@dataclass(frozen=True)
class HabitStats:
    today_count: int
    current_streak: int
    last_7_days_count: int
    month_completion_rate: int
    total_count: int
    last_action_date: str | None
    last_action_timestamp: str | None
    risk_level: RiskLevel
    goal_reached: bool | None = None
    remaining: int | None = None

    def as_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "todayCount": self.today_count,
            "currentStreak": self.current_streak,
            "last7DaysCount": self.last_7_days_count,
            "monthCompletionRate": self.month_completion_rate,
            "totalCount": self.total_count,
            "lastActionDate": self.last_action_date,
            "lastActionTimestamp": self.last_action_timestamp,
            "riskLevel": self.risk_level.value,
        }
        # Goal fields exist only when a counter habit has a goal.
        if self.goal_reached is not None:
            out["goalReached"] = self.goal_reached
            out["remaining"] = self.remaining
        return out


def _anchor_date(anchor: date | str) -> date:
    d = parse_day(anchor)
    if d is None:
        raise ValueError(f"Invalid anchor date: {anchor!r}")
    return d


def stats_from_timeline(descriptor: HabitDescriptor, timeline: ActivityTimeline, anchor: date | str) -> HabitStats:
    anchor = _anchor_date(anchor)
    polarity = descriptor.polarity

    w = aggregate_windows(timeline, anchor)
    streak = current_streak(timeline, polarity, anchor)

    last_action_date = timeline.last_active_on_or_before(anchor)
    last_action_timestamp = None
    if last_action_date is not None:
        last_action_timestamp = timeline.latest_timestamp(last_action_date) or noon_timestamp(last_action_date)

    risk = classify_risk(
        polarity,
        today_count=w.today_count,
        current_streak=streak,
        total_count=w.total_count,
        days_since_last=days_since_last_action(last_action_date, anchor),
    )

    goal_reached = None
    remaining = None
    goal = descriptor.goal
    if goal is not None:
        goal_reached = w.today_count >= goal
        remaining = max(0, goal - w.today_count)

    return HabitStats(
        today_count=w.today_count,
        current_streak=streak,
        last_7_days_count=w.last_7_days_count,
        month_completion_rate=month_completion_rate(polarity, w.month_active_days, w.month_days_elapsed),
        total_count=w.total_count,
        last_action_date=last_action_date,
        last_action_timestamp=last_action_timestamp,
        risk_level=risk,
        goal_reached=goal_reached,
        remaining=remaining,
    )


def compute_habit_stats(
    descriptor: HabitDescriptor,
    completions: Iterable[RawRecord] | None,
    occurrences: Iterable[RawRecord] | None,
    anchor: date | str,
) -> HabitStats:
    timeline = build_timeline(descriptor, completions, occurrences)
    return stats_from_timeline(descriptor, timeline, anchor)


def _partition(records: Iterable[RawRecord] | None) -> dict[str, list[RawRecord]]:
    out: dict[str, list[RawRecord]] = defaultdict(list)
    for rec in records or ():
        habit_id = record_field(rec, "habit_id")
        if habit_id is None:
            continue
        out[str(habit_id)].append(rec)
    return out


def compute_habit_stats_batch(
    descriptors: Iterable[HabitDescriptor],
    completions: Iterable[RawRecord] | None,
    occurrences: Iterable[RawRecord] | None,
    anchor: date | str,
) -> dict[str, HabitStats]:
    """Stats for many habits from two bulk record reads.

    Same result as calling :func:`compute_habit_stats` once per habit with
    that habit's records.
    """
    anchor = _anchor_date(anchor)
    completions_by_habit = _partition(completions)
    occurrences_by_habit = _partition(occurrences)
    return {
        d.id: compute_habit_stats(
            d,
            completions_by_habit.get(d.id, []),
            occurrences_by_habit.get(d.id, []),
            anchor,
        )
        for d in descriptors
    }


def build_calendar(
    descriptor: HabitDescriptor,
    timeline: ActivityTimeline,
    anchor: date | str,
    days: int = DEFAULT_CALENDAR_DAYS,
) -> list[dict[str, Any]]:
    """Per-day counts from ``anchor - days`` through ``anchor``, oldest first."""
    anchor = _anchor_date(anchor)
    out: list[dict[str, Any]] = []
    for back in range(max(days, 0), -1, -1):
        ds = day_key(days_back(anchor, back))
        count = timeline.quantity_on(ds)
        out.append({"date": ds, "count": count, "success": is_success(descriptor.polarity, count)})
    return out


def build_dashboard(
    habits: Sequence[Mapping[str, Any]],
    completions: Iterable[RawRecord] | None,
    occurrences: Iterable[RawRecord] | None,
    anchor: date | str,
) -> dict[str, Any]:
    anchor = _anchor_date(anchor)
    descriptors = [HabitDescriptor.from_row(h) for h in habits]
    stats = compute_habit_stats_batch(descriptors, completions, occurrences, anchor)

    habits_with_stats: list[dict[str, Any]] = []
    for row, d in zip(habits, descriptors):
        habits_with_stats.append(
            {
                "id": d.id,
                "name": row.get("name"),
                "type": d.polarity.value,
                "tracking_mode": d.tracking_mode.value,
                "daily_goal_value": d.daily_goal if d.tracking_mode is TrackingMode.COUNTER else None,
                **stats[d.id].as_dict(),
            }
        )

    good = [h for h in habits_with_stats if h["type"] == Polarity.GOOD.value]
    bad = [h for h in habits_with_stats if h["type"] == Polarity.BAD.value]
    summary = {
        "totalHabits": len(habits_with_stats),
        "goodHabitsCount": len(good),
        "badHabitsCount": len(bad),
        "goodHabitsLoggedToday": sum(1 for h in good if h["todayCount"] > 0),
        "badHabitsLoggedToday": sum(1 for h in bad if h["todayCount"] > 0),
        "totalGoodActions": sum(h["totalCount"] for h in good),
    }

    return {"date": day_key(anchor), "habits": habits_with_stats, "summary": summary}
