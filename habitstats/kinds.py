from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Mapping, Union


class Polarity(str, Enum):
    GOOD = "good"
    BAD = "bad"


class TrackingMode(str, Enum):
    BINARY = "binary"
    COUNTER = "counter"


class RecordSource(str, Enum):
    COMPLETIONS = "completions"
    OCCURRENCES = "occurrences"


class RiskLevel(str, Enum):
    GOOD = "good"
    WARNING = "warning"
    DANGER = "danger"


# Which raw record set feeds the timeline. Every (polarity, mode) pair is listed;
# a habit never mixes both sources.
SOURCE_BY_KIND: dict[tuple[Polarity, TrackingMode], RecordSource] = {
    (Polarity.GOOD, TrackingMode.BINARY): RecordSource.COMPLETIONS,
    (Polarity.GOOD, TrackingMode.COUNTER): RecordSource.OCCURRENCES,
    (Polarity.BAD, TrackingMode.BINARY): RecordSource.OCCURRENCES,
    (Polarity.BAD, TrackingMode.COUNTER): RecordSource.OCCURRENCES,
}


@dataclass(frozen=True)
class HabitDescriptor:
    id: str
    polarity: Polarity
    tracking_mode: TrackingMode
    daily_goal: int | None = None
    created_on: date | None = None

    def __post_init__(self) -> None:
        # Accept plain strings from rows and payloads.
        object.__setattr__(self, "polarity", Polarity(self.polarity))
        object.__setattr__(
            self,
            "tracking_mode",
            TrackingMode(self.tracking_mode) if self.tracking_mode else TrackingMode.BINARY,
        )

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> HabitDescriptor:
        goal = row.get("daily_goal")
        created_on = row.get("created_on")
        if isinstance(created_on, str):
            try:
                created_on = date.fromisoformat(created_on)
            except ValueError:
                created_on = None
        return cls(
            id=str(row["id"]),
            polarity=Polarity(row.get("polarity") or row.get("type")),
            tracking_mode=row.get("tracking_mode") or TrackingMode.BINARY,
            daily_goal=int(goal) if goal is not None else None,
            created_on=created_on if isinstance(created_on, date) else None,
        )

    @property
    def source(self) -> RecordSource:
        return record_source(self.polarity, self.tracking_mode)

    @property
    def goal(self) -> int | None:
        """Daily goal, only for counter habits."""
        if self.tracking_mode is TrackingMode.COUNTER:
            return self.daily_goal
        return None


@dataclass(frozen=True)
class RawCompletionRecord:
    habit_id: str
    date: str | None
    quantity: int | None = None


@dataclass(frozen=True)
class RawOccurrenceRecord:
    habit_id: str
    date: str | None
    timestamp: str | None = None
    quantity: int | None = None


RawRecord = Union[RawCompletionRecord, RawOccurrenceRecord, Mapping[str, Any]]


def record_source(polarity: Polarity | str, tracking_mode: TrackingMode | str | None) -> RecordSource:
    # Legacy rows may have no tracking mode; those are binary habits.
    mode = TrackingMode(tracking_mode) if tracking_mode else TrackingMode.BINARY
    return SOURCE_BY_KIND[(Polarity(polarity), mode)]


def is_success(polarity: Polarity | str, count: int) -> bool:
    if Polarity(polarity) is Polarity.GOOD:
        return count > 0
    return count == 0
