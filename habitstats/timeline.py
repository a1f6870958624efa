from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Iterable, Mapping

from .dates import day_key, parse_day, parse_iso
from .kinds import HabitDescriptor, RawRecord, RecordSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NormalizedRecord:
    date: str
    quantity: int
    timestamp: str | None = None


@dataclass(frozen=True)
class DayBucket:
    date: str
    quantity: int
    latest_timestamp: str | None = None


def record_field(rec: RawRecord, name: str) -> Any:
    if isinstance(rec, Mapping):
        return rec.get(name)
    return getattr(rec, name, None)


def _to_quantity(raw: Any) -> int | None:
    """Default 1 when absent or unreadable; None marks a negative (malformed) value."""
    if raw is None or isinstance(raw, bool):
        return 1
    if isinstance(raw, int):
        return raw if raw >= 0 else None
    if isinstance(raw, float):
        n = raw
    elif isinstance(raw, str):
        try:
            n = float(raw)
        except ValueError:
            return 1
    else:
        return 1
    if not math.isfinite(n):
        return 1
    if n < 0:
        return None
    return int(n + 0.5)


def _ts_key(ts: str | None) -> tuple[datetime, str] | None:
    dt = parse_iso(ts)
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt, str(ts)


def _later_timestamp(a: str | None, b: str | None) -> str | None:
    ka, kb = _ts_key(a), _ts_key(b)
    if ka is None:
        return b if kb is not None else None
    if kb is None:
        return a
    return a if ka >= kb else b


def normalize_record(rec: RawRecord) -> NormalizedRecord | None:
    d = parse_day(record_field(rec, "date"))
    if d is None:
        logger.debug("Skipping record with malformed date: %r", rec)
        return None
    quantity = _to_quantity(record_field(rec, "quantity"))
    if quantity is None:
        logger.debug("Skipping record with negative quantity: %r", rec)
        return None
    ts = record_field(rec, "timestamp")
    return NormalizedRecord(
        date=day_key(d),
        quantity=quantity,
        timestamp=ts if isinstance(ts, str) and ts else None,
    )


def normalize_records(records: Iterable[RawRecord]) -> list[NormalizedRecord]:
    out: list[NormalizedRecord] = []
    for rec in records or ():
        n = normalize_record(rec)
        if n is not None:
            out.append(n)
    return out


def select_records(
    descriptor: HabitDescriptor,
    completions: Iterable[RawRecord] | None,
    occurrences: Iterable[RawRecord] | None,
) -> list[NormalizedRecord]:
    """Normalize the one record set the habit's kind reads from."""
    if descriptor.source is RecordSource.COMPLETIONS:
        return normalize_records(completions or ())
    return normalize_records(occurrences or ())


@dataclass(frozen=True)
class ActivityTimeline:
    # Keyed by canonical date, always kept in ascending date order.
    buckets: dict[str, DayBucket] = field(default_factory=dict)

    @property
    def active_dates(self) -> list[str]:
        """Distinct dates with non-zero quantity, most recent first."""
        return sorted((d for d, b in self.buckets.items() if b.quantity > 0), reverse=True)

    @property
    def total(self) -> int:
        return sum(b.quantity for b in self.buckets.values())

    def quantity_on(self, day: str | date) -> int:
        key = day if isinstance(day, str) else day_key(day)
        b = self.buckets.get(key)
        return b.quantity if b is not None else 0

    def has_activity(self, day: str | date) -> bool:
        return self.quantity_on(day) > 0

    def last_active_on_or_before(self, anchor: date) -> str | None:
        cutoff = day_key(anchor)
        for d in self.active_dates:
            if d <= cutoff:
                return d
        return None

    def latest_timestamp(self, day: str) -> str | None:
        b = self.buckets.get(day)
        return b.latest_timestamp if b is not None else None

    def merge(self, other: ActivityTimeline) -> ActivityTimeline:
        merged = dict(self.buckets)
        for d, b in other.buckets.items():
            cur = merged.get(d)
            if cur is None:
                merged[d] = b
            else:
                merged[d] = DayBucket(
                    date=d,
                    quantity=cur.quantity + b.quantity,
                    latest_timestamp=_later_timestamp(cur.latest_timestamp, b.latest_timestamp),
                )
        return ActivityTimeline(buckets={d: merged[d] for d in sorted(merged)})


def merge_timeline(records: Iterable[NormalizedRecord]) -> ActivityTimeline:
    quantities: dict[str, int] = {}
    timestamps: dict[str, str | None] = {}
    for r in records:
        quantities[r.date] = quantities.get(r.date, 0) + r.quantity
        timestamps[r.date] = _later_timestamp(timestamps.get(r.date), r.timestamp)
    return ActivityTimeline(
        buckets={
            d: DayBucket(date=d, quantity=quantities[d], latest_timestamp=timestamps[d])
            for d in sorted(quantities)
        }
    )


def build_timeline(
    descriptor: HabitDescriptor,
    completions: Iterable[RawRecord] | None,
    occurrences: Iterable[RawRecord] | None,
) -> ActivityTimeline:
    return merge_timeline(select_records(descriptor, completions, occurrences))
