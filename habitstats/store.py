from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import Any

from .dates import LOCAL_TZ, parse_day
from .db import db, now_iso
from .kinds import (
    HabitDescriptor,
    Polarity,
    RawCompletionRecord,
    RawOccurrenceRecord,
    RecordSource,
    TrackingMode,
)

logger = logging.getLogger(__name__)


def local_date_of(dt: datetime) -> str:
    return dt.astimezone(LOCAL_TZ).date().isoformat()


def _since_key(since_date: date | str | None) -> str | None:
    if since_date is None:
        return None
    d = parse_day(since_date)
    if d is None:
        raise ValueError(f"Invalid since_date: {since_date}")
    return d.isoformat()


def _require_day(raw: date | str, field_name: str) -> str:
    d = parse_day(raw)
    if d is None:
        raise ValueError(f"Invalid {field_name}: {raw}")
    return d.isoformat()


def _check_quantity(quantity: int | None) -> int | None:
    if quantity is None:
        return None
    q = int(quantity)
    if q < 1:
        raise ValueError("quantity must be >= 1")
    return q


# ---- habits ----


def create_habit(
    *,
    name: str,
    polarity: Polarity | str,
    tracking_mode: TrackingMode | str = TrackingMode.BINARY,
    daily_goal: int | None = None,
    created_on: date | str | None = None,
    habit_id: str | None = None,
) -> dict[str, Any]:
    name = (name or "").strip()
    if not name:
        raise ValueError("name is required")
    polarity = Polarity(polarity)
    tracking_mode = TrackingMode(tracking_mode)
    if daily_goal is not None:
        daily_goal = int(daily_goal)
        if daily_goal < 1:
            raise ValueError("daily_goal must be >= 1")
        if tracking_mode is not TrackingMode.COUNTER:
            # Goals only mean something for counter habits.
            daily_goal = None

    created_at = now_iso()
    if created_on is None:
        created_on_key = local_date_of(datetime.fromisoformat(created_at))
    else:
        created_on_key = _require_day(created_on, "created_on")
    habit_id = habit_id or uuid.uuid4().hex

    with db() as conn:
        conn.execute(
            """
            INSERT INTO habits(id, name, polarity, tracking_mode, daily_goal, created_on, created_at, archived)
            VALUES(?,?,?,?,?,?,?,0)
            """,
            (habit_id, name, polarity.value, tracking_mode.value, daily_goal, created_on_key, created_at),
        )
    logger.info("Created %s/%s habit %s", polarity.value, tracking_mode.value, habit_id)

    return get_habit_row(habit_id)  # type: ignore[return-value]


def get_habit_row(habit_id: str) -> dict[str, Any] | None:
    with db() as conn:
        row = conn.execute("SELECT * FROM habits WHERE id = ?", (habit_id,)).fetchone()
    return dict(row) if row else None


def get_habit(habit_id: str) -> HabitDescriptor | None:
    row = get_habit_row(habit_id)
    if row is None:
        return None
    return HabitDescriptor.from_row(row)


def list_habits(*, include_archived: bool = False) -> list[dict[str, Any]]:
    with db() as conn:
        if include_archived:
            rows = conn.execute("SELECT * FROM habits ORDER BY created_at ASC, id ASC").fetchall()
        else:
            rows = conn.execute(
                "SELECT * FROM habits WHERE archived = 0 ORDER BY created_at ASC, id ASC"
            ).fetchall()
    return [dict(r) for r in rows]


def archive_habit(habit_id: str) -> bool:
    with db() as conn:
        cur = conn.execute("UPDATE habits SET archived = 1 WHERE id = ? AND archived = 0", (habit_id,))
    return cur.rowcount > 0


# ---- writes ----


def log_completion(habit_id: str, *, completed_date: date | str, quantity: int | None = None) -> dict[str, Any]:
    """Confirm a day. One row per habit and day; logging again replaces the quantity."""
    day = _require_day(completed_date, "completed_date")
    quantity = _check_quantity(quantity)
    with db() as conn:
        conn.execute(
            """
            INSERT INTO completions(habit_id, completed_date, quantity, created_at)
            VALUES(?,?,?,?)
            ON CONFLICT(habit_id, completed_date) DO UPDATE SET
              quantity=excluded.quantity
            """,
            (habit_id, day, quantity, now_iso()),
        )
        row = conn.execute(
            "SELECT * FROM completions WHERE habit_id = ? AND completed_date = ?",
            (habit_id, day),
        ).fetchone()
    logger.info("Logged completion for %s on %s", habit_id, day)
    return dict(row)


def log_occurrence(
    habit_id: str,
    *,
    occurred_at: datetime | None = None,
    event_date: date | str | None = None,
    quantity: int | None = None,
    note: str | None = None,
) -> dict[str, Any]:
    if occurred_at is None and event_date is not None:
        # Backfilled day without a time: put it at noon local time.
        d = date.fromisoformat(_require_day(event_date, "event_date"))
        occurred_at = datetime(d.year, d.month, d.day, 12, tzinfo=LOCAL_TZ)
    dt = occurred_at or datetime.now().astimezone(LOCAL_TZ)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=LOCAL_TZ)
    day = _require_day(event_date, "event_date") if event_date is not None else local_date_of(dt)
    quantity = _check_quantity(quantity)

    with db() as conn:
        cur = conn.execute(
            """
            INSERT INTO occurrences(habit_id, event_date, occurred_at, quantity, note)
            VALUES(?,?,?,?,?)
            """,
            (habit_id, day, dt.isoformat(), quantity, note),
        )
        row = conn.execute("SELECT * FROM occurrences WHERE id = ?", (cur.lastrowid,)).fetchone()
    logger.info("Logged occurrence for %s on %s", habit_id, day)
    return dict(row)


def log_action(
    descriptor: HabitDescriptor,
    *,
    day: date | str | None = None,
    occurred_at: datetime | None = None,
    quantity: int | None = None,
    note: str | None = None,
) -> tuple[RecordSource, dict[str, Any]]:
    """Write one action to whichever record set the habit's kind reads from."""
    if descriptor.source is RecordSource.COMPLETIONS:
        if day is None:
            dt = occurred_at or datetime.now().astimezone(LOCAL_TZ)
            day = local_date_of(dt)
        return RecordSource.COMPLETIONS, log_completion(descriptor.id, completed_date=day, quantity=quantity)
    return RecordSource.OCCURRENCES, log_occurrence(
        descriptor.id,
        occurred_at=occurred_at,
        event_date=day,
        quantity=quantity,
        note=note,
    )


def delete_completion(habit_id: str, record_id: int) -> bool:
    with db() as conn:
        cur = conn.execute("DELETE FROM completions WHERE id = ? AND habit_id = ?", (record_id, habit_id))
    return cur.rowcount > 0


def delete_occurrence(habit_id: str, record_id: int) -> bool:
    with db() as conn:
        cur = conn.execute("DELETE FROM occurrences WHERE id = ? AND habit_id = ?", (record_id, habit_id))
    return cur.rowcount > 0


# ---- reads ----


def _completion(r: Any) -> RawCompletionRecord:
    return RawCompletionRecord(habit_id=r["habit_id"], date=r["completed_date"], quantity=r["quantity"])


def _occurrence(r: Any) -> RawOccurrenceRecord:
    return RawOccurrenceRecord(
        habit_id=r["habit_id"],
        date=r["event_date"],
        timestamp=r["occurred_at"],
        quantity=r["quantity"],
    )


def fetch_completions(habit_id: str, since_date: date | str | None = None) -> list[RawCompletionRecord]:
    since = _since_key(since_date)
    with db() as conn:
        if since:
            rows = conn.execute(
                """
                SELECT habit_id, completed_date, quantity FROM completions
                WHERE habit_id = ? AND completed_date >= ?
                ORDER BY completed_date DESC
                """,
                (habit_id, since),
            ).fetchall()
        else:
            rows = conn.execute(
                """
                SELECT habit_id, completed_date, quantity FROM completions
                WHERE habit_id = ?
                ORDER BY completed_date DESC
                """,
                (habit_id,),
            ).fetchall()
    return [_completion(r) for r in rows]


def fetch_occurrences(habit_id: str, since_date: date | str | None = None) -> list[RawOccurrenceRecord]:
    since = _since_key(since_date)
    with db() as conn:
        if since:
            rows = conn.execute(
                """
                SELECT habit_id, event_date, occurred_at, quantity FROM occurrences
                WHERE habit_id = ? AND event_date >= ?
                ORDER BY event_date DESC, occurred_at DESC
                """,
                (habit_id, since),
            ).fetchall()
        else:
            rows = conn.execute(
                """
                SELECT habit_id, event_date, occurred_at, quantity FROM occurrences
                WHERE habit_id = ?
                ORDER BY event_date DESC, occurred_at DESC
                """,
                (habit_id,),
            ).fetchall()
    return [_occurrence(r) for r in rows]


def fetch_all_completions(since_date: date | str | None = None) -> list[RawCompletionRecord]:
    since = _since_key(since_date)
    with db() as conn:
        if since:
            rows = conn.execute(
                "SELECT habit_id, completed_date, quantity FROM completions WHERE completed_date >= ?",
                (since,),
            ).fetchall()
        else:
            rows = conn.execute("SELECT habit_id, completed_date, quantity FROM completions").fetchall()
    return [_completion(r) for r in rows]


def fetch_all_occurrences(since_date: date | str | None = None) -> list[RawOccurrenceRecord]:
    since = _since_key(since_date)
    with db() as conn:
        if since:
            rows = conn.execute(
                "SELECT habit_id, event_date, occurred_at, quantity FROM occurrences WHERE event_date >= ?",
                (since,),
            ).fetchall()
        else:
            rows = conn.execute("SELECT habit_id, event_date, occurred_at, quantity FROM occurrences").fetchall()
    return [_occurrence(r) for r in rows]


def fetch_records(descriptor: HabitDescriptor, since_date: date | str | None = None) -> tuple[list, list]:
    """(completions, occurrences) for one habit; only the set its kind reads is queried."""
    if descriptor.source is RecordSource.COMPLETIONS:
        return fetch_completions(descriptor.id, since_date), []
    return [], fetch_occurrences(descriptor.id, since_date)


def fetch_history(descriptor: HabitDescriptor, limit: int = 100) -> list[dict[str, Any]]:
    """Records with their ids, newest first, from the set the habit's kind reads."""
    limit = int(limit)
    if limit < 1:
        raise ValueError("limit must be >= 1")
    with db() as conn:
        if descriptor.source is RecordSource.COMPLETIONS:
            rows = conn.execute(
                """
                SELECT id, completed_date, quantity, created_at FROM completions
                WHERE habit_id = ?
                ORDER BY completed_date DESC, id DESC
                LIMIT ?
                """,
                (descriptor.id, limit),
            ).fetchall()
            return [
                {
                    "id": int(r["id"]),
                    "source": RecordSource.COMPLETIONS.value,
                    "date": r["completed_date"],
                    "time": r["created_at"],
                    "quantity": r["quantity"] if r["quantity"] is not None else 1,
                    "note": None,
                }
                for r in rows
            ]
        rows = conn.execute(
            """
            SELECT id, event_date, occurred_at, quantity, note FROM occurrences
            WHERE habit_id = ?
            ORDER BY event_date DESC, occurred_at DESC, id DESC
            LIMIT ?
            """,
            (descriptor.id, limit),
        ).fetchall()
    return [
        {
            "id": int(r["id"]),
            "source": RecordSource.OCCURRENCES.value,
            "date": r["event_date"],
            "time": r["occurred_at"],
            "quantity": r["quantity"] if r["quantity"] is not None else 1,
            "note": r["note"],
        }
        for r in rows
    ]


def record_counts() -> dict[str, int]:
    with db() as conn:
        habits = conn.execute("SELECT COUNT(*) AS c FROM habits WHERE archived = 0").fetchone()["c"]
        completions = conn.execute("SELECT COUNT(*) AS c FROM completions").fetchone()["c"]
        occurrences = conn.execute("SELECT COUNT(*) AS c FROM occurrences").fetchone()["c"]
    return {"habits": int(habits), "completions": int(completions), "occurrences": int(occurrences)}
