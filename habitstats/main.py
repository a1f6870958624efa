from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query

from . import settings, store
from .dates import local_today, parse_day
from .db import DB_PATH, init_db
from .kinds import HabitDescriptor
from .models import (
    HabitCreateRequest,
    HabitResponse,
    LogActionRequest,
    LogActionResponse,
    StatusResponse,
)
from .security import require_api_key
from .stats import build_calendar, build_dashboard, compute_habit_stats
from .timeline import build_timeline

logger = logging.getLogger(__name__)

app = FastAPI(title="Habit Stats Server", version="0.1.0")


@app.on_event("startup")
def _startup() -> None:
    init_db()


def _anchor(raw: str | None) -> date:
    # "today" is decided here, never inside the engine.
    if raw is None or raw == "":
        return local_today()
    d = parse_day(raw)
    if d is None:
        logger.warning("Rejected anchor date %r", raw)
        raise HTTPException(status_code=400, detail="date must be YYYY-MM-DD")
    return d


def _require_habit_row(habit_id: str) -> dict[str, Any]:
    row = store.get_habit_row(habit_id)
    if row is None:
        logger.warning("Habit %s not found", habit_id)
        raise HTTPException(status_code=404, detail="Habit not found")
    return row


def _require_habit(habit_id: str) -> HabitDescriptor:
    return HabitDescriptor.from_row(_require_habit_row(habit_id))


def _habit_out(row: dict[str, Any]) -> HabitResponse:
    return HabitResponse(
        id=row["id"],
        name=row["name"],
        type=row["polarity"],
        tracking_mode=row["tracking_mode"],
        daily_goal_value=row.get("daily_goal"),
        created_on=row["created_on"],
        created_at=row["created_at"],
        archived=bool(row.get("archived")),
    )


@app.get("/api/status", response_model=StatusResponse)
def status(_: None = Depends(require_api_key)) -> StatusResponse:
    counts = store.record_counts()
    return StatusResponse(ok=True, dbPath=str(DB_PATH), **counts)


@app.get("/api/habits", response_model=list[HabitResponse])
def list_habits(include_archived: bool = False, _: None = Depends(require_api_key)) -> list[HabitResponse]:
    return [_habit_out(r) for r in store.list_habits(include_archived=include_archived)]


@app.post("/api/habits", response_model=HabitResponse, status_code=201)
def create_habit(req: HabitCreateRequest, _: None = Depends(require_api_key)) -> HabitResponse:
    try:
        row = store.create_habit(
            name=req.name,
            polarity=req.type,
            tracking_mode=req.tracking_mode,
            daily_goal=req.daily_goal_value,
            created_on=req.created_on,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _habit_out(row)


@app.delete("/api/habits/{habit_id}")
def archive_habit(habit_id: str, _: None = Depends(require_api_key)) -> dict[str, Any]:
    _require_habit(habit_id)
    return {"ok": True, "archived": store.archive_habit(habit_id)}


@app.post("/api/habits/{habit_id}/log", response_model=LogActionResponse)
def log_action(habit_id: str, req: LogActionRequest, _: None = Depends(require_api_key)) -> LogActionResponse:
    descriptor = _require_habit(habit_id)
    try:
        source, row = store.log_action(
            descriptor,
            day=req.day,
            occurred_at=req.occurredAt,
            quantity=req.quantity,
            note=req.note,
        )
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    day = row.get("completed_date") or row.get("event_date")
    return LogActionResponse(ok=True, habitId=habit_id, source=source.value, recordId=int(row["id"]), day=day)


@app.delete("/api/habits/{habit_id}/completions/{record_id}")
def delete_completion(habit_id: str, record_id: int, _: None = Depends(require_api_key)) -> dict[str, Any]:
    _require_habit(habit_id)
    if not store.delete_completion(habit_id, record_id):
        raise HTTPException(status_code=404, detail="Completion not found")
    return {"ok": True}


@app.delete("/api/habits/{habit_id}/occurrences/{record_id}")
def delete_occurrence(habit_id: str, record_id: int, _: None = Depends(require_api_key)) -> dict[str, Any]:
    _require_habit(habit_id)
    if not store.delete_occurrence(habit_id, record_id):
        raise HTTPException(status_code=404, detail="Occurrence not found")
    return {"ok": True}


@app.get("/api/habits/{habit_id}/history")
def habit_history(
    habit_id: str,
    limit: int = Query(default=100, ge=1, le=500),
    _: None = Depends(require_api_key),
) -> dict[str, Any]:
    descriptor = _require_habit(habit_id)
    return {
        "habitId": habit_id,
        "source": descriptor.source.value,
        "records": store.fetch_history(descriptor, limit=limit),
    }


@app.get("/api/habits/{habit_id}/stats")
def habit_stats(
    habit_id: str,
    on: str | None = Query(default=None, alias="date"),
    _: None = Depends(require_api_key),
) -> dict[str, Any]:
    anchor = _anchor(on)
    row = _require_habit_row(habit_id)
    descriptor = HabitDescriptor.from_row(row)
    completions, occurrences = store.fetch_records(descriptor)
    stats = compute_habit_stats(descriptor, completions, occurrences, anchor)
    return {
        "habit": _habit_out(row).model_dump(mode="json"),
        "date": anchor.isoformat(),
        "stats": stats.as_dict(),
    }


@app.get("/api/habits/{habit_id}/calendar")
def habit_calendar(
    habit_id: str,
    on: str | None = Query(default=None, alias="date"),
    days: int | None = Query(default=None, ge=0, le=366),
    _: None = Depends(require_api_key),
) -> dict[str, Any]:
    anchor = _anchor(on)
    days = settings.CALENDAR_DAYS if days is None else days
    descriptor = _require_habit(habit_id)
    completions, occurrences = store.fetch_records(descriptor, since_date=anchor - timedelta(days=days))
    timeline = build_timeline(descriptor, completions, occurrences)
    return {
        "habitId": habit_id,
        "date": anchor.isoformat(),
        "days": days,
        "todayCount": timeline.quantity_on(anchor),
        "calendar": build_calendar(descriptor, timeline, anchor, days),
    }


@app.get("/api/dashboard")
def dashboard(
    on: str | None = Query(default=None, alias="date"),
    _: None = Depends(require_api_key),
) -> dict[str, Any]:
    anchor = _anchor(on)
    habits = store.list_habits()
    # Two bulk reads, partitioned per habit inside the engine.
    completions = store.fetch_all_completions()
    occurrences = store.fetch_all_occurrences()
    return build_dashboard(habits, completions, occurrences, anchor)
