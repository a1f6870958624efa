from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class HabitCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    type: Literal["good", "bad"]
    tracking_mode: Literal["binary", "counter"] = "binary"
    daily_goal_value: Optional[int] = Field(default=None, ge=1)
    created_on: Optional[date] = None


class HabitResponse(BaseModel):
    id: str
    name: str
    type: Literal["good", "bad"]
    tracking_mode: Literal["binary", "counter"]
    daily_goal_value: Optional[int] = None
    created_on: date
    created_at: datetime
    archived: bool = False


class LogActionRequest(BaseModel):
    # Calendar day the action counts for; defaults to the local day of occurredAt / now.
    day: Optional[date] = None
    occurredAt: Optional[datetime] = None
    quantity: Optional[int] = Field(default=None, ge=1)
    note: Optional[str] = None


class LogActionResponse(BaseModel):
    ok: bool
    habitId: str
    source: Literal["completions", "occurrences"]
    recordId: int
    day: date


class StatusResponse(BaseModel):
    ok: bool
    dbPath: str
    habits: int
    completions: int
    occurrences: int
