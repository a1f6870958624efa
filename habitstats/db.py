from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

DB_PATH = os.getenv("DB_PATH", os.path.join(os.path.dirname(__file__), "..", "habitstats.db"))


def _connect() -> sqlite3.Connection:
    conn = sqlite3.connect(DB_PATH)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA foreign_keys=ON;")
    return conn


@contextmanager
def db() -> Iterator[sqlite3.Connection]:
    conn = _connect()
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def init_db() -> None:
    with db() as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS habits (
              id TEXT PRIMARY KEY,
              name TEXT NOT NULL,
              polarity TEXT NOT NULL CHECK (polarity IN ('good', 'bad')),
              tracking_mode TEXT NOT NULL DEFAULT 'binary' CHECK (tracking_mode IN ('binary', 'counter')),
              daily_goal INTEGER,
              created_on TEXT NOT NULL,
              created_at TEXT NOT NULL,
              archived INTEGER NOT NULL DEFAULT 0
            );
            """
        )

        # Single-per-day confirmations (good/binary habits)
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS completions (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              habit_id TEXT NOT NULL,
              completed_date TEXT NOT NULL,
              quantity INTEGER,
              created_at TEXT NOT NULL,
              UNIQUE(habit_id, completed_date),
              FOREIGN KEY(habit_id) REFERENCES habits(id)
            );
            """
        )

        # Repeatable events (bad habits, good/counter habits)
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS occurrences (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              habit_id TEXT NOT NULL,
              event_date TEXT NOT NULL,
              occurred_at TEXT NOT NULL,
              quantity INTEGER,
              note TEXT,
              FOREIGN KEY(habit_id) REFERENCES habits(id)
            );
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_completions_habit_date ON completions(habit_id, completed_date);")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_occurrences_habit_date ON occurrences(habit_id, event_date);")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_occurrences_event_date ON occurrences(event_date);")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
