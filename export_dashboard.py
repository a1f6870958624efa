from __future__ import annotations

import argparse
import json
import logging
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any

from habitstats import settings, store
from habitstats.dates import local_today, parse_day
from habitstats.db import init_db
from habitstats.logging_setup import setup_logging
from habitstats.stats import build_dashboard

logger = logging.getLogger("export_dashboard")


def build_export_payload(anchor: date, keep_names: bool = False) -> dict[str, Any]:
    habits = store.list_habits()
    dashboard = build_dashboard(
        habits,
        store.fetch_all_completions(),
        store.fetch_all_occurrences(),
        anchor,
    )

    rows: list[dict[str, Any]] = []
    for idx, h in enumerate(dashboard["habits"], start=1):
        row = dict(h)
        row.pop("id", None)
        row["name"] = h.get("name") if keep_names else f"habit-{idx}"
        rows.append(row)

    return {
        "schemaVersion": 1,
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "date": dashboard["date"],
        "privacy": {
            "containsRawRecords": False,
            "containsHabitNames": keep_names,
        },
        "summary": dashboard["summary"],
        "habits": rows,
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Export the habit dashboard as JSON.")
    parser.add_argument(
        "--out",
        default="dashboard.json",
        help="Output JSON path (default: dashboard.json next to this script)",
    )
    parser.add_argument("--date", help="Anchor day YYYY-MM-DD (default: today, local time)")
    parser.add_argument(
        "--keep-names",
        action="store_true",
        help="Keep habit names instead of habit-1, habit-2, ...",
    )
    args = parser.parse_args()

    setup_logging(settings.LOG_LEVEL, settings.LOG_FILE)

    anchor = local_today()
    if args.date:
        anchor = parse_day(args.date)
        if anchor is None:
            parser.error(f"--date must be YYYY-MM-DD, got {args.date!r}")

    init_db()
    payload = build_export_payload(anchor, keep_names=args.keep_names)
    out_path = Path(args.out)
    if not out_path.is_absolute():
        out_path = (Path(__file__).resolve().parent / out_path).resolve()
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
    logger.info("exported %d habits for %s to %s", len(payload["habits"]), payload["date"], out_path)


if __name__ == "__main__":
    main()
