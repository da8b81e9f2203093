"""Load a user's habit data and slice it into the analytics inputs.

The dashboard reads one user's rows from a JSON snapshot shaped like::

    {
        "user": {"timezone": "Europe/Berlin", "weekly_capacity_cu_default": 40},
        "habits": [{"id": 1, "title": "Read", "is_active": true, ...}],
        "planned": [{"id": "p1", "habit_id": 1, "date": "2026-02-09",
                     "planned_weight_cu": 2, "context_tag": null}],
        "entries": [{"id": "e1", "habit_id": 1, "date": "2026-02-09",
                     "actual_weight_cu": 2, "status": "done", "note": null}],
        "capacity_plans": [{"week_start_date": "2026-02-09", "capacity_cu": 40}]
    }
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from date_range import HISTORY_DAYS, get_week_start_iso, shift_iso_date, to_iso_date

logger = logging.getLogger(__name__)


def load_progress_snapshot(path: str) -> dict[str, Any]:
    """Load a user's habit snapshot from a JSON file.

    Raises:
        FileNotFoundError: If the file at *path* does not exist.
        json.JSONDecodeError: If the file contains invalid JSON.
    """
    with open(path, "r", encoding="utf-8") as f:
        snapshot = json.load(f)
    for key in ("habits", "planned", "entries", "capacity_plans"):
        snapshot.setdefault(key, [])
    snapshot.setdefault("user", {})
    return snapshot


def resolve_today(timezone: str | None, now: datetime | None = None) -> str:
    """Return the current calendar day in *timezone* as an ISO string.

    Unknown or empty timezone names fall back to UTC.
    """
    try:
        tz = ZoneInfo(timezone) if timezone else ZoneInfo("UTC")
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown timezone %r; using UTC", timezone)
        tz = ZoneInfo("UTC")
    if now is None:
        return datetime.now(tz).date().isoformat()
    return now.astimezone(tz).date().isoformat()


def _rows_between(rows: list[dict], start: str, end: str) -> list[dict]:
    return [row for row in rows if start <= to_iso_date(row["date"]) <= end]


def _capacity_by_week(plans: list[dict], start: str, end: str) -> dict[str, float | None]:
    first_week = get_week_start_iso(start)
    last_week = get_week_start_iso(end)
    capacity: dict[str, float | None] = {}
    for plan in plans:
        week = to_iso_date(plan["week_start_date"])
        if first_week <= week <= last_week:
            value = plan.get("capacity_cu")
            capacity[week] = None if value is None else float(value)
    return capacity


def fetch_progress_inputs(snapshot: dict[str, Any], range_info: dict) -> dict[str, Any]:
    """Slice a snapshot into the keyword arguments of ``build_progress_response``.

    Args:
        snapshot: Dict from ``load_progress_snapshot``.
        range_info: Dict from ``date_range.resolve_progress_range``.

    Returns:
        Dict with keys range_info, habits, planned_in_range,
        entries_in_range, planned_in_previous_range,
        entries_in_previous_range, planned_history_21, entries_history_21,
        capacity_by_week and weekly_capacity_default.
    """
    start, end = range_info["start"], range_info["end"]
    previous_start, previous_end = range_info["previous_start"], range_info["previous_end"]
    history_start = shift_iso_date(end, -(HISTORY_DAYS - 1))
    planned = snapshot["planned"]
    entries = snapshot["entries"]

    default_capacity = snapshot["user"].get("weekly_capacity_cu_default")

    return {
        "range_info": range_info,
        "habits": snapshot["habits"],
        "planned_in_range": _rows_between(planned, start, end),
        "entries_in_range": _rows_between(entries, start, end),
        "planned_in_previous_range": _rows_between(planned, previous_start, previous_end),
        "entries_in_previous_range": _rows_between(entries, previous_start, previous_end),
        "planned_history_21": _rows_between(planned, history_start, end),
        "entries_history_21": _rows_between(entries, history_start, end),
        "capacity_by_week": _capacity_by_week(snapshot["capacity_plans"], start, end),
        "weekly_capacity_default": float(default_capacity) if default_capacity else None,
    }
