"""Shared test helpers for progress analytics tests.

Regular functions (not fixtures) that can be imported by any test module.
"""

from __future__ import annotations


def planned_row(
    row_id: str,
    habit_id: int,
    date: str,
    planned_weight: float,
    context_tag: str | None = None,
) -> dict:
    """Build a planned occurrence row; the weight is stored as a string like a DB numeric."""
    return {
        "id": row_id,
        "habit_id": habit_id,
        "date": date,
        "planned_weight_cu": str(planned_weight),
        "context_tag": context_tag,
    }


def entry_row(
    row_id: str,
    habit_id: int,
    date: str,
    status: str,
    actual_weight: float,
    note: str | None = None,
) -> dict:
    """Build an entry row with the given status."""
    return {
        "id": row_id,
        "habit_id": habit_id,
        "date": date,
        "status": status,
        "actual_weight_cu": str(actual_weight),
        "note": note,
    }


def habit_row(
    habit_id: int,
    title: str,
    is_active: bool = True,
    context_tags: list[str] | None = None,
    micro_title: str | None = None,
) -> dict:
    return {
        "id": habit_id,
        "title": title,
        "weight_cu": "2",
        "micro_title": micro_title,
        "micro_weight_cu": "1",
        "context_tags": context_tags or [],
        "has_micro": micro_title is not None,
        "is_active": is_active,
    }


def make_range(
    start: str,
    end: str,
    today: str,
    previous_start: str | None = None,
    previous_end: str | None = None,
) -> dict:
    """Build a resolved-range dict without going through the resolver."""
    return {
        "preset": "custom",
        "start": start,
        "end": end,
        "today": today,
        "label": "Custom range",
        "previous_start": previous_start or start,
        "previous_end": previous_end or start,
    }


def make_snapshot(
    habits: list[dict] | None = None,
    planned: list[dict] | None = None,
    entries: list[dict] | None = None,
    capacity_plans: list[dict] | None = None,
    timezone: str = "UTC",
    default_capacity: float | None = 40,
) -> dict:
    """Build a snapshot dict matching ``load_progress_snapshot`` output."""
    return {
        "user": {"timezone": timezone, "weekly_capacity_cu_default": default_capacity},
        "habits": habits or [],
        "planned": planned or [],
        "entries": entries or [],
        "capacity_plans": capacity_plans or [],
    }
