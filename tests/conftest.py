"""Shared fixtures for progress dashboard tests."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from helpers import entry_row, habit_row, make_snapshot, planned_row

TODAY = "2026-02-11"


def _week_snapshot() -> dict:
    """Return a snapshot covering the week of 2026-02-09 plus the week before.

    Reading (habit 1) is planned daily Mon-Wed of both weeks; Running
    (habit 2) twice this week; Journal (habit 3) is inactive.
    """
    habits = [
        habit_row(1, "Reading", context_tags=["evening"], micro_title="Read one page"),
        habit_row(2, "Running"),
        habit_row(3, "Journal", is_active=False),
    ]
    planned = [
        planned_row("p1", 1, "2026-02-02", 2),
        planned_row("p2", 1, "2026-02-03", 2),
        planned_row("p3", 1, "2026-02-04", 2),
        planned_row("p4", 1, "2026-02-09", 2),
        planned_row("p5", 1, "2026-02-10", 2),
        planned_row("p6", 1, "2026-02-11", 2),
        planned_row("p7", 2, "2026-02-10", 5, context_tag="morning"),
        planned_row("p8", 2, "2026-02-13", 5),
    ]
    entries = [
        entry_row("e1", 1, "2026-02-02", "done", 2),
        entry_row("e2", 1, "2026-02-03", "skipped", 0),
        entry_row("e3", 1, "2026-02-09", "done", 2, note="Before bed"),
        entry_row("e4", 1, "2026-02-10", "micro_done", 1),
        entry_row("e5", 2, "2026-02-10", "skipped", 0),
    ]
    capacity_plans = [{"week_start_date": "2026-02-09", "capacity_cu": 35}]
    return make_snapshot(habits, planned, entries, capacity_plans)


@pytest.fixture()
def snapshot():
    return _week_snapshot()


@pytest.fixture()
def client(snapshot):
    """TestClient for app.py with a mocked snapshot and a fixed today.

    Resets the module-level cache between tests.
    """
    import app as app_module

    with patch.object(
        app_module, "_cache", {"data": None, "built_at": 0.0}
    ):
        with patch("app.load_progress_snapshot", return_value=snapshot):
            with patch("app.resolve_today", return_value=TODAY):
                with TestClient(app_module.app) as tc:
                    yield tc
