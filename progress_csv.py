"""CSV export of a progress response.

Flattens the daily chart points and the top-attention habits into one
row-typed table so the dashboard's data can be opened in a spreadsheet.
"""

from __future__ import annotations

import csv
import io
from typing import Any

CSV_COLUMNS = [
    "row_type",
    "date",
    "planned_cu",
    "done_cu",
    "micro_cu",
    "done_count",
    "micro_count",
    "skipped_count",
    "success_rate",
    "habit",
    "habit_planned_cu",
    "habit_done",
    "habit_micro",
    "habit_missed",
    "habit_tip",
]


def get_progress_csv_filename(range_info: dict) -> str:
    """Return the download filename, e.g. "progress_2026-02-09_to_2026-02-15.csv"."""
    return f"progress_{range_info['start']}_to_{range_info['end']}.csv"


def _csv_value(value: Any) -> Any:
    """Blank out None and drop a trailing ".0" from whole floats."""
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _daily_row(day: dict) -> list:
    """Flatten one daily chart point into a CSV row; habit columns stay blank."""
    return [
        "daily",
        day["date"],
        day["planned_cu"],
        day["done_cu"],
        day["micro_cu"],
        day["done_count"],
        day["micro_count"],
        day["skipped_count"],
        day["success_rate"],
        None, None, None, None, None, None,
    ]


def _habit_row(habit: dict) -> list:
    """Flatten one top-attention habit into a CSV row; daily columns stay blank."""
    return [
        "habit_summary",
        None, None, None, None, None, None, None,
        habit["success_rate"],
        habit["title"],
        habit["planned_cu"],
        habit["done"],
        habit["micro"],
        habit["missed"],
        habit["tip"],
    ]


def build_progress_csv(data: dict) -> str:
    """Render a progress response as CSV text.

    Cells containing commas, quotes or newlines are quoted, with embedded
    quotes doubled.

    Args:
        data: Dict returned by ``progress_metrics.build_progress_response``.

    Returns:
        CSV text: a header row, one "daily" row per chart point, then one
        "habit_summary" row per top-attention habit.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for day in data["charts"]["daily"]:
        writer.writerow([_csv_value(v) for v in _daily_row(day)])
    for habit in data["habits"]["top_attention"]:
        writer.writerow([_csv_value(v) for v in _habit_row(habit)])
    return buf.getvalue()
