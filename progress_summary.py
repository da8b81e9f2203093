"""Command-line progress report.

Computes the progress analytics for one range from a habit snapshot,
prints a readable summary and saves the JSON response plus the CSV
export.

Usage:
    python progress_summary.py --data progress_data.json --preset four_weeks
    python progress_summary.py --preset custom --start 2026-01-01 --end 2026-01-31
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Any

from date_range import PRESETS, InvalidRange, resolve_progress_range
from progress_csv import build_progress_csv, get_progress_csv_filename
from progress_data import fetch_progress_inputs, load_progress_snapshot, resolve_today
from progress_metrics import build_progress_response
from settings import get_settings


def _fmt_optional(value: Any, suffix: str = "") -> str:
    return "n/a" if value is None else f"{value}{suffix}"


def print_progress_report(data: dict[str, Any]) -> None:
    """Print the progress summary report to stdout.

    Args:
        data: Dict returned by ``progress_metrics.build_progress_response``.
    """
    rng = data["range"]
    summary = data["summary"]
    capacity = summary["capacity"]
    completion = summary["completion"]
    momentum = summary["momentum"]
    slip = summary["slip_recovery"]

    print(f"\n{'=' * 60}")
    print(f"Habit Progress: {rng['label']} ({rng['start']} to {rng['end']})")
    print(f"{'=' * 60}")
    print(
        f"Capacity: {capacity['used_cu']} / {_fmt_optional(capacity['budget_cu'])} CU "
        f"[{capacity['status']}]"
    )
    print(f"  {capacity['note']}")
    print(
        f"Completion: {completion['done']} done, {completion['micro']} micro, "
        f"{completion['skipped']} skipped (of {completion['total']})"
    )
    print(f"  {completion['note']}")
    print(
        f"Momentum: {momentum['success_rate']}% "
        f"(delta {_fmt_optional(momentum['delta_vs_previous'])}, {momentum['trend']})"
    )
    print(f"  {momentum['note']}")
    print(
        f"Slip recovery: {slip['recovered']} of {slip['missed']} misses "
        f"({_fmt_optional(slip['rate'], '%')})"
    )
    print(f"  {slip['note']}")

    print(f"\n{data['insight']['headline']}")
    print(f"  {data['insight']['subline']}")
    if data["charts"]["sweet_spot_label"]:
        print(f"  ({data['charts']['sweet_spot_label']})")

    top = data["habits"]["top_attention"]
    if top:
        print(f"\n{'=' * 60}")
        print("Habits Needing Attention")
        print(f"{'=' * 60}")
        print(f"{'Habit':<24} {'CU':>6} {'Done':>5} {'Micro':>6} {'Missed':>7}  Last 21 days")
        print(f"{'-' * 80}")
        for habit in top:
            spark = "".join(
                {"done": "#", "micro_done": "+", "missed": "x"}.get(cell, ".")
                for cell in habit["history_21"]
            )
            print(
                f"{habit['title'][:24]:<24} {habit['planned_cu']:>6} {habit['done']:>5} "
                f"{habit['micro']:>6} {habit['missed']:>7}  {spark}"
            )
            print(f"  Tip: {habit['tip']}")
    print(f"{'=' * 60}")


def save_progress_files(data: dict[str, Any], output_dir: str = "progress_analytics") -> str:
    """Write progress.json and the CSV export to *output_dir*.

    Creates the directory if it doesn't exist.

    Returns:
        Path of the written CSV file.
    """
    os.makedirs(output_dir, exist_ok=True)

    with open(os.path.join(output_dir, "progress.json"), "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)

    csv_path = os.path.join(output_dir, get_progress_csv_filename(data["range"]))
    with open(csv_path, "w", encoding="utf-8", newline="") as f:
        f.write(build_progress_csv(data))
    return csv_path


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Summarise habit progress for a date range.")
    parser.add_argument("--data", default=str(get_settings().data_path), help="Path to the habit snapshot JSON.")
    parser.add_argument("--preset", choices=PRESETS, default="this_week")
    parser.add_argument("--start", help="Custom range start (YYYY-MM-DD).")
    parser.add_argument("--end", help="Custom range end (YYYY-MM-DD).")
    parser.add_argument("--today", help="Override today's date (YYYY-MM-DD).")
    parser.add_argument("--output-dir", default="progress_analytics")
    args = parser.parse_args(argv)

    try:
        snapshot = load_progress_snapshot(args.data)
    except FileNotFoundError:
        print(f"Error: data file not found: {args.data}", file=sys.stderr)
        return 1
    except json.JSONDecodeError as exc:
        print(f"Error: invalid JSON in {args.data}: {exc}", file=sys.stderr)
        return 1

    today = args.today or resolve_today(snapshot["user"].get("timezone") or get_settings().timezone)
    try:
        range_info = resolve_progress_range(args.preset, today, start=args.start, end=args.end)
    except InvalidRange as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2

    data = build_progress_response(**fetch_progress_inputs(snapshot, range_info))
    print_progress_report(data)
    csv_path = save_progress_files(data, args.output_dir)
    print(f"\nProgress data has been saved to '{args.output_dir}' ({os.path.basename(csv_path)}).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
