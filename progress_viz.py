"""Render progress charts from a CSV export.

The export carries no per-day occurrence count, so the load-bucket chart
weights each day by done + micro + skipped counts instead.  That count
includes ad-hoc entries and leaves out occurrences not yet due, so
bucket rates can differ slightly from the ``load_buckets`` in the JSON
response.  Use the JSON response when exact bucket rates matter.

Usage:
    python progress_viz.py --csv progress_analytics/progress_2026-01-05_to_2026-02-01.csv
"""

from __future__ import annotations

import argparse
import os

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from progress_metrics import LOAD_BUCKETS, compute_load_success_buckets


def load_daily_frame(csv_path: str) -> pd.DataFrame:
    """Read the daily rows of a progress CSV export into a date-sorted frame.

    Adds a 7-day rolling mean of the success rate (days with nothing
    planned are skipped by the mean).
    """
    df = pd.read_csv(csv_path)
    df = df[df["row_type"] == "daily"].copy()
    df["date"] = pd.to_datetime(df["date"])
    df = df.sort_values("date").reset_index(drop=True)
    for col in ("planned_cu", "done_cu", "micro_cu", "done_count", "micro_count", "skipped_count"):
        df[col] = pd.to_numeric(df[col]).fillna(0)
    df["success_rate"] = pd.to_numeric(df["success_rate"])
    df["success_rate_7d"] = df["success_rate"].rolling(window=7, min_periods=1).mean()
    return df


def plot_daily_load(df: pd.DataFrame, output_path: str) -> None:
    fig, ax = plt.subplots(figsize=(15, 8))
    ax.bar(df["date"], df["planned_cu"], alpha=0.35, color="lightgray", label="Planned CU")
    ax.bar(df["date"], df["done_cu"], alpha=0.7, color="seagreen", label="Done CU")
    ax.bar(df["date"], df["micro_cu"], bottom=df["done_cu"], alpha=0.7, color="gold", label="Micro CU")
    ax.set_xlabel("Date", fontsize=12)
    ax.set_ylabel("Capacity Units", fontsize=12)
    ax.grid(True, alpha=0.3)

    rate_ax = ax.twinx()
    rate_ax.plot(df["date"], df["success_rate"], color="steelblue", marker="o", linewidth=1, label="Success rate")
    rate_ax.plot(df["date"], df["success_rate_7d"], color="red", linewidth=2, label="7-day average")
    rate_ax.set_ylim(0, 105)
    rate_ax.set_ylabel("Success rate (%)", fontsize=12)

    handles, labels = ax.get_legend_handles_labels()
    rate_handles, rate_labels = rate_ax.get_legend_handles_labels()
    ax.legend(handles + rate_handles, labels + rate_labels, loc="upper left")
    ax.set_title("Daily Load and Outcomes", fontsize=14, pad=20)
    fig.autofmt_xdate(rotation=45)
    fig.tight_layout()
    fig.savefig(output_path, dpi=300, bbox_inches="tight")
    plt.close(fig)


def bucket_points(df: pd.DataFrame) -> list[dict]:
    """Turn daily frame rows into the points ``compute_load_success_buckets`` takes.

    Each day's weight is its done + micro + skipped count (see module docstring).
    """
    return [
        {
            "planned_cu": row.planned_cu,
            "success_rate": None if pd.isna(row.success_rate) else row.success_rate,
            "planned_count": int(row.done_count + row.micro_count + row.skipped_count),
        }
        for row in df.itertuples()
    ]


def plot_load_buckets(df: pd.DataFrame, output_path: str) -> None:
    result = compute_load_success_buckets(bucket_points(df))
    buckets = pd.DataFrame(result["buckets"])
    buckets["success_rate"] = buckets["success_rate"].fillna(0)

    fig, ax = plt.subplots(figsize=(8, 6))
    sns.barplot(
        data=buckets,
        x="key",
        y="success_rate",
        order=[key for key, _, _ in LOAD_BUCKETS],
        color="skyblue",
        ax=ax,
    )
    for i, row in buckets.iterrows():
        ax.text(i, row["success_rate"] + 1, f"{row['days']}d", ha="center", fontsize=10)
    title = "Success Rate by Planned Load"
    if result["sweet_spot_label"]:
        title += f" ({result['sweet_spot_label']})"
    ax.set_title(title, fontsize=14, pad=20)
    ax.set_xlabel("Planned CU per day", fontsize=12)
    ax.set_ylabel("Success rate (%)", fontsize=12)
    ax.set_ylim(0, 110)
    fig.tight_layout()
    fig.savefig(output_path, dpi=300, bbox_inches="tight")
    plt.close(fig)


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Plot progress charts from a CSV export.")
    parser.add_argument("--csv", required=True, help="Path to a progress CSV export.")
    parser.add_argument("--output-dir", default="progress_analytics")
    args = parser.parse_args(argv)

    os.makedirs(args.output_dir, exist_ok=True)
    df = load_daily_frame(args.csv)
    plot_daily_load(df, os.path.join(args.output_dir, "daily_load.png"))
    plot_load_buckets(df, os.path.join(args.output_dir, "load_buckets.png"))
    print(f"Visualizations have been saved as 'daily_load.png' and 'load_buckets.png' in {args.output_dir}")


if __name__ == "__main__":
    main()
