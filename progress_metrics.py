"""Progress analytics for the habit planner.

Turns one user's planned occurrences and logged entries over a date range
into the metrics behind the progress dashboard: capacity usage, completion
breakdown, momentum against the previous period, load-vs-success buckets
with a sweet spot, slip recovery, and the habits needing attention.

Every function is pure.  Rows come in already fetched (see
``progress_data.fetch_progress_inputs``) and are never mutated.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from date_range import HISTORY_DAYS, enumerate_dates, get_week_start_iso, shift_iso_date, to_iso_date

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Tunable constants
# ---------------------------------------------------------------------------

# (key, upper bound exclusive, midpoint CU used for the sweet-spot label)
LOAD_BUCKETS = [
    ("1-3", 4, 2),
    ("4-5", 6, 4.5),
    ("6-7", 8, 6.5),
    ("8+", float("inf"), 8),
]
SWEET_SPOT_MIN_DAYS = 2

RECOVERY_WINDOW_DAYS = 3
TOP_ATTENTION_LIMIT = 5
RECENT_NOTES_LIMIT = 3

ATTENTION_MISSED_WEIGHT = 3
ATTENTION_PLANNED_CU_WEIGHT = 0.25
ATTENTION_NO_RATE_PENALTY = 1
ATTENTION_RATE_DIVISOR = 25

MOMENTUM_STEADY_BAND = 1.5
INSIGHT_MIN_OBSERVED_DAYS = 4
INSIGHT_DROP_THRESHOLD = 8

PRIMARY_CTA = "Adjust plan"
SECONDARY_CTA = "Enable micro-steps"

DONE_STATUSES = ("done", "recovered")
RECOVERY_STATUSES = ("done", "micro_done", "recovered")


# ---------------------------------------------------------------------------
# Small helpers
# ---------------------------------------------------------------------------

def _to_number(value: Any) -> float:
    """Coerce a CU value (int, float, Decimal, numeric string) to float.

    ``None`` and empty strings count as 0.  Anything else that float()
    rejects raises ``ValueError``.
    """
    if value is None or value == "":
        return 0.0
    return float(value)


def _clamp_rate(value: float) -> float:
    """Round a percentage to one decimal and clamp it to [0, 100]."""
    return max(0.0, min(100.0, round(value, 1)))


def format_cu(value: float) -> str:
    """Render a CU value with one decimal, dropping a trailing ".0"."""
    rounded = round(value, 1)
    return str(int(rounded)) if rounded == int(rounded) else f"{rounded:.1f}"


def _habit_date_key(row: dict) -> tuple[Any, str]:
    """Return the (habit_id, ISO date) key identifying a planned or entry row."""
    return row["habit_id"], to_iso_date(row["date"])


def _index_by_habit_date(rows: list[dict], kind: str) -> dict[tuple[Any, str], dict]:
    """Map (habit_id, date) to its row; later duplicates replace earlier ones.

    Args:
        rows: Planned or entry rows, in input order.
        kind: "planned" or "entry", used only in the duplicate warning.

    Returns:
        Dict keyed by ``_habit_date_key``, in first-seen key order.
    """
    index: dict[tuple[Any, str], dict] = {}
    for row in rows:
        key = _habit_date_key(row)
        if key in index:
            logger.warning("Duplicate %s row for habit %s on %s; keeping the last one", kind, *key)
        index[key] = row
    return index


def _group_by_day(rows) -> dict[str, list[dict]]:
    """Group rows into lists keyed by their ISO date."""
    by_day: dict[str, list[dict]] = {}
    for row in rows:
        by_day.setdefault(to_iso_date(row["date"]), []).append(row)
    return by_day


def _days_between(start: str, end: str) -> int:
    """Return the signed number of days from *start* to *end*."""
    return (date.fromisoformat(end) - date.fromisoformat(start)).days


def _weekday_label(day: str) -> str:
    """Return the short English weekday name ("Mon") for an ISO date."""
    return date.fromisoformat(day).strftime("%a")


# ---------------------------------------------------------------------------
# Capacity
# ---------------------------------------------------------------------------

def compute_capacity_used(
    planned: list[dict],
    entries: list[dict],
    range_start: str,
    range_end: str,
    capacity_by_week: dict[str, float | None],
    weekly_capacity_default: float | None,
) -> dict[str, Any]:
    """Compare CU actually used in a range against the capacity budget.

    Usage counts each planned occurrence at its planned weight until an
    entry resolves it, then at the entry's actual weight (zero when
    skipped).  Ad-hoc entries without a planned row add their actual
    weight unless skipped.

    The budget spreads each week's capacity evenly over its seven days.
    If any day in the range has no known capacity the budget is reported
    as unknown rather than as a partial sum.

    Args:
        planned: Planned occurrence rows in the range.
        entries: Entry rows in the range.
        range_start: Inclusive ISO start date.
        range_end: Inclusive ISO end date.
        capacity_by_week: Maps Monday ISO dates to weekly capacity (or None).
        weekly_capacity_default: Fallback weekly capacity, or None.

    Returns:
        Dict with keys used_cu (float, 1dp), budget_cu (float or None),
        ratio (float, 3dp, or None) and status ("within", "over" or
        "unknown").
    """
    entry_index = _index_by_habit_date(entries, "entry")
    planned_index = _index_by_habit_date(planned, "planned")

    used = 0.0
    for key, item in planned_index.items():
        entry = entry_index.get(key)
        if entry is None:
            used += _to_number(item.get("planned_weight_cu"))
        elif entry["status"] != "skipped":
            used += _to_number(entry.get("actual_weight_cu"))

    for key, entry in entry_index.items():
        if key in planned_index or entry["status"] == "skipped":
            continue
        used += _to_number(entry.get("actual_weight_cu"))

    budget = 0.0
    unknown_capacity = False
    for day in enumerate_dates(range_start, range_end):
        weekly = capacity_by_week.get(get_week_start_iso(day))
        if weekly is None:
            weekly = weekly_capacity_default
        if weekly is None:
            unknown_capacity = True
            continue
        budget += _to_number(weekly) / 7

    used_cu = round(used, 1)
    budget_cu = None if unknown_capacity or budget <= 0 else round(budget, 1)
    ratio = round(used_cu / budget_cu, 3) if budget_cu else None

    if budget_cu is None:
        status = "unknown"
    elif used_cu > budget_cu:
        status = "over"
    else:
        status = "within"

    return {"used_cu": used_cu, "budget_cu": budget_cu, "ratio": ratio, "status": status}


def capacity_note(status: str) -> str:
    """Return the capacity card note for a status ("within", "over" or "unknown")."""
    if status == "unknown":
        return "Set a weekly capacity to compare load."
    if status == "over":
        return "Load is above budget. Try lighter days or micro-steps."
    return "You are within budget for this range."


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------

def _count_unresolved(
    planned_index: dict[tuple[Any, str], dict],
    entry_index: dict[tuple[Any, str], dict],
    today: str,
) -> int:
    """Count planned occurrences due by *today* that have no entry."""
    return sum(
        1 for key in planned_index
        if key[1] <= today and key not in entry_index
    )


def compute_completion_breakdown(
    planned: list[dict],
    entries: list[dict],
    today: str,
) -> dict[str, Any]:
    """Tally done, micro and skipped outcomes for a range.

    Entries are counted by status (ad-hoc entries included; "recovered"
    counts as done).  Planned occurrences on or before *today* with no
    entry are unresolved and count as skipped.  Future occurrences
    without an entry are not counted at all.

    Returns:
        Dict with keys done, micro, skipped, total (ints) and note (str).
    """
    entry_index = _index_by_habit_date(entries, "entry")
    planned_index = _index_by_habit_date(planned, "planned")

    done = micro = explicit_skipped = 0
    for entry in entry_index.values():
        status = entry["status"]
        if status in DONE_STATUSES:
            done += 1
        elif status == "micro_done":
            micro += 1
        elif status == "skipped":
            explicit_skipped += 1

    skipped = explicit_skipped + _count_unresolved(planned_index, entry_index, today)
    total = done + micro + skipped

    note = "Keep logging to see steadier patterns."
    if total > 0:
        if skipped == 0:
            note = "You stayed consistent through this range."
        elif done + micro >= skipped:
            note = "Small recoveries are keeping momentum alive."
        else:
            note = "Try reducing heavy days and leaning on micro-steps."

    return {"done": done, "micro": micro, "skipped": skipped, "total": total, "note": note}


def build_daily_points(
    start: str,
    end: str,
    today: str,
    planned: list[dict],
    entries: list[dict],
) -> list[dict]:
    """Build one chart point per calendar day in [*start*, *end*].

    Each planned occurrence is classified by its entry: done/recovered,
    micro_done, skipped, or unresolved (no entry and on or before
    *today*, which also flags the day as having missing data).  Ad-hoc
    entries on a day add to the done/micro tallies; ad-hoc skips are
    ignored.

    Returns:
        List of dicts, ordered by date, with keys date, label, planned_cu,
        done_cu, micro_cu, done_count, micro_count, skipped_count,
        success_rate (0-100 or None when nothing was planned),
        has_missing_data and planned_count.
    """
    entry_index = _index_by_habit_date(entries, "entry")
    planned_index = _index_by_habit_date(planned, "planned")
    planned_by_day = _group_by_day(planned_index.values())
    entries_by_day = _group_by_day(entry_index.values())

    points = []
    for day in enumerate_dates(start, end):
        day_planned = planned_by_day.get(day, [])
        planned_cu = sum(_to_number(p.get("planned_weight_cu")) for p in day_planned)

        done_cu = micro_cu = 0.0
        done_count = micro_count = skipped_count = 0
        has_missing_data = False

        for item in day_planned:
            entry = entry_index.get(_habit_date_key(item))
            if entry is None:
                if day <= today:
                    skipped_count += 1
                    has_missing_data = True
                continue
            if entry["status"] == "skipped":
                skipped_count += 1
            elif entry["status"] == "micro_done":
                micro_count += 1
                micro_cu += _to_number(entry.get("actual_weight_cu"))
            else:
                done_count += 1
                done_cu += _to_number(entry.get("actual_weight_cu"))

        for entry in entries_by_day.get(day, []):
            if _habit_date_key(entry) in planned_index or entry["status"] == "skipped":
                continue
            if entry["status"] == "micro_done":
                micro_count += 1
                micro_cu += _to_number(entry.get("actual_weight_cu"))
            else:
                done_count += 1
                done_cu += _to_number(entry.get("actual_weight_cu"))

        planned_count = len(day_planned)
        success_rate = (
            _clamp_rate((done_count + micro_count) / planned_count * 100)
            if planned_count > 0 else None
        )

        points.append(
            {
                "date": day,
                "label": _weekday_label(day),
                "planned_cu": round(planned_cu, 2),
                "done_cu": round(done_cu, 2),
                "micro_cu": round(micro_cu, 2),
                "done_count": done_count,
                "micro_count": micro_count,
                "skipped_count": skipped_count,
                "success_rate": success_rate,
                "has_missing_data": has_missing_data,
                "planned_count": planned_count,
            }
        )
    return points


# ---------------------------------------------------------------------------
# Load vs success
# ---------------------------------------------------------------------------

def get_bucket_key(planned_cu: float) -> str | None:
    """Return the load bucket key for a day's planned CU, None if nothing planned."""
    if planned_cu <= 0:
        return None
    for key, upper, _ in LOAD_BUCKETS:
        if planned_cu < upper:
            return key
    return LOAD_BUCKETS[-1][0]


def compute_load_success_buckets(daily_points: list[dict]) -> dict[str, Any]:
    """Group days by planned load and find the best-performing bucket.

    A bucket's success rate is the mean of its days' success rates,
    weighted by how many occurrences each day had (minimum weight 1).
    Days with no planned load or no success rate are left out.  The
    sweet spot is the highest-rated bucket backed by at least
    ``SWEET_SPOT_MIN_DAYS`` days; ties go to the lighter bucket.

    Args:
        daily_points: Dicts with planned_cu, success_rate and optionally
            planned_count (as produced by ``build_daily_points``).

    Returns:
        Dict with keys buckets (list of {key, success_rate, days} in
        bucket order), sweet_spot_key, sweet_spot_cu and sweet_spot_label
        (all None when no bucket qualifies).
    """
    sums = {key: {"weighted_rate": 0.0, "weight": 0, "days": 0} for key, _, _ in LOAD_BUCKETS}

    for day in daily_points:
        key = get_bucket_key(day["planned_cu"])
        if key is None or day["success_rate"] is None:
            continue
        weight = max(1, day.get("planned_count") or 1)
        state = sums[key]
        state["weighted_rate"] += day["success_rate"] * weight
        state["weight"] += weight
        state["days"] += 1

    buckets = []
    sweet_spot_key = None
    sweet_spot_cu = None
    best_rate = -1.0
    for key, _, midpoint in LOAD_BUCKETS:
        state = sums[key]
        rate = _clamp_rate(state["weighted_rate"] / state["weight"]) if state["weight"] else None
        if rate is not None and state["days"] >= SWEET_SPOT_MIN_DAYS and rate > best_rate:
            best_rate = rate
            sweet_spot_key = key
            sweet_spot_cu = midpoint
        buckets.append({"key": key, "success_rate": rate, "days": state["days"]})

    sweet_spot_label = (
        f"sweet spot ≈ {format_cu(sweet_spot_cu)} CU/day" if sweet_spot_cu is not None else None
    )
    return {
        "buckets": buckets,
        "sweet_spot_key": sweet_spot_key,
        "sweet_spot_cu": sweet_spot_cu,
        "sweet_spot_label": sweet_spot_label,
    }


# ---------------------------------------------------------------------------
# Slip recovery and momentum
# ---------------------------------------------------------------------------

def compute_slip_recovery(
    planned: list[dict],
    entries: list[dict],
    today: str,
) -> dict[str, Any]:
    """Measure how often a missed occurrence is followed by a comeback.

    A planned occurrence on or before *today* is missed when it has no
    entry or a skipped one.  It counts as recovered when the same habit
    has a done, micro_done or recovered entry within the
    ``RECOVERY_WINDOW_DAYS`` days after the miss.  Entries explicitly
    marked "recovered" are added on top of the window-based count.

    Returns:
        Dict with keys recovered, missed (ints), rate (0-100 or None when
        nothing was missed) and note.
    """
    entry_index = _index_by_habit_date(entries, "entry")
    planned_index = _index_by_habit_date(planned, "planned")

    entry_dates_by_habit: dict[Any, list[tuple[str, str]]] = {}
    for (habit_id, day), entry in entry_index.items():
        entry_dates_by_habit.setdefault(habit_id, []).append((day, entry["status"]))

    missed_keys = [
        key for key in planned_index
        if key[1] <= today
        and (key not in entry_index or entry_index[key]["status"] == "skipped")
    ]

    explicit_recovered = sum(1 for e in entry_index.values() if e["status"] == "recovered")

    window_recovered = 0
    for habit_id, miss_day in missed_keys:
        if any(
            0 < _days_between(miss_day, day) <= RECOVERY_WINDOW_DAYS and status in RECOVERY_STATUSES
            for day, status in entry_dates_by_habit.get(habit_id, [])
        ):
            window_recovered += 1

    recovered = explicit_recovered + window_recovered
    missed = len(missed_keys)
    rate = _clamp_rate(recovered / missed * 100) if missed > 0 else None

    note = "No missed check-ins in this range."
    if rate is not None:
        if rate >= 60:
            note = "You are returning quickly after misses. Keep this pattern."
        elif rate >= 35:
            note = "Recovery is building. Keep one easy fallback step ready."
        else:
            note = "A tiny fallback step can make returns easier after a miss."

    return {"recovered": recovered, "missed": missed, "rate": rate, "note": note}


def _breakdown_success_rate(breakdown: dict) -> float | None:
    """Return (done + micro) / total as a clamped percentage, or None when empty."""
    if breakdown["total"] <= 0:
        return None
    return _clamp_rate((breakdown["done"] + breakdown["micro"]) / breakdown["total"] * 100)


def compute_momentum(current: dict, previous: dict) -> dict[str, Any]:
    """Compare two completion breakdowns into a trend.

    Returns:
        Dict with keys success_rate (current, 0 when nothing counted),
        delta_vs_previous (None without a previous baseline), trend
        ("steady", "up", "down" or "new") and note.
    """
    current_rate = _breakdown_success_rate(current)
    if current_rate is None:
        current_rate = 0.0
    previous_rate = _breakdown_success_rate(previous)

    delta = None if previous_rate is None else round(current_rate - previous_rate, 1)

    if delta is None:
        trend = "new"
        note = "Keep logging to unlock trend insights."
    elif abs(delta) < MOMENTUM_STEADY_BAND:
        trend = "steady"
        note = "Your momentum is steady versus the previous range."
    elif delta > 0:
        trend = "up"
        note = "Momentum is improving from the previous range."
    else:
        trend = "down"
        note = "Momentum dipped slightly; a lighter plan may help."

    return {
        "success_rate": current_rate,
        "delta_vs_previous": delta,
        "trend": trend,
        "note": note,
    }


# ---------------------------------------------------------------------------
# Habits needing attention
# ---------------------------------------------------------------------------

def pick_tip(missed: int, success_rate: float | None, planned_cu: float, micro_usage: int) -> str:
    """Choose the one-line tip shown next to a habit.

    Checks run in priority order: many misses, a low success rate, a
    heavy planned load, then whether micro-steps are in use.

    Args:
        missed: Missed occurrences in the range.
        success_rate: Habit success rate (0-100) or None.
        planned_cu: Total planned CU for the habit in the range.
        micro_usage: Number of micro_done entries in the range.

    Returns:
        The tip text.
    """
    if missed >= 3:
        return "Try reducing load on your busiest day."
    if success_rate is not None and success_rate < 45:
        return "A smaller first step may make this easier to resume."
    if planned_cu >= 8:
        return "Split this into lighter sessions across the week."
    if micro_usage > 0:
        return "Micro-steps are helping; keep them available."
    return "Keep a steady context and protect your start cue."


def pick_suggestion(missed: int, success_rate: float | None, micro_usage_count: int) -> dict[str, str]:
    """Choose the habit suggestion and its call-to-action label.

    Returns:
        Dict with keys text and cta_label.
    """
    if missed >= 3:
        return {
            "text": "This habit is often missed on heavy days. Consider moving one session to a lighter day.",
            "cta_label": "Move to Sunday",
        }
    if success_rate is not None and success_rate < 50:
        return {
            "text": "Try lowering the planned load once this week to rebuild consistency.",
            "cta_label": "Lighten one day",
        }
    if micro_usage_count >= 2:
        return {
            "text": "Micro-steps are helping keep momentum. Keep one ready for busy days.",
            "cta_label": "Keep micro-step",
        }
    return {
        "text": "Your cadence looks stable. Keep the same context cue next week.",
        "cta_label": "Keep schedule",
    }


def build_history_21(
    habit_id: Any,
    range_end: str,
    today: str,
    planned_history: list[dict],
    entries_history: list[dict],
) -> list[str]:
    """Classify the ``HISTORY_DAYS`` days ending at *range_end* for one habit.

    Always returns exactly ``HISTORY_DAYS`` cells, oldest first, each one
    of "done", "micro_done", "missed" or "empty".
    """
    start = shift_iso_date(range_end, -(HISTORY_DAYS - 1))
    planned_days = {
        to_iso_date(row["date"]) for row in planned_history if row["habit_id"] == habit_id
    }
    entry_by_day = {
        to_iso_date(row["date"]): row for row in entries_history if row["habit_id"] == habit_id
    }

    cells = []
    for day in enumerate_dates(start, range_end):
        entry = entry_by_day.get(day)
        if entry is not None:
            if entry["status"] in DONE_STATUSES:
                cells.append("done")
            elif entry["status"] == "micro_done":
                cells.append("micro_done")
            else:
                cells.append("missed")
        elif day in planned_days and day <= today:
            cells.append("missed")
        else:
            cells.append("empty")
    return cells


def _recent_notes(entries: list[dict], limit: int = RECENT_NOTES_LIMIT) -> list[str]:
    """Return up to *limit* trimmed, non-blank notes, newest first."""
    noted = [e for e in entries if (e.get("note") or "").strip()]
    noted.sort(key=lambda e: to_iso_date(e["date"]), reverse=True)
    return [e["note"].strip() for e in noted[:limit]]


def _attention_score(missed: int, planned_cu: float, success_rate: float | None) -> float:
    """Score how much a habit needs attention; higher ranks first.

    Misses weigh most, then planned load; a low success rate adds up to
    4 points and a habit with no rate gets a flat penalty of 1.
    """
    rate_term = (
        ATTENTION_NO_RATE_PENALTY if success_rate is None
        else (100 - success_rate) / ATTENTION_RATE_DIVISOR
    )
    return missed * ATTENTION_MISSED_WEIGHT + planned_cu * ATTENTION_PLANNED_CU_WEIGHT + rate_term


def _habit_attention(
    habit: dict,
    range_info: dict,
    planned: list[dict],
    entries: list[dict],
    planned_history: list[dict],
    entries_history: list[dict],
) -> dict[str, Any]:
    """Roll up one habit's range rows into an attention record (with score)."""
    done = micro = explicit_skipped = 0
    for entry in entries:
        if entry["status"] in DONE_STATUSES:
            done += 1
        elif entry["status"] == "micro_done":
            micro += 1
        elif entry["status"] == "skipped":
            explicit_skipped += 1

    entry_keys = {_habit_date_key(e) for e in entries}
    unresolved = sum(
        1 for p in planned
        if to_iso_date(p["date"]) <= range_info["today"] and _habit_date_key(p) not in entry_keys
    )
    missed = explicit_skipped + unresolved

    planned_cu = sum(_to_number(p.get("planned_weight_cu")) for p in planned)
    success_rate = _clamp_rate((done + micro) / len(planned) * 100) if planned else None

    context_tag = next((p["context_tag"] for p in planned if p.get("context_tag")), None)
    if context_tag is None and habit.get("context_tags"):
        context_tag = habit["context_tags"][0]

    return {
        "habit_id": habit["id"],
        "title": habit["title"],
        "context_tag": context_tag,
        "planned_cu": round(planned_cu, 1),
        "done": done,
        "micro": micro,
        "missed": missed,
        "success_rate": success_rate,
        "tip": pick_tip(missed, success_rate, planned_cu, micro),
        "micro_title": habit.get("micro_title"),
        "micro_usage_count": micro,
        "history_21": build_history_21(
            habit["id"], range_info["end"], range_info["today"], planned_history, entries_history
        ),
        "recent_notes": _recent_notes([e for e in entries_history if e["habit_id"] == habit["id"]]),
        "suggestion": pick_suggestion(missed, success_rate, micro),
        "attention_score": _attention_score(missed, planned_cu, success_rate),
    }


def build_top_attention(
    habits: list[dict],
    range_info: dict,
    planned_in_range: list[dict],
    entries_in_range: list[dict],
    planned_history_21: list[dict],
    entries_history_21: list[dict],
    limit: int = TOP_ATTENTION_LIMIT,
) -> list[dict]:
    """Rank active habits by how much attention they need.

    Habits with any activity in the range (planned load, completions or
    misses) are ranked first; only when none have activity are all
    active habits ranked.  Order is attention score descending, then
    title.  The score itself is not part of the returned records.

    Args:
        habits: Habit rows; inactive ones are ignored.
        range_info: Resolved range dict (needs "end" and "today").
        planned_in_range: Planned rows in the primary range.
        entries_in_range: Entry rows in the primary range.
        planned_history_21: Planned rows in the 21-day history window.
        entries_history_21: Entry rows in the 21-day history window.
        limit: Maximum number of habits returned.

    Returns:
        Up to *limit* habit attention dicts.
    """
    planned_by_habit: dict[Any, list[dict]] = {}
    for row in _index_by_habit_date(planned_in_range, "planned").values():
        planned_by_habit.setdefault(row["habit_id"], []).append(row)
    entries_by_habit: dict[Any, list[dict]] = {}
    for row in _index_by_habit_date(entries_in_range, "entry").values():
        entries_by_habit.setdefault(row["habit_id"], []).append(row)

    items = [
        _habit_attention(
            habit,
            range_info,
            planned_by_habit.get(habit["id"], []),
            entries_by_habit.get(habit["id"], []),
            planned_history_21,
            entries_history_21,
        )
        for habit in habits
        if habit.get("is_active")
    ]

    with_signal = [
        item for item in items
        if item["planned_cu"] > 0 or item["done"] > 0 or item["micro"] > 0 or item["missed"] > 0
    ]
    source = with_signal or items
    ranked = sorted(source, key=lambda i: (-i["attention_score"], i["title"].casefold(), i["title"]))

    return [
        {k: v for k, v in item.items() if k != "attention_score"}
        for item in ranked[:limit]
    ]


# ---------------------------------------------------------------------------
# Insight and response assembly
# ---------------------------------------------------------------------------

def _mean_rate(days: list[dict]) -> float | None:
    """Average the success rates of *days* (missing rates count as 0), None if no days."""
    if not days:
        return None
    return round(sum(d["success_rate"] or 0 for d in days) / len(days), 1)


def build_insight(daily: list[dict], buckets: dict) -> dict[str, Any]:
    """Pick the dashboard headline from the daily points and sweet spot."""
    observed_days = sum(1 for d in daily if d["planned_count"] > 0)
    sweet_spot = buckets["sweet_spot_cu"]

    insight = {
        "primary_cta": PRIMARY_CTA,
        "secondary_cta": SECONDARY_CTA,
        "fallback": False,
        "sweet_spot_cu": sweet_spot,
    }

    if observed_days < INSIGHT_MIN_OBSERVED_DAYS or not sweet_spot:
        insight.update(
            headline="Not enough data yet. Keep logging for a few days.",
            subline="Once more check-ins are logged, we can suggest a steadier daily load.",
            fallback=True,
            sweet_spot_cu=None,
        )
        return insight

    heavy_rate = _mean_rate([d for d in daily if d["planned_cu"] >= sweet_spot + 1])
    light_rate = _mean_rate([d for d in daily if 0 < d["planned_cu"] <= sweet_spot])

    if heavy_rate is not None and light_rate is not None and light_rate - heavy_rate >= INSIGHT_DROP_THRESHOLD:
        insight.update(
            headline=(
                f"When planned load goes above ~{format_cu(sweet_spot + 1)} CU/day, "
                "completion tends to drop."
            ),
            subline="Try shifting one heavier session to a lighter day and keep a micro-step available.",
        )
    else:
        insight.update(
            headline=f"Your completion stays steadier around ~{format_cu(sweet_spot)} CU/day.",
            subline="Keep heavier tasks spread across the week to maintain a smoother rhythm.",
        )
    return insight


def build_progress_response(
    range_info: dict,
    habits: list[dict],
    planned_in_range: list[dict],
    entries_in_range: list[dict],
    planned_in_previous_range: list[dict],
    entries_in_previous_range: list[dict],
    planned_history_21: list[dict],
    entries_history_21: list[dict],
    capacity_by_week: dict[str, float | None],
    weekly_capacity_default: float | None,
) -> dict[str, Any]:
    """One-call entry point: compute every metric for the progress page.

    The previous-period breakdown is computed with its own "today" set to
    the previous range's last day, so every occurrence in it is due.

    Args:
        range_info: Dict from ``date_range.resolve_progress_range``.
        habits: All of the user's habit rows.
        planned_in_range: Planned rows in [start, end].
        entries_in_range: Entry rows in [start, end].
        planned_in_previous_range: Planned rows in the previous period.
        entries_in_previous_range: Entry rows in the previous period.
        planned_history_21: Planned rows in the 21 days ending at end.
        entries_history_21: Entry rows in the 21 days ending at end.
        capacity_by_week: Maps Monday ISO dates to weekly capacity.
        weekly_capacity_default: Fallback weekly capacity, or None.

    Returns:
        Dict with keys range, summary, insight, charts, habits and states.
    """
    today = range_info["today"]

    capacity = compute_capacity_used(
        planned_in_range,
        entries_in_range,
        range_info["start"],
        range_info["end"],
        capacity_by_week,
        weekly_capacity_default,
    )
    capacity["note"] = capacity_note(capacity["status"])
    if capacity["status"] == "unknown":
        logger.warning(
            "Capacity unknown for part of %s..%s; budget not reported",
            range_info["start"],
            range_info["end"],
        )

    completion = compute_completion_breakdown(planned_in_range, entries_in_range, today)
    previous_completion = compute_completion_breakdown(
        planned_in_previous_range, entries_in_previous_range, range_info["previous_end"]
    )
    momentum = compute_momentum(completion, previous_completion)
    slip_recovery = compute_slip_recovery(planned_in_range, entries_in_range, today)

    daily = build_daily_points(
        range_info["start"], range_info["end"], today, planned_in_range, entries_in_range
    )
    load_buckets = compute_load_success_buckets(daily)
    insight = build_insight(daily, load_buckets)
    top_attention = build_top_attention(
        habits,
        range_info,
        planned_in_range,
        entries_in_range,
        planned_history_21,
        entries_history_21,
    )

    logger.debug(
        "Built progress for %s..%s: %d planned, %d entries, %d habits ranked",
        range_info["start"],
        range_info["end"],
        len(planned_in_range),
        len(entries_in_range),
        len(top_attention),
    )

    return {
        "range": {
            "preset": range_info["preset"],
            "start": range_info["start"],
            "end": range_info["end"],
            "today": today,
            "label": range_info["label"],
        },
        "summary": {
            "capacity": capacity,
            "completion": completion,
            "momentum": momentum,
            "slip_recovery": slip_recovery,
        },
        "insight": insight,
        "charts": {
            "daily": daily,
            "load_buckets": load_buckets["buckets"],
            "sweet_spot_label": load_buckets["sweet_spot_label"],
        },
        "habits": {"top_attention": top_attention},
        "states": {
            "has_habits": any(h.get("is_active") for h in habits),
            "has_entries_in_range": len(entries_in_range) > 0,
            "has_partial_missing": any(p["has_missing_data"] for p in daily),
        },
    }
