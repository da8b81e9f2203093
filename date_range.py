"""Calendar helpers and range resolution for the progress dashboard.

Dates are handled as abstract calendar days in ISO "YYYY-MM-DD" form.
No wall clock is read here; "today" is always supplied by the caller.
"""

from __future__ import annotations

import re
from datetime import date, timedelta

PRESETS = ("this_week", "last_week", "four_weeks", "three_months", "custom")

PRESET_LABELS = {
    "this_week": "This week",
    "last_week": "Last week",
    "four_weeks": "Last 4 weeks",
    "three_months": "Last 3 months",
    "custom": "Custom range",
}

# Days of per-habit history shown alongside any range, ending at the range end.
HISTORY_DAYS = 21

_ISO_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


class InvalidRange(ValueError):
    """Raised when a requested range cannot be resolved."""


def to_iso_date(value: date | str) -> str:
    """Normalise a date, datetime or ISO string to "YYYY-MM-DD"."""
    if isinstance(value, date):
        return value.isoformat()[:10]
    return str(value)[:10]


def is_valid_iso_date(value: str | None) -> bool:
    if not value or not _ISO_DATE_RE.fullmatch(value):
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def shift_iso_date(date_string: str, day_offset: int) -> str:
    """Return *date_string* moved by *day_offset* calendar days."""
    shifted = date.fromisoformat(date_string) + timedelta(days=day_offset)
    return shifted.isoformat()


def get_week_start_iso(date_string: str) -> str:
    """Return the Monday of the week containing *date_string*."""
    d = date.fromisoformat(date_string)
    return (d - timedelta(days=d.weekday())).isoformat()


def get_week_end_iso(date_string: str) -> str:
    """Return the Sunday of the week containing *date_string*."""
    return shift_iso_date(get_week_start_iso(date_string), 6)


def enumerate_dates(start: str, end: str) -> list[str]:
    """List every ISO date from *start* to *end*, both inclusive.

    Returns an empty list when *start* is after *end*.
    """
    first = date.fromisoformat(start)
    day_count = (date.fromisoformat(end) - first).days + 1
    return [(first + timedelta(days=i)).isoformat() for i in range(day_count)]


def enumerate_week_starts(start: str, end: str) -> list[str]:
    """List the Mondays of every week that intersects [*start*, *end*]."""
    first = date.fromisoformat(get_week_start_iso(start))
    week_count = (date.fromisoformat(end) - first).days // 7 + 1
    return [(first + timedelta(weeks=i)).isoformat() for i in range(max(0, week_count))]


def get_range_day_count(start: str, end: str) -> int:
    return len(enumerate_dates(start, end))


def _preset_bounds(preset: str, today: str) -> tuple[str, str]:
    if preset == "this_week":
        start = get_week_start_iso(today)
        return start, shift_iso_date(start, 6)
    if preset == "last_week":
        start = shift_iso_date(get_week_start_iso(today), -7)
        return start, shift_iso_date(start, 6)
    if preset == "four_weeks":
        return shift_iso_date(today, -27), today
    return shift_iso_date(today, -89), today


def resolve_progress_range(
    preset: str,
    today: str,
    start: str | None = None,
    end: str | None = None,
) -> dict[str, str]:
    """Resolve a preset (or custom bounds) into a concrete date range.

    The previous period has the same number of days and ends the day
    before the resolved start, so trends compare like with like.

    Args:
        preset: One of ``PRESETS``.
        today: The user's local calendar day as an ISO string.
        start: Inclusive range start, required when preset is "custom".
        end: Inclusive range end, required when preset is "custom".

    Returns:
        Dict with keys preset, start, end, today, label, previous_start
        and previous_end (all strings).

    Raises:
        InvalidRange: If the preset is unknown, a custom range has
            missing, malformed or inverted dates, or the previous period or
            history window would fall outside the supported calendar.
    """
    if preset not in PRESETS:
        raise InvalidRange(f"Unknown range preset: {preset!r}.")

    if preset == "custom":
        if not is_valid_iso_date(start) or not is_valid_iso_date(end) or start > end:
            raise InvalidRange("Custom range requires valid start and end dates.")

    try:
        if preset == "custom":
            resolved_start, resolved_end = start, end
        else:
            resolved_start, resolved_end = _preset_bounds(preset, today)
        day_count = get_range_day_count(resolved_start, resolved_end)
        previous_end = shift_iso_date(resolved_start, -1)
        previous_start = shift_iso_date(previous_end, -(day_count - 1))
        shift_iso_date(resolved_end, -(HISTORY_DAYS - 1))
    except OverflowError:
        raise InvalidRange("Date range is outside the supported calendar.") from None

    return {
        "preset": preset,
        "start": resolved_start,
        "end": resolved_end,
        "today": today,
        "label": PRESET_LABELS[preset],
        "previous_start": previous_start,
        "previous_end": previous_end,
    }
