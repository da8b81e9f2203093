"""Tests for date_range.py calendar helpers and range resolution."""

from datetime import date

import pytest

from date_range import (
    InvalidRange,
    enumerate_dates,
    enumerate_week_starts,
    get_range_day_count,
    get_week_end_iso,
    get_week_start_iso,
    is_valid_iso_date,
    resolve_progress_range,
    shift_iso_date,
    to_iso_date,
)


# ── Calendar helpers ────────────────────────


class TestWeekBounds:
    def test_midweek_date(self):
        assert get_week_start_iso("2026-02-11") == "2026-02-09"
        assert get_week_end_iso("2026-02-11") == "2026-02-15"

    def test_sunday_belongs_to_preceding_monday(self):
        assert get_week_start_iso("2026-02-15") == "2026-02-09"

    def test_monday_is_its_own_week_start(self):
        assert get_week_start_iso("2026-02-09") == "2026-02-09"

    def test_week_across_year_boundary(self):
        assert get_week_start_iso("2026-01-01") == "2025-12-29"
        assert get_week_end_iso("2025-12-29") == "2026-01-04"

    @pytest.mark.parametrize("day", enumerate_dates("2024-02-20", "2024-03-10"))
    def test_week_start_is_monday_and_brackets_day(self, day):
        start = get_week_start_iso(day)
        assert date.fromisoformat(start).weekday() == 0
        assert start <= day <= get_week_end_iso(day)


class TestShiftIsoDate:
    def test_month_and_year_transitions(self):
        assert shift_iso_date("2025-12-31", 1) == "2026-01-01"
        assert shift_iso_date("2026-01-01", -1) == "2025-12-31"

    def test_leap_day(self):
        assert shift_iso_date("2024-02-28", 1) == "2024-02-29"
        assert shift_iso_date("2023-02-28", 1) == "2023-03-01"

    @pytest.mark.parametrize("offset", [-400, -31, -1, 0, 1, 29, 366])
    def test_shift_back_returns_original(self, offset):
        assert shift_iso_date(shift_iso_date("2026-02-11", offset), -offset) == "2026-02-11"


class TestEnumerateDates:
    def test_inclusive_list(self):
        assert enumerate_dates("2026-02-09", "2026-02-12") == [
            "2026-02-09",
            "2026-02-10",
            "2026-02-11",
            "2026-02-12",
        ]
        assert get_range_day_count("2026-02-09", "2026-02-12") == 4

    def test_single_day(self):
        assert enumerate_dates("2026-02-09", "2026-02-09") == ["2026-02-09"]

    def test_inverted_bounds_give_empty_list(self):
        assert enumerate_dates("2026-02-10", "2026-02-09") == []

    def test_steps_one_day_across_month_end(self):
        days = enumerate_dates("2026-01-25", "2026-03-03")
        assert len(days) == (date(2026, 3, 3) - date(2026, 1, 25)).days + 1
        for a, b in zip(days, days[1:]):
            assert (date.fromisoformat(b) - date.fromisoformat(a)).days == 1


class TestEnumerateWeekStarts:
    def test_starts_from_week_start(self):
        assert enumerate_week_starts("2026-02-11", "2026-03-01") == [
            "2026-02-09",
            "2026-02-16",
            "2026-02-23",
        ]

    def test_includes_week_of_end_date(self):
        assert enumerate_week_starts("2026-02-09", "2026-02-16") == ["2026-02-09", "2026-02-16"]


class TestIsoHelpers:
    def test_to_iso_date_accepts_date_and_string(self):
        assert to_iso_date(date(2026, 2, 9)) == "2026-02-09"
        assert to_iso_date("2026-02-09T00:00:00Z") == "2026-02-09"

    def test_is_valid_iso_date(self):
        assert is_valid_iso_date("2026-02-09")
        assert not is_valid_iso_date("2026-02-30")
        assert not is_valid_iso_date("2026-2-9")
        assert not is_valid_iso_date("invalid-date")
        assert not is_valid_iso_date(None)


# ── resolve_progress_range ──────────────────


class TestResolveProgressRange:
    def test_this_week(self):
        result = resolve_progress_range("this_week", "2026-02-11")
        assert result["start"] == "2026-02-09"
        assert result["end"] == "2026-02-15"
        assert result["previous_start"] == "2026-02-02"
        assert result["previous_end"] == "2026-02-08"
        assert result["label"] == "This week"
        assert result["today"] == "2026-02-11"

    def test_last_week(self):
        result = resolve_progress_range("last_week", "2026-02-11")
        assert result["start"] == "2026-02-02"
        assert result["end"] == "2026-02-08"
        assert result["previous_start"] == "2026-01-26"
        assert result["label"] == "Last week"

    def test_four_weeks(self):
        result = resolve_progress_range("four_weeks", "2026-02-11")
        assert result["start"] == "2026-01-15"
        assert result["end"] == "2026-02-11"
        assert get_range_day_count(result["start"], result["end"]) == 28

    def test_three_months(self):
        result = resolve_progress_range("three_months", "2026-02-11")
        assert get_range_day_count(result["start"], result["end"]) == 90
        assert result["label"] == "Last 3 months"

    def test_custom_range_and_previous_period(self):
        result = resolve_progress_range(
            "custom", "2026-02-11", start="2026-01-10", end="2026-01-20"
        )
        assert result["start"] == "2026-01-10"
        assert result["end"] == "2026-01-20"
        assert result["previous_start"] == "2025-12-30"
        assert result["previous_end"] == "2026-01-09"
        assert result["label"] == "Custom range"

    @pytest.mark.parametrize("preset", ["this_week", "last_week", "four_weeks", "three_months"])
    def test_previous_period_has_equal_length(self, preset):
        result = resolve_progress_range(preset, "2026-03-01")
        assert shift_iso_date(result["previous_end"], 1) == result["start"]
        assert get_range_day_count(result["previous_start"], result["previous_end"]) == (
            get_range_day_count(result["start"], result["end"])
        )

    def test_inverted_custom_range_raises(self):
        with pytest.raises(InvalidRange, match="Custom range requires valid start and end dates."):
            resolve_progress_range("custom", "2026-02-11", start="2026-02-12", end="2026-02-11")

    def test_malformed_custom_date_raises(self):
        with pytest.raises(InvalidRange):
            resolve_progress_range("custom", "2026-02-11", start="invalid-date", end="2026-02-11")

    def test_missing_custom_bound_raises(self):
        with pytest.raises(InvalidRange):
            resolve_progress_range("custom", "2026-02-11", start="2026-02-01")

    def test_unknown_preset_raises(self):
        with pytest.raises(InvalidRange, match="Unknown range preset"):
            resolve_progress_range("yesterday", "2026-02-11")

    def test_invalid_range_is_value_error(self):
        assert issubclass(InvalidRange, ValueError)


# ── Calendar edges ──────────────────────────


class TestCalendarEdges:
    def test_enumerate_dates_up_to_last_supported_day(self):
        assert enumerate_dates("9999-12-30", "9999-12-31") == ["9999-12-30", "9999-12-31"]

    def test_enumerate_week_starts_up_to_last_supported_day(self):
        assert enumerate_week_starts("9999-12-01", "9999-12-31") == [
            "9999-11-29",
            "9999-12-06",
            "9999-12-13",
            "9999-12-20",
            "9999-12-27",
        ]

    def test_enumerate_week_starts_inverted_bounds(self):
        assert enumerate_week_starts("2026-02-20", "2026-02-01") == []

    def test_custom_range_ending_on_last_supported_day(self):
        result = resolve_progress_range(
            "custom", "2026-02-11", start="9999-12-30", end="9999-12-31"
        )
        assert result["previous_start"] == "9999-12-28"
        assert result["previous_end"] == "9999-12-29"

    def test_previous_period_before_first_supported_day_raises(self):
        with pytest.raises(InvalidRange, match="outside the supported calendar"):
            resolve_progress_range("custom", "2026-02-11", start="0001-01-01", end="0001-01-05")

    def test_history_window_before_first_supported_day_raises(self):
        with pytest.raises(InvalidRange, match="outside the supported calendar"):
            resolve_progress_range("custom", "2026-02-11", start="0001-01-10", end="0001-01-12")

    def test_preset_near_first_supported_day_raises(self):
        with pytest.raises(InvalidRange):
            resolve_progress_range("three_months", "0001-02-01")


class TestPaddedCustomDates:
    @pytest.mark.parametrize(
        "start, end",
        [
            (" 2026-01-01", "2026-01-10"),
            ("2026-01-01", "2026-01-10 "),
            ("2026-01-01\n", "2026-01-10"),
        ],
    )
    def test_padded_dates_are_rejected(self, start, end):
        with pytest.raises(InvalidRange, match="Custom range requires valid start and end dates."):
            resolve_progress_range("custom", "2026-02-11", start=start, end=end)

    def test_padded_value_is_not_a_valid_iso_date(self):
        assert not is_valid_iso_date(" 2026-01-01")
        assert not is_valid_iso_date("2026-01-01\n")
