"""Tests for week boundary helpers."""

from datetime import date, datetime, timezone

from budget_coach.core.weeks import (
    days_remaining_in_week,
    end_of_week,
    naive_local,
    previous_week_start,
    start_of_week,
    subtract_months,
)


class TestStartOfWeek:
    def test_wednesday_maps_to_monday(self):
        assert start_of_week(datetime(2024, 1, 17, 15, 30)) == datetime(2024, 1, 15)

    def test_monday_is_its_own_start(self):
        assert start_of_week(datetime(2024, 1, 15, 9, 0)) == datetime(2024, 1, 15)

    def test_sunday_belongs_to_previous_monday(self):
        assert start_of_week(datetime(2024, 1, 21, 23, 0)) == datetime(2024, 1, 15)

    def test_accepts_plain_date(self):
        assert start_of_week(date(2024, 1, 21)) == datetime(2024, 1, 15)

    def test_crosses_month_boundary(self):
        assert start_of_week(datetime(2024, 3, 2)) == datetime(2024, 2, 26)

    def test_aware_value_gives_naive_monday(self):
        start = start_of_week(datetime(2024, 1, 17, 12, 0, tzinfo=timezone.utc))
        assert start == datetime(2024, 1, 15)
        assert start.tzinfo is None


class TestNaiveLocal:
    def test_naive_passes_through(self):
        value = datetime(2024, 1, 17, 12, 0)
        assert naive_local(value) is value

    def test_aware_converted_to_local_clock(self):
        aware = datetime(2024, 1, 17, 12, 0, tzinfo=timezone.utc)
        assert naive_local(aware) == aware.astimezone().replace(tzinfo=None)


class TestEndOfWeek:
    def test_sunday_last_millisecond(self):
        assert end_of_week(datetime(2024, 1, 17)) == datetime(2024, 1, 21, 23, 59, 59, 999000)

    def test_previous_week_start(self):
        assert previous_week_start(datetime(2024, 1, 15)) == datetime(2024, 1, 8)


class TestDaysRemaining:
    def test_monday_has_seven(self):
        assert days_remaining_in_week(datetime(2024, 1, 15, 8), datetime(2024, 1, 15)) == 7

    def test_wednesday_has_five(self):
        assert days_remaining_in_week(datetime(2024, 1, 17, 12), datetime(2024, 1, 15)) == 5

    def test_sunday_has_one(self):
        assert days_remaining_in_week(datetime(2024, 1, 21, 22), datetime(2024, 1, 15)) == 1

    def test_future_week_has_seven(self):
        assert days_remaining_in_week(datetime(2024, 1, 10), datetime(2024, 1, 15)) == 7

    def test_past_week_has_one(self):
        assert days_remaining_in_week(datetime(2024, 1, 30), datetime(2024, 1, 15)) == 1


class TestSubtractMonths:
    def test_simple(self):
        assert subtract_months(datetime(2024, 5, 10, 8), 3) == datetime(2024, 2, 10, 8)

    def test_crosses_year(self):
        assert subtract_months(datetime(2024, 1, 31), 2) == datetime(2023, 11, 30)

    def test_clamps_to_leap_day(self):
        assert subtract_months(datetime(2024, 3, 31), 1) == datetime(2024, 2, 29)
