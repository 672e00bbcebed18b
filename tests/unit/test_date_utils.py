"""Unit tests for calendar arithmetic"""

import pytest
from datetime import date
from budget_gateway.utils.date_utils import (
    last_day_of_month,
    clamp_dom,
    add_days,
    weekday_of,
    days_to_weekday,
    iter_months,
    add_months_clamped,
    month_window,
    parse_month,
)


def test_last_day_of_month_leap_years():
    assert last_day_of_month(2024, 2) == 29
    assert last_day_of_month(2025, 2) == 28
    assert last_day_of_month(1900, 2) == 28  # Century, not leap
    assert last_day_of_month(2000, 2) == 29  # Divisible by 400
    assert last_day_of_month(2025, 12) == 31


def test_clamp_dom():
    """Test day-of-month clamps to short months"""
    assert clamp_dom(2025, 4, 31) == date(2025, 4, 30)
    assert clamp_dom(2025, 2, 31) == date(2025, 2, 28)
    assert clamp_dom(2024, 2, 30) == date(2024, 2, 29)
    assert clamp_dom(2025, 1, 15) == date(2025, 1, 15)


def test_add_days_crosses_year():
    assert add_days(date(2025, 12, 30), 3) == date(2026, 1, 2)
    assert add_days(date(2025, 3, 1), -1) == date(2025, 2, 28)


def test_add_days_stops_at_calendar_bounds():
    assert add_days(date(9999, 12, 28), 6) == date.max
    assert add_days(date(1, 1, 3), -5) == date.min


def test_weekday_of_monday_is_one():
    assert weekday_of(date(2025, 1, 6)) == 1  # Monday
    assert weekday_of(date(2025, 1, 12)) == 7  # Sunday


def test_days_to_weekday():
    """Test distance forward to the next matching weekday (inclusive)"""
    wednesday = date(2025, 1, 1)
    assert days_to_weekday(wednesday, 3) == 0
    assert days_to_weekday(wednesday, 1) == 5  # 2025-01-06
    assert days_to_weekday(wednesday, 2) == 6  # 2025-01-07


def test_iter_months_spans_year_boundary():
    months = list(iter_months(date(2024, 11, 15), date(2025, 2, 1)))
    assert months == [(2024, 11), (2024, 12), (2025, 1), (2025, 2)]


def test_iter_months_single_month():
    assert list(iter_months(date(2025, 3, 1), date(2025, 3, 31))) == [(2025, 3)]


def test_add_months_clamped():
    assert add_months_clamped(2025, 1, 1, 31) == date(2025, 2, 28)
    assert add_months_clamped(2025, 12, 1, 15) == date(2026, 1, 15)
    assert add_months_clamped(2024, 1, 1, 30) == date(2024, 2, 29)


def test_month_window():
    assert month_window(2024, 2) == (date(2024, 2, 1), date(2024, 2, 29))


def test_parse_month():
    assert parse_month("2025-11") == (2025, 11)
    with pytest.raises(ValueError):
        parse_month("2025-13")
