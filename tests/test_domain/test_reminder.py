"""
Tests for reminder recurrence: проверка полей и ближайшая дата срабатывания
"""
from datetime import date

from app.domain.reminder import DayOfWeek, RecurrenceType, next_occurrence, recurrence_error


def test_weekly_requires_day_of_week():
    assert recurrence_error(RecurrenceType.WEEKLY, None, None, False) is not None
    assert recurrence_error(RecurrenceType.WEEKLY, DayOfWeek.FRIDAY, None, False) is None


def test_monthly_day_range():
    assert recurrence_error(RecurrenceType.MONTHLY, None, None, False) is not None
    assert recurrence_error(RecurrenceType.MONTHLY, None, 0, False) is not None
    assert recurrence_error(RecurrenceType.MONTHLY, None, 31, False) is not None
    assert recurrence_error(RecurrenceType.MONTHLY, None, 30, False) is None
    # последний день месяца: день не нужен
    assert recurrence_error(RecurrenceType.MONTHLY, None, None, True) is None


def test_daily_always_fires_on_window_start():
    assert next_occurrence(RecurrenceType.DAILY, None, None, False, date(2025, 10, 1), date(2025, 10, 6)) == date(2025, 10, 1)


def test_weekly_next_matching_weekday():
    # 2025-10-01: среда
    result = next_occurrence(RecurrenceType.WEEKLY, DayOfWeek.FRIDAY, None, False, date(2025, 10, 1), date(2025, 10, 6))
    assert result == date(2025, 10, 3)


def test_weekly_outside_window():
    result = next_occurrence(RecurrenceType.WEEKLY, DayOfWeek.TUESDAY, None, False, date(2025, 10, 1), date(2025, 10, 6))
    assert result is None


def test_monthly_day_in_window():
    result = next_occurrence(RecurrenceType.MONTHLY, None, 3, False, date(2025, 10, 1), date(2025, 10, 6))
    assert result == date(2025, 10, 3)


def test_monthly_day_clamped_to_short_month():
    """30 февраля -> 28 февраля"""
    result = next_occurrence(RecurrenceType.MONTHLY, None, 30, False, date(2025, 2, 25), date(2025, 3, 2))
    assert result == date(2025, 2, 28)


def test_monthly_last_day_across_year_boundary():
    result = next_occurrence(RecurrenceType.MONTHLY, None, None, True, date(2025, 12, 29), date(2026, 1, 3))
    assert result == date(2025, 12, 31)


def test_monthly_next_month():
    result = next_occurrence(RecurrenceType.MONTHLY, None, 1, False, date(2025, 10, 28), date(2025, 11, 2))
    assert result == date(2025, 11, 1)


def test_empty_window():
    assert next_occurrence(RecurrenceType.DAILY, None, None, False, date(2025, 10, 2), date(2025, 10, 1)) is None
