"""
Reminder domain: периодичность напоминаний о платежах

Правила:
- DAILY: каждый день
- WEEKLY: раз в неделю в weekly_day_of_week
- MONTHLY: раз в месяц в monthly_day_of_month (1..30) либо в последний день месяца
  (monthly_use_last_day). День, которого нет в месяце, прижимается к последнему.
"""
from datetime import date, timedelta
from enum import Enum

from app.domain.recurrence import last_day_of_month


class RecurrenceType(str, Enum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class DayOfWeek(str, Enum):
    MONDAY = "MONDAY"
    TUESDAY = "TUESDAY"
    WEDNESDAY = "WEDNESDAY"
    THURSDAY = "THURSDAY"
    FRIDAY = "FRIDAY"
    SATURDAY = "SATURDAY"
    SUNDAY = "SUNDAY"

    @property
    def weekday(self) -> int:
        """Номер дня недели в терминах date.weekday() (MONDAY=0)."""
        return list(DayOfWeek).index(self)


MONTHLY_DAY_MIN = 1
MONTHLY_DAY_MAX = 30


def recurrence_error(
    recurrence_type: RecurrenceType,
    weekly_day_of_week: DayOfWeek | None,
    monthly_day_of_month: int | None,
    monthly_use_last_day: bool | None,
) -> str | None:
    """
    Проверить согласованность полей периодичности.

    Returns:
        None если всё корректно, иначе текст ошибки
    """
    if recurrence_type == RecurrenceType.WEEKLY and weekly_day_of_week is None:
        return "weekly_day_of_week is required for WEEKLY reminders"
    if recurrence_type == RecurrenceType.MONTHLY:
        if monthly_use_last_day:
            return None
        if (
            monthly_day_of_month is None
            or monthly_day_of_month < MONTHLY_DAY_MIN
            or monthly_day_of_month > MONTHLY_DAY_MAX
        ):
            return "monthly_day_of_month must be 1-30 when monthly_use_last_day is false"
    return None


def _monthly_target(year: int, month: int, day_of_month: int | None, use_last_day: bool) -> date | None:
    last = last_day_of_month(year, month)
    if use_last_day:
        return date(year, month, last)
    if day_of_month is None:
        return None
    return date(year, month, min(day_of_month, last))


def next_occurrence(
    recurrence_type: RecurrenceType,
    weekly_day_of_week: DayOfWeek | None,
    monthly_day_of_month: int | None,
    monthly_use_last_day: bool,
    window_start: date,
    window_end: date,
) -> date | None:
    """
    Первая дата срабатывания в окне [window_start, window_end] (включительно).

    Returns:
        date или None, если в окне срабатываний нет
    """
    if window_start > window_end:
        return None

    if recurrence_type == RecurrenceType.DAILY:
        return window_start

    if recurrence_type == RecurrenceType.WEEKLY:
        if weekly_day_of_week is None:
            return None
        shift = (weekly_day_of_week.weekday - window_start.weekday()) % 7
        candidate = window_start + timedelta(days=shift)
        return candidate if candidate <= window_end else None

    if recurrence_type == RecurrenceType.MONTHLY:
        year, month = window_start.year, window_start.month
        while date(year, month, 1) <= window_end:
            candidate = _monthly_target(year, month, monthly_day_of_month, monthly_use_last_day)
            if candidate is not None and window_start <= candidate <= window_end:
                return candidate
            month += 1
            if month > 12:
                year, month = year + 1, 1
        return None

    return None
