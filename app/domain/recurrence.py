"""
Calendar helpers shared by statistics, advice and reminders.

Uses date only (no timezone).
"""
import calendar
from datetime import date


def last_day_of_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def add_months(d: date, n: int) -> date:
    month = d.month - 1 + n
    year = d.year + month // 12
    month = month % 12 + 1
    last = last_day_of_month(year, month)
    day = min(d.day, last)
    return date(year, month, day)


def month_key(d: date) -> str:
    """"YYYY-MM" ключ месяца."""
    return f"{d.year:04d}-{d.month:02d}"


def first_day_of_month(d: date) -> date:
    return d.replace(day=1)
