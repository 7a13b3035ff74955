"""
Текущая дата/время в часовом поясе приложения (settings.TIMEZONE)
"""
import time
from datetime import date, datetime
from zoneinfo import ZoneInfo

from app.config import get_settings


def now() -> datetime:
    return datetime.now(ZoneInfo(get_settings().TIMEZONE))


def today() -> date:
    return now().date()


def now_millis() -> int:
    return time.time_ns() // 1_000_000
