"""Calendar and time utilities (operation timezone)."""

import calendar
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from daily_forecast.config import settings


def local_zone() -> ZoneInfo:
    return ZoneInfo(settings.TIMEZONE)


def today_local() -> date:
    """
    Current calendar date in the operation timezone.

    "Past" and "today" are always derived from this date, never stored.
    """
    return datetime.now(local_zone()).date()


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_days(year: int, month: int) -> list[date]:
    """Every calendar day of the month, day 1 first."""
    first = date(year, month, 1)
    return [first + timedelta(days=offset) for offset in range(days_in_month(year, month))]
