"""Payout Calendar

Closing periods are calendar months in the platform timezone. Ledger
timestamps are stored as naive UTC, so period bounds are converted before
querying.
"""

import calendar
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

SATURDAY = 5


def month_end(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def add_months(year: int, month: int, months: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def previous_business_day(day: date) -> date:
    """Walk back over Saturday/Sunday"""
    while day.weekday() >= SATURDAY:
        day -= timedelta(days=1)
    return day


def scheduled_payout_date(period_end: date, offset_months: int = 1, adjust: bool = True) -> date:
    """
    Date a closed period is paid out

    End of the month offset_months after period_end, moved back to Friday
    when it lands on a weekend and adjust is set.
    """
    year, month = add_months(period_end.year, period_end.month, offset_months)
    payout_date = month_end(year, month)
    return previous_business_day(payout_date) if adjust else payout_date


def closing_month_label(period_end: date) -> str:
    return f"{period_end.year:04d}-{period_end.month:02d}"


def local_today(tz_name: str, now: Optional[datetime] = None) -> date:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(ZoneInfo(tz_name)).date()


def previous_month_period(tz_name: str, now: Optional[datetime] = None) -> tuple[date, date]:
    """(first day, last day) of the month before now, in the platform timezone"""
    today = local_today(tz_name, now)
    year, month = add_months(today.year, today.month, -1)
    return date(year, month, 1), month_end(year, month)


def month_period(year: int, month: int) -> tuple[date, date]:
    return date(year, month, 1), month_end(year, month)


def period_bounds_utc(period_start: date, period_end: date, tz_name: str) -> tuple[datetime, datetime]:
    """
    Naive-UTC [start, end) bounds covering whole local days

    The end bound is midnight after period_end, exclusive.
    """
    tz = ZoneInfo(tz_name)
    start = datetime.combine(period_start, time.min, tzinfo=tz)
    end = datetime.combine(period_end + timedelta(days=1), time.min, tzinfo=tz)
    return (
        start.astimezone(timezone.utc).replace(tzinfo=None),
        end.astimezone(timezone.utc).replace(tzinfo=None),
    )
