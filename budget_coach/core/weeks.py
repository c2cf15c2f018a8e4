"""Week boundary helpers.

Weeks run Monday 00:00:00.000 through Sunday 23:59:59.999 in local time.
A Sunday belongs to the week that began the preceding Monday.
"""

import calendar
from datetime import date, datetime, time, timedelta


def naive_local(value: datetime) -> datetime:
    """Convert an aware datetime to naive local time. Naive values pass through."""
    if value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)


def _as_datetime(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return naive_local(value)
    return datetime.combine(value, time.min)


def start_of_week(value: date | datetime) -> datetime:
    """Monday 00:00 of the week containing *value*."""
    d = _as_datetime(value).replace(hour=0, minute=0, second=0, microsecond=0)
    return d - timedelta(days=d.weekday())


def end_of_week(value: date | datetime) -> datetime:
    """Sunday 23:59:59.999 of the week containing *value*."""
    end = start_of_week(value) + timedelta(days=6)
    return end.replace(hour=23, minute=59, second=59, microsecond=999000)


def previous_week_start(week_start: date | datetime) -> datetime:
    return start_of_week(week_start) - timedelta(days=7)


def days_remaining_in_week(today: date | datetime, week_start: date | datetime) -> int:
    """Days left in the week counting *today* and Sunday, between 1 and 7.

    A week that has not started yet has all 7 days left; a week that is
    already over counts as 1 so callers never divide by zero.
    """
    first = start_of_week(week_start).date()
    last = first + timedelta(days=6)
    current = _as_datetime(today).date()
    if current < first:
        return 7
    if current > last:
        return 1
    return (last - current).days + 1


def subtract_months(value: datetime, months: int) -> datetime:
    """Shift *value* back by whole months, clamping the day to the month's end."""
    month_index = value.year * 12 + (value.month - 1) - months
    year, month = divmod(month_index, 12)
    month += 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)
