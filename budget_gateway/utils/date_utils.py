"""Calendar-date arithmetic for recurrence expansion.

All values are plain ``datetime.date`` objects: no time of day, no timezone.
Zoned clocks are converted once, at the edge, by ``local_today``.
"""

import calendar
from datetime import date, datetime, timedelta
from typing import Iterator, Tuple
from zoneinfo import ZoneInfo


def last_day_of_month(year: int, month: int) -> int:
    """Number of days in the given month (leap-year aware)"""
    return calendar.monthrange(year, month)[1]


def clamp_dom(year: int, month: int, dom: int) -> date:
    """Date for day-of-month ``dom`` in the given month, clamped to the month end.

    Example:
        clamp_dom(2025, 4, 31) -> 2025-04-30
        clamp_dom(2024, 2, 31) -> 2024-02-29
    """
    return date(year, month, min(dom, last_day_of_month(year, month)))


def add_days(d: date, n: int) -> date:
    """Shift by ``n`` days, stopping at date.min / date.max instead of overflowing"""
    if n >= 0:
        return d + timedelta(days=min(n, (date.max - d).days))
    return d - timedelta(days=min(-n, (d - date.min).days))


def weekday_of(d: date) -> int:
    """ISO weekday, Monday=1 .. Sunday=7"""
    return d.isoweekday()


def days_to_weekday(d: date, target: int) -> int:
    """Days from d forward to the next ISO weekday ``target`` (0 if d is one)"""
    return (target - weekday_of(d)) % 7


def iter_months(start: date, end: date) -> Iterator[Tuple[int, int]]:
    """Yield (year, month) for every month overlapping [start, end]"""
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        yield year, month
        month += 1
        if month > 12:
            year, month = year + 1, 1


def add_months_clamped(year: int, month: int, n: int, dom: int) -> date:
    """Day ``dom`` of the month ``n`` months after (year, month), clamped"""
    index = month - 1 + n
    return clamp_dom(year + index // 12, index % 12 + 1, dom)


def month_window(year: int, month: int) -> Tuple[date, date]:
    """First and last calendar day of a month"""
    return date(year, month, 1), date(year, month, last_day_of_month(year, month))


def parse_month(month_str: str) -> Tuple[int, int]:
    """Parse a ``YYYY-MM`` string into (year, month)"""
    parsed = datetime.strptime(month_str, "%Y-%m")
    return parsed.year, parsed.month


def local_today(tz_name: str) -> date:
    """Current calendar date in the given IANA timezone"""
    return datetime.now(ZoneInfo(tz_name)).date()
