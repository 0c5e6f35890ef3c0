# askdata/nl/dates.py
import calendar
from datetime import date, timedelta
from typing import Optional, Tuple

DateRange = Tuple[date, date]  # inclusive on both ends

MAX_DAYS = 3660  # ~ten years back is as far as "last N days" reaches

MONTHS = {name.lower(): i for i, name in enumerate(calendar.month_name) if name}


def day_start(d: date) -> str:
    return f"{d.isoformat()}T00:00:00Z"

def day_end(d: date) -> str:
    return f"{d.isoformat()}T23:59:59Z"


def single_day(d: date) -> DateRange:
    return d, d

def last_n_days(today: date, n: int) -> DateRange:
    """The n days up to and including today."""
    n = min(max(n, 1), MAX_DAYS)
    return today - timedelta(days=n - 1), today

def last_week(today: date) -> DateRange:
    """The seven full days before today."""
    return today - timedelta(days=7), today - timedelta(days=1)

def this_week(today: date) -> DateRange:
    return today - timedelta(days=today.weekday()), today

def this_month(today: date) -> DateRange:
    return today.replace(day=1), today

def last_month(today: date) -> DateRange:
    end = today.replace(day=1) - timedelta(days=1)
    return end.replace(day=1), end

def month_range(month: int, year: Optional[int], today: date) -> DateRange:
    """
    Whole calendar month. Without a year, pick the most recent occurrence
    of that month that is not in the future.
    """
    if year is None:
        year = today.year if month <= today.month else today.year - 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last)
