"""Date manipulation utilities"""

from datetime import date, timedelta
from typing import List
from dateutil.relativedelta import relativedelta


def add_months(from_date: date, months: int) -> date:
    """Add calendar months, clamping to the last day of shorter months"""
    return from_date + relativedelta(months=months)


def days_between(start: date, end: date) -> int:
    """Whole days from start to end (negative when end is earlier)"""
    return (end - start).days


def next_days_skipping_sundays(after: date, count: int) -> List[date]:
    """Next `count` dates after `after`, skipping Sundays"""
    dates = []
    current = after
    while len(dates) < count:
        current = current + timedelta(days=1)
        if current.weekday() == 6:
            continue
        dates.append(current)
    return dates


def is_strictly_increasing(dates: List[date]) -> bool:
    return all(earlier < later for earlier, later in zip(dates, dates[1:]))
