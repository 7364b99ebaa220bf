"""ISO week and calendar month arithmetic."""

import calendar
import re
from datetime import date, timedelta
from typing import Optional, Tuple, Union

ISO_WEEK_PATTERN = re.compile(r'^(\d{4})-W(\d{2})$')
MONTH_PATTERN = re.compile(r'^(\d{4})-(\d{2})$')
MIN_YEAR = 1900
MAX_YEAR = 2100

def _as_date(value: Union[date, str]) -> date:
    return value if isinstance(value, date) else date.fromisoformat(value[:10])

def format_iso_week(year: int, week: int) -> str:
    return f"{year:04d}-W{week:02d}"

def parse_iso_week(value: str) -> Optional[Tuple[int, int]]:
    """
    Parse 'YYYY-Www' into (year, week).

    Returns:
        Optional[Tuple[int, int]]: (year, week), or None for malformed input,
        a year outside 1900-2100 or a week outside 1-53
    """
    match = ISO_WEEK_PATTERN.match((value or '').strip())
    if not match:
        return None
    year, week = int(match.group(1)), int(match.group(2))
    if not MIN_YEAR <= year <= MAX_YEAR or not 1 <= week <= 53:
        return None
    return year, week

def current_iso_week(today: Union[date, str]) -> Tuple[int, int]:
    iso = _as_date(today).isocalendar()
    return iso[0], iso[1]

def week_boundaries(year: int, week: int, start_of_week: int = 1) -> Tuple[date, date]:
    """
    First and last calendar day of an ISO week.

    The week starts on the ISO Monday; with start_of_week=0 it starts one
    day earlier, on the Sunday. Week 53 of a year that only has 52 weeks
    rolls over into week 1 of the next year.

    Returns:
        Tuple[date, date]: Inclusive (first_day, last_day), always 7 days apart minus one
    """
    monday = date.fromisocalendar(year, 1, 1) + timedelta(weeks=week - 1)
    first_day = monday - timedelta(days=1) if start_of_week == 0 else monday
    return first_day, first_day + timedelta(days=6)

def offset_week(year: int, week: int, offset: int) -> Tuple[int, int]:
    """Move by whole ISO weeks, rolling over year boundaries at week 52/53."""
    monday = date.fromisocalendar(year, 1, 1) + timedelta(weeks=week - 1 + offset)
    iso = monday.isocalendar()
    return iso[0], iso[1]

def parse_month(value: str) -> Optional[Tuple[int, int]]:
    """Parse 'YYYY-MM' into (year, month), or None."""
    match = MONTH_PATTERN.match((value or '').strip())
    if not match:
        return None
    year, month = int(match.group(1)), int(match.group(2))
    if not MIN_YEAR <= year <= MAX_YEAR or not 1 <= month <= 12:
        return None
    return year, month

def month_boundaries(year: int, month: int) -> Tuple[date, date]:
    days = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, days)

def offset_month(year: int, month: int, offset: int) -> Tuple[int, int]:
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1
