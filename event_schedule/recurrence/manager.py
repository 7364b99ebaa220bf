"""Conversion between recurrence descriptions and RRULE strings.

A description is the mapping a form produces:
    {'frequency': 'WEEKLY', 'interval': 1, 'count': 5, 'until': '2025-06-30'}

BIWEEKLY is accepted in descriptions only and is written as
FREQ=WEEKLY;INTERVAL=2. COUNT and UNTIL are never both written; COUNT wins.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional

from dateutil.relativedelta import relativedelta

logger = logging.getLogger(__name__)

DAILY = 'DAILY'
WEEKLY = 'WEEKLY'
BIWEEKLY = 'BIWEEKLY'
MONTHLY = 'MONTHLY'
YEARLY = 'YEARLY'

DEFAULT_MAX_INSTANCES = 10

_UNTIL_PATTERN = re.compile(r'^(\d{4})(\d{2})(\d{2})(?:T\d{6}Z?)?$')

def _positive_int(value: Any) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number > 0 else None

def format_until_date(value: Any) -> str:
    """
    Format a 'YYYY-MM-DD' date for an UNTIL clause.

    Returns:
        str: 'YYYYMMDD', or an empty string unless exactly 8 digits remain
        after removing hyphens
    """
    if not value or not isinstance(value, str):
        return ''
    formatted = value.replace('-', '')
    if not re.fullmatch(r'\d{8}', formatted):
        return ''
    return formatted

def _parse_until(value: str) -> Optional[date]:
    match = _UNTIL_PATTERN.match(value.strip())
    if not match:
        return None
    try:
        return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    except ValueError:
        return None

@dataclass
class RecurrenceRule:
    """
    A parsed recurrence rule.

    Fields:
        frequency: 'DAILY', 'WEEKLY', 'MONTHLY', 'YEARLY' or another RRULE frequency
        interval: Step multiplier, at least 1
        count: Total number of occurrences (takes precedence over until)
        until: Last date an occurrence may start on
    """
    frequency: str
    interval: int = 1
    count: Optional[int] = None
    until: Optional[date] = None

    @classmethod
    def from_description(cls, description: Optional[Mapping[str, Any]]) -> Optional['RecurrenceRule']:
        """Build a rule from a form description. None when no frequency is set."""
        if not description or not description.get('frequency'):
            return None
        frequency = str(description['frequency']).upper()
        interval = _positive_int(description.get('interval')) or 1
        if frequency == BIWEEKLY:
            frequency, interval = WEEKLY, 2

        count = _positive_int(description.get('count'))
        until = None
        if count is None:
            formatted = format_until_date(description.get('until'))
            until = _parse_until(formatted) if formatted else None
        return cls(frequency=frequency, interval=interval, count=count, until=until)

    def to_description(self) -> Dict[str, Any]:
        frequency = self.frequency
        interval = self.interval
        if frequency == WEEKLY and interval == 2:
            frequency, interval = BIWEEKLY, 1
        return {
            'frequency': frequency,
            'interval': interval,
            'count': self.count,
            'until': self.until.isoformat() if self.until else None,
        }

    def to_rule(self) -> str:
        parts = [f"FREQ={self.frequency}"]
        if self.interval > 1:
            parts.append(f"INTERVAL={self.interval}")
        if self.count:
            parts.append(f"COUNT={self.count}")
        elif self.until:
            parts.append(f"UNTIL={self.until.strftime('%Y%m%d')}")
        return ';'.join(parts)

    def offset(self, start: date, steps: int, series: bool = False) -> Optional[date]:
        """
        Start date a number of steps after start, or None if the frequency cannot be stepped.

        Month and year steps are only taken for stored series. They count
        from start, so a series on Jan 31 runs Feb 28, Mar 31.
        """
        if self.frequency == DAILY:
            return start + timedelta(days=self.interval * steps)
        if self.frequency == WEEKLY:
            return start + timedelta(weeks=self.interval * steps)
        if series and self.frequency == MONTHLY:
            return start + relativedelta(months=self.interval * steps)
        if series and self.frequency == YEARLY:
            return start + relativedelta(years=self.interval * steps)
        return None

def to_rule(description: Optional[Mapping[str, Any]]) -> str:
    """
    Convert a recurrence description to an RRULE string.

    Returns:
        str: e.g. 'FREQ=WEEKLY;INTERVAL=2;COUNT=5', or '' without a frequency
    """
    if not description or not description.get('frequency'):
        return ''
    frequency = str(description['frequency']).upper()

    if frequency == BIWEEKLY:
        parts = ['FREQ=WEEKLY', 'INTERVAL=2']
    else:
        parts = [f"FREQ={frequency}"]
        interval = _positive_int(description.get('interval'))
        if interval and interval > 1:
            parts.append(f"INTERVAL={interval}")

    count = _positive_int(description.get('count'))
    if count:
        parts.append(f"COUNT={count}")
    elif description.get('until'):
        until = format_until_date(description.get('until'))
        if until:
            parts.append(f"UNTIL={until}")

    return ';'.join(parts)

def parse_rule(rule: Optional[str]) -> Optional[RecurrenceRule]:
    """
    Parse an RRULE string. Unknown or malformed parts are ignored.

    Returns:
        Optional[RecurrenceRule]: The rule, or None if it has no FREQ
    """
    if not rule:
        return None
    values = {}
    for part in rule.strip().removeprefix('RRULE:').split(';'):
        if '=' not in part:
            continue
        key, value = part.split('=', 1)
        values[key.strip().upper()] = value.strip()

    frequency = values.get('FREQ', '').upper()
    if not frequency:
        return None
    count = _positive_int(values.get('COUNT'))
    until = _parse_until(values['UNTIL']) if 'UNTIL' in values and count is None else None
    return RecurrenceRule(
        frequency=frequency,
        interval=_positive_int(values.get('INTERVAL')) or 1,
        count=count,
        until=until,
    )

def iterate_dates(
    rule: RecurrenceRule,
    start: date,
    limit: int,
    exception_dates: Iterable[date] = (),
    series: bool = False
) -> List[date]:
    """
    Step a rule forward from start.

    Stops at the first of: count reached, until passed, limit results, or a
    frequency that cannot be stepped (after the start date). Exception
    dates are left out of the result but still count towards count.
    MONTHLY and YEARLY are stepped only when series is set.
    """
    exceptions = set(exception_dates)
    results: List[date] = []
    generated = 0
    current: Optional[date] = start

    while current is not None and len(results) < limit:
        if rule.count is not None and generated >= rule.count:
            break
        if rule.until is not None and current > rule.until:
            break
        generated += 1
        if current not in exceptions:
            results.append(current)
        current = rule.offset(start, generated, series)
        if current is None:
            logger.warning(f"Cannot step recurrence frequency {rule.frequency}; stopping after {start}")
    return results

def generate_occurrences(
    description: Optional[Mapping[str, Any]],
    start_date: str,
    max_instances: int = DEFAULT_MAX_INSTANCES,
    exception_dates: Optional[Iterable[str]] = None
) -> List[str]:
    """
    List the dates a described recurrence falls on.

    Args:
        description: Recurrence description (see module docstring)
        start_date: First occurrence, 'Y-m-d'
        max_instances: Upper bound on returned dates
        exception_dates: 'Y-m-d' dates to skip

    Returns:
        List[str]: 'Y-m-d' dates, starting with start_date unless it is an
        exception. Empty without a frequency or with an invalid start date.
    """
    rule = RecurrenceRule.from_description(description)
    if rule is None:
        return []
    try:
        start = date.fromisoformat(str(start_date)[:10])
    except ValueError:
        logger.warning(f"Invalid recurrence start date {start_date!r}")
        return []

    exceptions = []
    for value in exception_dates or []:
        try:
            exceptions.append(date.fromisoformat(str(value)[:10]))
        except ValueError:
            logger.warning(f"Ignoring invalid exception date {value!r}")

    return [d.isoformat() for d in iterate_dates(rule, start, max(0, int(max_instances)), exceptions)]
