"""Parser for remote iCalendar (RFC 5545) feeds."""

import hashlib
import logging
from datetime import date, datetime, timedelta
from typing import List, Optional

import requests
from icalendar import Calendar

from .base import BaseFeedParser
from ..models.occurrence import IcalOccurrence, uid_hash
from ..utils.timezone import datetime_to_local

logger = logging.getLogger(__name__)

def _is_date_only(value) -> bool:
    return isinstance(value, date) and not isinstance(value, datetime)

def _text(component, name: str) -> Optional[str]:
    value = component.get(name)
    if value is None:
        return None
    text = str(value).strip()
    return text or None

class ICalParser(BaseFeedParser):
    """
    Reads VEVENTs from an iCal feed.

    All-day events have a DATE start. Their upstream DTEND is exclusive, so
    the stored end is moved back one day to make it inclusive.
    """

    ACCEPT = 'text/calendar'

    def parse(
        self,
        response: requests.Response,
        color: Optional[str] = None,
        source_name: Optional[str] = None
    ) -> List[IcalOccurrence]:
        try:
            calendar = Calendar.from_ical(response.content)
        except ValueError as e:
            logger.error(f"Failed to parse iCal feed {response.url}: {e}")
            return []

        occurrences = []
        for component in calendar.walk('VEVENT'):
            try:
                occurrence = self._parse_event(component, color, source_name)
            except (ValueError, TypeError, AttributeError, KeyError) as e:
                logger.warning(f"Skipping unparsable VEVENT in {response.url}: {e}")
                continue
            if occurrence is not None:
                occurrences.append(occurrence)
        return occurrences

    def _parse_event(self, component, color: Optional[str], source_name: Optional[str]) -> Optional[IcalOccurrence]:
        """Convert one VEVENT. Returns None for events without a start or summary."""
        dtstart = component.get('DTSTART')
        summary = _text(component, 'SUMMARY')
        if dtstart is None or summary is None:
            return None

        start_value = dtstart.dt
        all_day = _is_date_only(start_value)

        dtend = component.get('DTEND')
        duration = component.get('DURATION')
        if dtend is not None:
            end_value = dtend.dt
        elif duration is not None:
            end_value = start_value + duration.dt
        else:
            end_value = start_value

        if all_day and _is_date_only(end_value) and end_value != start_value:
            end_value = end_value - timedelta(days=1)

        start_local = datetime_to_local(start_value)
        end_local = datetime_to_local(end_value)
        if end_local < start_local:
            end_local = start_local

        uid = _text(component, 'UID') or hashlib.md5(f"{start_local}{summary}".encode('utf-8')).hexdigest()

        return IcalOccurrence(
            id=uid_hash(uid),
            title=summary,
            start_local=start_local,
            end_local=end_local,
            all_day=all_day,
            description=_text(component, 'DESCRIPTION'),
            url=_text(component, 'URL'),
            color=color,
            uid=uid,
            source_name=source_name,
        )
