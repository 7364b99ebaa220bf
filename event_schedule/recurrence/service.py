"""Materializes recurring series into stored occurrences."""

import logging
from datetime import datetime
from typing import List, Optional, Tuple

from .manager import RecurrenceRule, parse_rule, iterate_dates
from ..models.event_date import SINGLE, MASTER
from ..store.event_dates import EventDateStore
from ..utils.timezone import parse_local, format_local

logger = logging.getLogger(__name__)

MAX_OCCURRENCES = 100

def expand_series(
    start_local: str,
    end_local: Optional[str],
    rule: RecurrenceRule,
    max_occurrences: int = MAX_OCCURRENCES
) -> List[Tuple[str, str]]:
    """
    Start/end pairs of a series, keeping the first occurrence's duration and time of day.

    Returns:
        List[Tuple[str, str]]: Naive local (start, end) pairs; empty for an invalid start
    """
    start = parse_local(start_local)
    if start is None:
        return []
    end = parse_local(end_local) if end_local else None
    duration = (end - start) if end and end >= start else None

    pairs = []
    for day in iterate_dates(rule, start.date(), max_occurrences, series=True):
        occurrence_start = datetime.combine(day, start.time())
        occurrence_end = occurrence_start + duration if duration is not None else occurrence_start
        pairs.append((format_local(occurrence_start), format_local(occurrence_end)))
    return pairs

class RecurrenceService:
    """Keeps a content item's instance rows in line with its recurrence rule."""

    def __init__(self, store: Optional[EventDateStore] = None, max_occurrences: int = MAX_OCCURRENCES):
        self.store = store or EventDateStore()
        self.max_occurrences = max_occurrences

    def regenerate_event_occurrences(self, event_id: int, rule: Optional[str] = None) -> int:
        """
        Replace the generated instances of a content item.

        Args:
            event_id: Content item id
            rule: RRULE to apply. None reads the stored rule; '' removes the recurrence.

        Returns:
            int: Number of occurrences now stored (master included), 0 on failure
        """
        master = self.store.get_by_event_id(event_id)
        if master is None:
            logger.warning(f"No occurrence to regenerate for event {event_id}")
            return 0

        if rule is None:
            rule = master.rrule or ''

        if not self.store.delete_instances(event_id):
            return 0

        parsed = parse_rule(rule)
        if parsed is None:
            saved = self.store.save_or_update_master(
                event_id, master.start_datetime, master.end_datetime, master.all_day, SINGLE, ''
            )
            return 1 if saved else 0

        occurrences = expand_series(master.start_datetime, master.end_datetime, parsed, self.max_occurrences)
        if not occurrences:
            return 0

        (first_start, first_end), rest = occurrences[0], occurrences[1:]
        master_id = self.store.save_or_update_master(
            event_id, first_start, first_end, master.all_day, MASTER, rule
        )
        if master_id is None:
            return 0

        count = 1
        for start, end in rest:
            if self.store.save_occurrence(event_id, master_id, start, end, master.all_day) is not None:
                count += 1
        logger.info(f"Generated {count} occurrences for event {event_id} from {rule}")
        return count
