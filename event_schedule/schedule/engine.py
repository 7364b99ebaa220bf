"""Merges local, standalone and feed occurrences into lists and day grids."""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .context import RenderContext, SUNDAY
from .feed_manager import FeedManager
from .weeks import (
    format_iso_week,
    current_iso_week,
    week_boundaries,
    offset_week,
    month_boundaries,
    offset_month,
)
from ..models.event_date import EventDateRecord
from ..models.occurrence import (
    Occurrence,
    LocalOccurrence,
    StandaloneOccurrence,
    FeedOccurrence,
    local_occurrence,
    standalone_occurrence,
)
from ..query.date_range import DateRangeQuery, ASC, DESC
from ..store.content import ContentStore
from ..store.event_dates import EventDateStore
from ..utils.timezone import local_date, local_time, next_date

logger = logging.getLogger(__name__)

UPCOMING = 'upcoming'
PAST = 'past'
ONGOING = 'ongoing'
ALL = 'all'
TIME_FILTERS = (UPCOMING, PAST, ONGOING, ALL)

def time_filter_query(time_filter: str, now: str) -> DateRangeQuery:
    """
    Date range selected by a list-mode time filter.

    Raises:
        ValueError: For an unknown filter
    """
    if time_filter == UPCOMING:
        return DateRangeQuery(start_after=now)
    if time_filter == PAST:
        return DateRangeQuery(end_before=now)
    if time_filter == ONGOING:
        return DateRangeQuery(start_before=now, end_after=now)
    if time_filter == ALL:
        return DateRangeQuery()
    raise ValueError(f"Unknown time filter: {time_filter!r}")

def sort_occurrences(occurrences: List[Occurrence], descending: bool = False) -> List[Occurrence]:
    """Stable sort by start; same-instant occurrences keep their merge order."""
    return sorted(occurrences, key=lambda o: o.start_local, reverse=descending)

def _day_entry(occurrence: Occurrence, day: str) -> Dict[str, Any]:
    first_day = local_date(occurrence.start_local)
    last_day = local_date(occurrence.end_local)
    entry = occurrence.to_dict()
    entry.update({
        'is_first_day': day == first_day,
        'is_last_day': day == last_day,
        'start_time': None if occurrence.all_day else local_time(occurrence.start_local),
        'end_time': None if occurrence.all_day else local_time(occurrence.end_local),
    })
    return entry

def bucket_by_day(occurrences: Sequence[Occurrence], first_day: str, last_day: str) -> Dict[str, List[Dict[str, Any]]]:
    """
    Place each occurrence in every day it spans, clipped to [first_day, last_day].

    Occurrences should already be sorted; each day keeps that order.
    """
    buckets: Dict[str, List[Dict[str, Any]]] = {}
    day = first_day
    while day and day <= last_day:
        buckets[day] = []
        day = next_date(day)

    for occurrence in occurrences:
        day = max(local_date(occurrence.start_local), first_day)
        end_day = min(local_date(occurrence.end_local), last_day)
        while day and day <= end_day:
            buckets[day].append(_day_entry(occurrence, day))
            day = next_date(day)
    return buckets

def _day_info(day: str, events: List[Dict[str, Any]], today: str) -> Dict[str, Any]:
    parsed = date.fromisoformat(day)
    return {
        'date': day,
        'weekday': parsed.strftime('%a'),
        'day_num': parsed.day,
        'month_name': parsed.strftime('%B'),
        'events': events,
        'is_today': day == today,
    }

class ScheduleEngine:
    """
    Builds schedules from the local store and remote feeds.

    Without source slugs in the context, a schedule holds every local and
    standalone event plus the feeds of every enabled feed source. With
    source slugs, it holds only what those sources select: their remote
    feeds, and local and standalone events of their 'categories' data
    sources.
    """

    def __init__(
        self,
        event_store: Optional[EventDateStore] = None,
        content_store: Optional[ContentStore] = None,
        feed_manager: Optional[FeedManager] = None
    ):
        self.event_store = event_store or EventDateStore()
        self.content_store = content_store or ContentStore()
        self.feed_manager = feed_manager or FeedManager()

    # Collection

    def collect(
        self,
        query: DateRangeQuery,
        context: RenderContext,
        expand_series: bool = True,
        direction: str = ASC
    ) -> List[Occurrence]:
        """
        Gather occurrences matching a range from every source.

        Args:
            query: Range every occurrence must match
            context: Request options
            expand_series: Include every matching instance of a series instead of
                only the first one per content item
            direction: Order in which the first matching instance is picked

        Returns:
            List[Occurrence]: Local, then standalone, then feed occurrences, unsorted
        """
        sources = self.feed_manager.get_sources(context.source_slugs)

        if context.source_slugs:
            category_ids = self.feed_manager.category_ids_for(sources)
            include_local = bool(category_ids)
        else:
            category_ids = list(context.category_ids)
            include_local = True

        local: List[Occurrence] = []
        standalone: List[Occurrence] = []
        if include_local:
            local = self._local_occurrences(query, category_ids, context, expand_series, direction)
            standalone = self._standalone_occurrences(query, category_ids, direction)

        feeds = self._feed_occurrences(query, sources)
        logger.info(
            f"Collected {len(local)} local, {len(standalone)} standalone and {len(feeds)} feed occurrences"
        )
        return local + standalone + feeds

    def _local_occurrences(
        self,
        query: DateRangeQuery,
        category_ids: List[int],
        context: RenderContext,
        expand_series: bool,
        direction: str
    ) -> List[Occurrence]:
        item_ids = self.content_store.find_ids_in_range(query, category_ids or None, context.statuses, direction)
        items = self.content_store.get_items(item_ids)

        occurrences = []
        processed = set()
        for item_id in item_ids:
            # A series joins once per instance; expand each item only once
            if item_id in processed or item_id not in items:
                continue
            processed.add(item_id)

            records = self._records_for_item(item_id)
            matching = [r for r in records if query.matches(r.start_datetime, r.effective_end())]
            if not matching:
                continue
            if not expand_series:
                matching.sort(key=lambda r: r.start_datetime, reverse=(direction == DESC))
                matching = matching[:1]

            occurrences.extend(local_occurrence(items[item_id], record) for record in matching)
        return occurrences

    def _records_for_item(self, item_id: int) -> List[EventDateRecord]:
        """Own occurrences (all instances) followed by occurrences the item is linked to."""
        records = []
        seen = set()
        for record in self.event_store.get_all_by_event_id(item_id) + self.event_store.get_linked_for_post(item_id):
            if record.id not in seen:
                seen.add(record.id)
                records.append(record)
        return records

    def _standalone_occurrences(
        self,
        query: DateRangeQuery,
        category_ids: List[int],
        direction: str
    ) -> List[Occurrence]:
        records = self.event_store.get_standalone(query, category_ids or None, direction)
        return [standalone_occurrence(record) for record in records]

    def _feed_occurrences(self, query: DateRangeQuery, sources) -> List[Occurrence]:
        tasks = self.feed_manager.collect_tasks(sources)
        if not tasks:
            return []
        range_start, range_end = query.bounds()
        fetched = self.feed_manager.fetch(tasks, range_start, range_end)
        return [o for o in fetched if query.matches(o.start_local, o.end_local)]

    # List mode

    def list_events(self, time_filter: str, context: RenderContext) -> List[Occurrence]:
        """
        Flat list of occurrences for a time filter.

        upcoming: start >= now, past: end < now (newest first),
        ongoing: start <= now <= end, all: no restriction.

        Raises:
            ValueError: For an unknown time filter
        """
        query = time_filter_query(time_filter, context.now)
        descending = time_filter == PAST
        occurrences = self.collect(query, context, expand_series=False, direction=DESC if descending else ASC)
        return sort_occurrences(occurrences, descending=descending)

    # Grid mode

    def _grid_days(self, first_day: date, last_day: date, context: RenderContext) -> List[Dict[str, Any]]:
        first, last = first_day.isoformat(), last_day.isoformat()
        query = DateRangeQuery.overlapping(f"{first} 00:00:00", f"{last} 23:59:59")
        occurrences = sort_occurrences(self.collect(query, context, expand_series=True))
        buckets = bucket_by_day(occurrences, first, last)
        return [_day_info(day, events, context.today) for day, events in buckets.items()]

    def week_schedule(self, year: int, week: int, context: RenderContext) -> Dict[str, Any]:
        """
        Seven-day grid for an ISO week.

        Returns:
            Dict[str, Any]: Week metadata, 7 day dicts with their events, and
            prev/next/current week navigation
        """
        first_day, last_day = week_boundaries(year, week, context.start_of_week)
        days = self._grid_days(first_day, last_day, context)

        prev_year, prev_week = offset_week(year, week, -1)
        next_year, next_week = offset_week(year, week, 1)
        current_year, current_week = current_iso_week(context.today)
        return {
            'year': year,
            'week': week,
            'iso_week': format_iso_week(year, week),
            'start_of_week': context.start_of_week,
            'start_date': first_day.isoformat(),
            'end_date': last_day.isoformat(),
            'days': days,
            'navigation': {
                'prev': format_iso_week(prev_year, prev_week),
                'next': format_iso_week(next_year, next_week),
                'current': format_iso_week(current_year, current_week),
            },
        }

    def month_schedule(self, year: int, month: int, context: RenderContext) -> Dict[str, Any]:
        """
        Month grid with blank cells to align the first and last week rows.

        Raises:
            ValueError: For an invalid month
        """
        first_day, last_day = month_boundaries(year, month)
        days = self._grid_days(first_day, last_day, context)

        if context.start_of_week == SUNDAY:
            leading_blanks = (first_day.weekday() + 1) % 7
        else:
            leading_blanks = first_day.weekday()
        trailing_blanks = (7 - (leading_blanks + len(days)) % 7) % 7

        prev_year, prev_month = offset_month(year, month, -1)
        next_year, next_month = offset_month(year, month, 1)
        today = datetime.strptime(context.today, '%Y-%m-%d')
        return {
            'year': year,
            'month': month,
            'month_name': first_day.strftime('%B'),
            'start_of_week': context.start_of_week,
            'start_date': first_day.isoformat(),
            'end_date': last_day.isoformat(),
            'leading_blanks': leading_blanks,
            'trailing_blanks': trailing_blanks,
            'days': days,
            'navigation': {
                'prev': f"{prev_year:04d}-{prev_month:02d}",
                'next': f"{next_year:04d}-{next_month:02d}",
                'current': f"{today.year:04d}-{today.month:02d}",
            },
        }

    # Feed sources

    def source_occurrences(
        self,
        slug: str,
        range_start: Optional[str],
        range_end: Optional[str]
    ) -> Tuple[Optional[Any], List[Occurrence]]:
        """
        Occurrences published for one feed source: its remote feeds plus all local events.

        Returns:
            Tuple: (source config or None if unknown, sorted occurrences). Disabled
            sources are returned with an empty list and are not fetched.
        """
        source = self.feed_manager.repository.get_by_slug(slug)
        if source is None or not source.enabled:
            return source, []

        if range_start is not None and range_end is not None:
            query = DateRangeQuery.overlapping(range_start, range_end)
        else:
            query = DateRangeQuery(end_after=range_start, start_before=range_end)

        context = RenderContext.create()
        local = self._local_occurrences(query, [], context, expand_series=True, direction=ASC)
        standalone = self._standalone_occurrences(query, [], ASC)
        feeds = self._feed_occurrences(query, [source])
        return source, sort_occurrences(local + standalone + feeds)

def occurrence_label(occurrence: Occurrence) -> str:
    """Short provenance label for plain-text output."""
    if isinstance(occurrence, LocalOccurrence):
        return 'local'
    if isinstance(occurrence, StandaloneOccurrence):
        return 'standalone'
    if isinstance(occurrence, FeedOccurrence):
        return occurrence.source_name or occurrence.source_kind.value
    raise TypeError(f"Unsupported occurrence type: {type(occurrence).__name__}")
