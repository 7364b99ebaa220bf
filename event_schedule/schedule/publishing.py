"""Builds this site's federated JSON feed.

The output has exactly the shape FederatedApiParser reads, so peer sites
running this service can subscribe to each other.
"""

from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlparse

from ..config.settings import get_site_name, get_site_url
from ..models.occurrence import (
    Occurrence,
    LocalOccurrence,
    StandaloneOccurrence,
    FeedOccurrence,
    local_occurrence,
    standalone_occurrence,
)
from ..query.date_range import DateRangeQuery, ASC
from ..store.content import ContentStore
from ..store.event_dates import EventDateStore
from ..utils.timezone import local_to_iso8601, local_time_full

DEFAULT_PER_PAGE = 50
MAX_PER_PAGE = 500

def site_host() -> str:
    return urlparse(get_site_url()).hostname or 'localhost'

def is_all_day(all_day: bool, start_local: str, end_local: Optional[str]) -> bool:
    """All-day flag, also set for events running from midnight to midnight."""
    if all_day:
        return True
    end_time = local_time_full(end_local) if end_local else '00:00:00'
    return local_time_full(start_local) == '00:00:00' and end_time == '00:00:00'

def public_event(occurrence: Occurrence, host: str) -> Dict[str, Any]:
    """
    Convert an occurrence to a published feed entry.

    Raises:
        TypeError: For an unsupported occurrence type
    """
    if isinstance(occurrence, LocalOccurrence):
        uid = f"fair_event_{occurrence.id}_{occurrence.occurrence_id}@{host}"
    elif isinstance(occurrence, StandaloneOccurrence):
        uid = f"standalone_{occurrence.id}@{host}"
    elif isinstance(occurrence, FeedOccurrence):
        uid = occurrence.uid
    else:
        raise TypeError(f"Unsupported occurrence type: {type(occurrence).__name__}")

    return {
        'uid': uid,
        'title': occurrence.title,
        'description': occurrence.description or '',
        'start': local_to_iso8601(occurrence.start_local),
        'end': local_to_iso8601(occurrence.end_local),
        'all_day': is_all_day(occurrence.all_day, occurrence.start_local, occurrence.end_local),
        'url': occurrence.url or '',
    }

def date_window(start_date: Optional[str], end_date: Optional[str]) -> DateRangeQuery:
    """Occurrences ending on or after start_date and starting on or before end_date (both 'Y-m-d')."""
    return DateRangeQuery(
        end_after=f"{start_date} 00:00:00" if start_date else None,
        start_before=f"{end_date} 23:59:59" if end_date else None,
    )

def paginate(items: List[Any], page: int, per_page: int) -> List[Any]:
    offset = (page - 1) * per_page
    return items[offset:offset + per_page]

def build_feed(events: List[Dict[str, Any]], total: int, page: int, per_page: int) -> Dict[str, Any]:
    return {
        'meta': {
            'site_name': get_site_name(),
            'site_url': get_site_url(),
            'total': total,
            'page': page,
            'per_page': per_page,
        },
        'events': events,
    }

class PublicFeedBuilder:
    """Collects this site's own occurrences for the public feed."""

    def __init__(
        self,
        content_store: Optional[ContentStore] = None,
        event_store: Optional[EventDateStore] = None
    ):
        self.content_store = content_store or ContentStore()
        self.event_store = event_store or EventDateStore()

    def occurrences(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        category_ids: Optional[Iterable[int]] = None
    ) -> List[Occurrence]:
        """
        Every published local occurrence in the window, plus standalone events.

        Standalone events carry no content categories, so they are left out
        when filtering by category.
        """
        query = date_window(start_date, end_date)
        category_ids = list(category_ids or [])

        occurrences: List[Occurrence] = []
        for item, record in self.content_store.find_occurrences(query, category_ids or None):
            occurrences.append(local_occurrence(item, record))

        if not category_ids:
            occurrences.extend(
                standalone_occurrence(record)
                for record in self.event_store.get_standalone(query, None, ASC)
            )

        return sorted(occurrences, key=lambda o: o.start_local)

    def build(
        self,
        start_date: Optional[str] = None,
        end_date: Optional[str] = None,
        category_ids: Optional[Iterable[int]] = None,
        page: int = 1,
        per_page: int = DEFAULT_PER_PAGE
    ) -> Dict[str, Any]:
        occurrences = self.occurrences(start_date, end_date, category_ids)
        host = site_host()
        events = [public_event(o, host) for o in paginate(occurrences, page, per_page)]
        return build_feed(events, len(occurrences), page, per_page)
