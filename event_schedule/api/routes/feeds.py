"""Federated JSON feed routes.

Both routes return {"meta": {...}, "events": [...]}, the shape the
federated feed parser reads.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_engine, get_public_feed_builder, get_content_store, split_list, check_date
from ...db import DatabaseError
from ...schedule import ScheduleEngine, PublicFeedBuilder
from ...schedule.publishing import (
    DEFAULT_PER_PAGE,
    MAX_PER_PAGE,
    build_feed,
    paginate,
    public_event,
    site_host,
)
from ...store import ContentStore

router = APIRouter(tags=["feeds"])

DATE_PATTERN = r'^\d{4}-\d{2}-\d{2}$'

@router.get("/public/events")
def get_public_events(
    start_date: Optional[str] = Query(None, pattern=DATE_PATTERN, description="Events ending on or after this date"),
    end_date: Optional[str] = Query(None, pattern=DATE_PATTERN, description="Events starting on or before this date"),
    categories: Optional[str] = Query(None, description="Comma-separated category slugs"),
    per_page: int = Query(DEFAULT_PER_PAGE, ge=1, le=MAX_PER_PAGE),
    page: int = Query(1, ge=1),
    builder: PublicFeedBuilder = Depends(get_public_feed_builder),
    content_store: ContentStore = Depends(get_content_store)
):
    """Get this site's own events. Standalone events are left out when filtering by category."""
    check_date(start_date, 'start_date')
    check_date(end_date, 'end_date')
    try:
        category_slugs = split_list(categories)
        category_ids = content_store.get_category_ids(category_slugs) if category_slugs else []
        if category_slugs and not category_ids:
            # Only unknown categories were requested
            return build_feed([], 0, page, per_page)
        return builder.build(start_date, end_date, category_ids, page, per_page)
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")

@router.get("/sources/{slug}/events")
def get_source_events(
    slug: str,
    start_date: Optional[str] = Query(None, pattern=DATE_PATTERN),
    end_date: Optional[str] = Query(None, pattern=DATE_PATTERN),
    per_page: int = Query(DEFAULT_PER_PAGE, ge=1, le=MAX_PER_PAGE),
    page: int = Query(1, ge=1),
    engine: ScheduleEngine = Depends(get_engine)
):
    """Get the events of one feed source merged with this site's local events."""
    check_date(start_date, 'start_date')
    check_date(end_date, 'end_date')
    range_start = f"{start_date} 00:00:00" if start_date else None
    range_end = f"{end_date} 23:59:59" if end_date else None
    try:
        source, occurrences = engine.source_occurrences(slug, range_start, range_end)
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")

    if source is None:
        raise HTTPException(status_code=404, detail="Source not found")
    if not source.enabled:
        raise HTTPException(status_code=403, detail="This source is disabled")

    host = site_host()
    events = [public_event(occurrence, host) for occurrence in paginate(occurrences, page, per_page)]
    return build_feed(events, len(occurrences), page, per_page)
