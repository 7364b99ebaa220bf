"""Events router module."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_engine, parse_id_list, split_list
from ...db import DatabaseError
from ...schedule import RenderContext, ScheduleEngine

router = APIRouter(tags=["events"])

@router.get("/events")
def get_events(
    time_filter: Literal['upcoming', 'past', 'ongoing', 'all'] = Query('upcoming', alias='filter'),
    categories: Optional[str] = Query(None, description="Comma-separated category ids"),
    sources: Optional[str] = Query(None, description="Comma-separated feed source slugs"),
    include_drafts: bool = Query(False, description="Also list unpublished content items"),
    engine: ScheduleEngine = Depends(get_engine)
):
    """
    Get a flat list of events from all sources.

    upcoming and ongoing events are sorted by start, past events newest first.
    """
    context = RenderContext.create(
        category_ids=parse_id_list(categories, 'categories'),
        source_slugs=split_list(sources),
        include_drafts=include_drafts,
    )
    try:
        occurrences = engine.list_events(time_filter, context)
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")

    return {
        "filter": time_filter,
        "now": context.now,
        "total": len(occurrences),
        "events": [occurrence.to_dict() for occurrence in occurrences],
    }
