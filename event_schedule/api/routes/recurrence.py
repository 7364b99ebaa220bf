"""Recurrence preview route for form collaborators."""

from typing import Literal, Optional

from fastapi import APIRouter, Query

from ..dependencies import split_list
from ...recurrence import to_rule, generate_occurrences, MAX_OCCURRENCES

router = APIRouter(prefix="/recurrence", tags=["recurrence"])

@router.get("/preview")
async def preview_recurrence(
    start_date: str = Query(..., pattern=r'^\d{4}-\d{2}-\d{2}$'),
    frequency: Literal['DAILY', 'WEEKLY', 'BIWEEKLY'] = Query(...),
    interval: int = Query(1, ge=1),
    count: Optional[int] = Query(None, ge=1),
    until: Optional[str] = Query(None, pattern=r'^\d{4}-\d{2}-\d{2}$'),
    max_instances: int = Query(10, ge=1, le=MAX_OCCURRENCES),
    exception_dates: Optional[str] = Query(None, description="Comma-separated Y-m-d dates to skip")
):
    """Get the RRULE for a recurrence description and the dates it produces."""
    description = {
        'frequency': frequency,
        'interval': interval,
        'count': count,
        'until': until,
    }
    return {
        'rule': to_rule(description),
        'occurrences': generate_occurrences(
            description, start_date, max_instances, split_list(exception_dates)
        ),
    }
