"""Week and month schedule routes."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..dependencies import get_engine, parse_id_list, split_list
from ...db import DatabaseError
from ...schedule import (
    RenderContext,
    ScheduleEngine,
    parse_iso_week,
    current_iso_week,
    parse_month,
)

router = APIRouter(prefix="/schedule", tags=["schedule"])

def _context(categories: Optional[str], sources: Optional[str], start_of_week: int) -> RenderContext:
    return RenderContext.create(
        category_ids=parse_id_list(categories, 'categories'),
        source_slugs=split_list(sources),
        start_of_week=start_of_week,
    )

@router.get("/week")
def get_week(
    week: Optional[str] = Query(None, description="ISO week, e.g. 2025-W11. Defaults to the current week"),
    start_of_week: int = Query(1, ge=0, le=1, description="0 for Sunday, 1 for Monday"),
    categories: Optional[str] = Query(None, description="Comma-separated category ids"),
    sources: Optional[str] = Query(None, description="Comma-separated feed source slugs"),
    engine: ScheduleEngine = Depends(get_engine)
):
    """Get a 7-day schedule grid with every event bucketed into each day it spans."""
    context = _context(categories, sources, start_of_week)
    if week:
        parsed = parse_iso_week(week)
        if parsed is None:
            raise HTTPException(status_code=400, detail="Invalid week format. Use YYYY-Www (e.g. 2025-W11).")
    else:
        parsed = current_iso_week(context.today)

    try:
        return engine.week_schedule(parsed[0], parsed[1], context)
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")

@router.get("/month")
def get_month(
    month: Optional[str] = Query(None, description="Month as YYYY-MM. Defaults to the current month"),
    start_of_week: int = Query(1, ge=0, le=1, description="0 for Sunday, 1 for Monday"),
    categories: Optional[str] = Query(None, description="Comma-separated category ids"),
    sources: Optional[str] = Query(None, description="Comma-separated feed source slugs"),
    engine: ScheduleEngine = Depends(get_engine)
):
    """Get a month grid with blank cells to align the first and last week rows."""
    context = _context(categories, sources, start_of_week)
    if month:
        parsed = parse_month(month)
        if parsed is None:
            raise HTTPException(status_code=400, detail="Invalid month format. Use YYYY-MM (e.g. 2025-03).")
    else:
        parsed = (int(context.today[:4]), int(context.today[5:7]))

    try:
        return engine.month_schedule(parsed[0], parsed[1], context)
    except DatabaseError as e:
        raise HTTPException(status_code=500, detail=f"Database error: {str(e)}")
