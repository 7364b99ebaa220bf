"""Shared dependencies and query parsing for the API routes."""

from datetime import date
from typing import List, Optional

from fastapi import HTTPException

from ..schedule import ScheduleEngine, PublicFeedBuilder
from ..store import ContentStore

def get_engine() -> ScheduleEngine:
    """Schedule engine bound to the default database."""
    return ScheduleEngine()

def get_public_feed_builder() -> PublicFeedBuilder:
    return PublicFeedBuilder()

def get_content_store() -> ContentStore:
    return ContentStore()

def split_list(value: Optional[str]) -> List[str]:
    """Split a comma-separated query value, dropping blanks."""
    if not value:
        return []
    return [part.strip() for part in value.split(',') if part.strip()]

def parse_id_list(value: Optional[str], name: str) -> List[int]:
    """
    Parse a comma-separated list of ids.

    Raises:
        HTTPException: 400 if any part is not an integer
    """
    try:
        return [int(part) for part in split_list(value)]
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {name}: expected comma-separated integers")

def check_date(value: Optional[str], name: str) -> Optional[str]:
    """
    Reject a 'YYYY-MM-DD' value that is not a real calendar date.

    Raises:
        HTTPException: 400 for dates such as 2025-02-30
    """
    if value is None:
        return None
    try:
        date.fromisoformat(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid {name}: {value!r} is not a calendar date")
    return value
