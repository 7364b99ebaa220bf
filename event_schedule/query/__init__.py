"""Date-range query helpers."""

from .date_range import (
    DateRangeQuery,
    overlaps,
    order_by,
    join_dates_table,
    sort_by_event_start,
    ASC,
    DESC,
)

__all__ = [
    'DateRangeQuery',
    'overlaps',
    'order_by',
    'join_dates_table',
    'sort_by_event_start',
    'ASC',
    'DESC',
]
