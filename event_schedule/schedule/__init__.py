"""Aggregation and scheduling of events from all sources."""

from .context import RenderContext, SUNDAY, MONDAY
from .engine import ScheduleEngine, TIME_FILTERS, time_filter_query, bucket_by_day, sort_occurrences
from .feed_manager import FeedManager, FeedCache, FeedTask
from .publishing import PublicFeedBuilder, public_event
from .weeks import (
    parse_iso_week,
    current_iso_week,
    week_boundaries,
    offset_week,
    format_iso_week,
    parse_month,
    month_boundaries,
    offset_month,
)

__all__ = [
    'RenderContext',
    'SUNDAY',
    'MONDAY',
    'ScheduleEngine',
    'TIME_FILTERS',
    'time_filter_query',
    'bucket_by_day',
    'sort_occurrences',
    'FeedManager',
    'FeedCache',
    'FeedTask',
    'PublicFeedBuilder',
    'public_event',
    'parse_iso_week',
    'current_iso_week',
    'week_boundaries',
    'offset_week',
    'format_iso_week',
    'parse_month',
    'month_boundaries',
    'offset_month',
]
