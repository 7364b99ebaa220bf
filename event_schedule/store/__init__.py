"""Storage layer for occurrences, content items and feed sources."""

from .content import ContentStore
from .event_dates import EventDateStore, InvalidOccurrenceError
from .feed_sources import FeedSourceRepository

__all__ = [
    'ContentStore',
    'EventDateStore',
    'InvalidOccurrenceError',
    'FeedSourceRepository',
]
