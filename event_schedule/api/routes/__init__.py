"""Routes package initialization."""

from . import (
    events,
    feeds,
    health,
    recurrence,
    schedule
)

__all__ = [
    'events',
    'feeds',
    'health',
    'recurrence',
    'schedule'
]
