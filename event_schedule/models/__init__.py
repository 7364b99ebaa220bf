"""Models package initialization."""

from .base import Base
from .content import Category, ContentItem
from .event_date import EventDate, EventDateRecord, LegacyEventMeta
from .feed_source import FeedSource, FeedSourceConfig, DataSource
from .occurrence import (
    SourceKind,
    Occurrence,
    LocalOccurrence,
    StandaloneOccurrence,
    FeedOccurrence,
    IcalOccurrence,
    FederatedOccurrence,
    local_occurrence,
    standalone_occurrence,
)

__all__ = [
    'Base',
    'Category',
    'ContentItem',
    'EventDate',
    'EventDateRecord',
    'LegacyEventMeta',
    'FeedSource',
    'FeedSourceConfig',
    'DataSource',
    'SourceKind',
    'Occurrence',
    'LocalOccurrence',
    'StandaloneOccurrence',
    'FeedOccurrence',
    'IcalOccurrence',
    'FederatedOccurrence',
    'local_occurrence',
    'standalone_occurrence',
]
