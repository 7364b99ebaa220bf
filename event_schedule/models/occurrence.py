"""Normalized event occurrences produced by every event source."""

import hashlib
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Dict, Any, List, Optional

from .event_date import EventDateRecord, LINK_UNLINKED, LINK_EXTERNAL, SINGLE

class SourceKind(str, Enum):
    """Where an occurrence came from."""
    LOCAL = 'local'
    STANDALONE = 'standalone'
    ICAL = 'ical'
    FEDERATED = 'federated'

def uid_hash(uid: str) -> str:
    """Deterministic hex digest used to key feed occurrences."""
    return hashlib.md5(uid.encode('utf-8')).hexdigest()

@dataclass
class Occurrence:
    """
    Fields shared by every occurrence.

    start_local and end_local are naive 'Y-m-d H:i:s' strings in the site
    timezone, with end_local >= start_local. For all-day events end_local
    is inclusive.
    """
    id: str
    title: str
    start_local: str
    end_local: str
    all_day: bool = False
    description: Optional[str] = None
    url: Optional[str] = None
    color: Optional[str] = None

    source_kind = None

    @property
    def key(self) -> str:
        """Identifier unique across all source kinds."""
        return f"{self.source_kind.value}_{self.id}"

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['source_kind'] = self.source_kind.value
        data['key'] = self.key
        return data

@dataclass
class LocalOccurrence(Occurrence):
    """An occurrence of a locally stored content item. id is the content item id."""
    occurrence_id: Optional[int] = None
    occurrence_type: str = SINGLE
    category_ids: List[int] = field(default_factory=list)

    source_kind = SourceKind.LOCAL

    @property
    def key(self) -> str:
        # One content item may show up once per occurrence in a series
        if self.occurrence_id is None:
            return f"local_{self.id}"
        return f"local_{self.id}_{self.occurrence_id}"

@dataclass
class StandaloneOccurrence(Occurrence):
    """An occurrence without an owning content item. id is the event_dates row id."""
    link_type: str = LINK_UNLINKED
    category_ids: List[int] = field(default_factory=list)

    source_kind = SourceKind.STANDALONE

    @property
    def is_clickable(self) -> bool:
        return self.link_type == LINK_EXTERNAL and bool(self.url)

@dataclass
class FeedOccurrence(Occurrence):
    """An occurrence read from a remote feed. id is the md5 hex of the feed UID."""
    uid: str = ''
    source_name: Optional[str] = None

@dataclass
class IcalOccurrence(FeedOccurrence):
    source_kind = SourceKind.ICAL

@dataclass
class FederatedOccurrence(FeedOccurrence):
    source_kind = SourceKind.FEDERATED

def local_occurrence(item: Dict[str, Any], record: EventDateRecord) -> LocalOccurrence:
    """Build the occurrence of a content item (as returned by ContentItem.to_dict) at one stored date."""
    return LocalOccurrence(
        id=str(item['id']),
        title=item['title'],
        start_local=record.start_datetime,
        end_local=record.effective_end(),
        all_day=record.all_day,
        description=item.get('excerpt'),
        url=item.get('url'),
        occurrence_id=record.id,
        occurrence_type=record.occurrence_type,
        category_ids=list(item.get('category_ids') or []),
    )

def standalone_occurrence(record: EventDateRecord) -> StandaloneOccurrence:
    return StandaloneOccurrence(
        id=str(record.id),
        title=record.get_display_title(),
        start_local=record.start_datetime,
        end_local=record.effective_end(),
        all_day=record.all_day,
        url=record.get_display_url(),
        link_type=record.link_type,
        category_ids=list(record.category_ids),
    )
