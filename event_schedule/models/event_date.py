"""Model for persisted event occurrences and their legacy mirror."""

from dataclasses import dataclass, field
from typing import List, Optional
from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Table, Index, UniqueConstraint, func
)
from sqlalchemy.orm import relationship

from .base import Base, IdType
from ..utils.timezone import format_local

# Occurrence types
SINGLE = 'single'
MASTER = 'master'
INSTANCE = 'instance'
CANONICAL_TYPES = (SINGLE, MASTER)

# Link types
LINK_POST = 'post'
LINK_EXTERNAL = 'external'
LINK_UNLINKED = 'unlinked'
STANDALONE_LINK_TYPES = (LINK_EXTERNAL, LINK_UNLINKED)

UNTITLED = 'Untitled Event'

# Legacy mirror keys
META_START = 'event_start'
META_END = 'event_end'
META_ALL_DAY = 'event_all_day'

event_date_posts = Table(
    'event_date_posts',
    Base.metadata,
    Column('event_date_id', IdType, ForeignKey('event_dates.id', ondelete='CASCADE'), primary_key=True),
    Column('post_id', IdType, ForeignKey('content_items.id', ondelete='CASCADE'), primary_key=True),
)

event_date_categories = Table(
    'event_date_categories',
    Base.metadata,
    Column('event_date_id', IdType, ForeignKey('event_dates.id', ondelete='CASCADE'), primary_key=True),
    Column('category_id', Integer, ForeignKey('categories.id', ondelete='CASCADE'), primary_key=True),
)

@dataclass
class EventDateRecord:
    """
    Detached, plain view of one persisted occurrence.

    Datetimes are naive site-local 'Y-m-d H:i:s' strings.
    """
    id: int
    event_id: Optional[int]
    start_datetime: str
    end_datetime: Optional[str]
    all_day: bool
    occurrence_type: str = SINGLE
    master_id: Optional[int] = None
    rrule: Optional[str] = None
    venue_id: Optional[int] = None
    title: Optional[str] = None
    external_url: Optional[str] = None
    link_type: str = LINK_POST
    linked_post_ids: List[int] = field(default_factory=list)
    category_ids: List[int] = field(default_factory=list)

    @property
    def is_standalone(self) -> bool:
        return self.event_id is None

    def effective_end(self) -> str:
        """End datetime, falling back to the start for open-ended rows."""
        return self.end_datetime or self.start_datetime

    def get_display_title(self) -> str:
        return (self.title or '').strip() or UNTITLED

    def get_display_url(self) -> Optional[str]:
        """Clickable URL of a standalone occurrence; only external links have one."""
        if self.link_type == LINK_EXTERNAL and self.external_url:
            return self.external_url
        return None

class EventDate(Base):
    """
    One occurrence of an event.

    Rows with an event_id belong to a content item: exactly one of them is
    canonical ('single' or 'master'); 'instance' rows point at their master
    through master_id. Rows without an event_id are standalone events.
    """
    __tablename__ = 'event_dates'
    __table_args__ = (
        Index('idx_event_dates_event_id', 'event_id'),
        Index('idx_event_dates_start_end', 'start_datetime', 'end_datetime'),
        Index('idx_event_dates_link_type', 'link_type'),
    )

    id = Column(IdType, primary_key=True, autoincrement=True)
    event_id = Column(IdType, ForeignKey('content_items.id', ondelete='CASCADE'), nullable=True)
    start_datetime = Column(DateTime, nullable=False)
    end_datetime = Column(DateTime, nullable=True)
    all_day = Column(Boolean, nullable=False, default=False)
    occurrence_type = Column(String(20), nullable=False, default=SINGLE)
    master_id = Column(IdType, ForeignKey('event_dates.id', ondelete='CASCADE'), nullable=True)
    rrule = Column(String(255), nullable=True)
    venue_id = Column(Integer, nullable=True)
    title = Column(String(255), nullable=True)
    external_url = Column(Text, nullable=True)
    link_type = Column(String(20), nullable=False, default=LINK_POST)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    linked_posts = relationship('ContentItem', secondary=event_date_posts, lazy='selectin')
    categories = relationship('Category', secondary=event_date_categories, lazy='selectin')

    def to_record(self) -> EventDateRecord:
        """Convert to a detached record that is safe to use after the session closes."""
        return EventDateRecord(
            id=self.id,
            event_id=self.event_id,
            start_datetime=format_local(self.start_datetime),
            end_datetime=format_local(self.end_datetime) if self.end_datetime else None,
            all_day=bool(self.all_day),
            occurrence_type=self.occurrence_type or SINGLE,
            master_id=self.master_id,
            rrule=self.rrule,
            venue_id=self.venue_id,
            title=self.title,
            external_url=self.external_url,
            link_type=self.link_type or LINK_POST,
            linked_post_ids=[post.id for post in self.linked_posts],
            category_ids=[category.id for category in self.categories],
        )

    def __str__(self) -> str:
        """String representation."""
        return (
            f"EventDate(id={self.id}, event_id={self.event_id}, "
            f"start={self.start_datetime}, type={self.occurrence_type})"
        )

class LegacyEventMeta(Base):
    """
    Key/value mirror of a content item's canonical dates.

    Older readers look up 'event_start', 'event_end' and 'event_all_day'
    here instead of the event_dates table, so it is written together with
    the canonical row.
    """
    __tablename__ = 'legacy_event_meta'
    __table_args__ = (
        UniqueConstraint('post_id', 'meta_key', name='uq_legacy_event_meta_post_key'),
    )

    id = Column(IdType, primary_key=True, autoincrement=True)
    post_id = Column(IdType, ForeignKey('content_items.id', ondelete='CASCADE'), nullable=False)
    meta_key = Column(String(64), nullable=False)
    meta_value = Column(Text, nullable=True)
