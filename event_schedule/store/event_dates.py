"""Persistence of event occurrences.

Every content item with a start time has exactly one canonical occurrence
row ('single' or 'master'). Recurring series add 'instance' rows pointing
at their master. Rows without an owning content item are standalone events.

Writes to a canonical row also update the legacy key/value mirror in the
same transaction, so both always report the same dates.
"""

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Union

from sqlalchemy.orm import Session

from ..db import Database, DatabaseError, db as default_db, execute_in_transaction, with_retry
from ..models.content import Category, ContentItem
from ..models.event_date import (
    EventDate,
    EventDateRecord,
    LegacyEventMeta,
    event_date_posts,
    event_date_categories,
    SINGLE,
    MASTER,
    INSTANCE,
    CANONICAL_TYPES,
    LINK_POST,
    LINK_UNLINKED,
    STANDALONE_LINK_TYPES,
    META_START,
    META_END,
    META_ALL_DAY,
)
from ..query.date_range import DateRangeQuery, order_by, ASC
from ..utils.timezone import parse_local, format_local

logger = logging.getLogger(__name__)

DateInput = Union[str, datetime]

class InvalidOccurrenceError(ValueError):
    """Raised when occurrence dates cannot be stored as given."""
    pass

def _parse_range(start: DateInput, end: Optional[DateInput]):
    """Validate and parse a start/end pair into naive datetimes."""
    start_dt = start if isinstance(start, datetime) else parse_local(start)
    if start_dt is None:
        raise InvalidOccurrenceError(f"Invalid start datetime: {start!r}")
    if end is None or end == '':
        return start_dt, None
    end_dt = end if isinstance(end, datetime) else parse_local(end)
    if end_dt is None:
        raise InvalidOccurrenceError(f"Invalid end datetime: {end!r}")
    if end_dt < start_dt:
        raise InvalidOccurrenceError(f"End {end!r} is before start {start!r}")
    return start_dt, end_dt

def _mirror_values(start: datetime, end: Optional[datetime], all_day: bool) -> Dict[str, str]:
    return {
        META_START: format_local(start),
        META_END: format_local(end) if end else '',
        META_ALL_DAY: '1' if all_day else '0',
    }

class EventDateStore:
    """Read/write access to the event_dates table."""

    def __init__(self, database: Optional[Database] = None):
        self.db = database or default_db

    # Reads

    def get_by_id(self, event_date_id: int) -> Optional[EventDateRecord]:
        with self.db.session() as session:
            row = session.get(EventDate, event_date_id)
            return row.to_record() if row else None

    def get_by_event_id(self, event_id: int) -> Optional[EventDateRecord]:
        """Get the canonical (single or master) occurrence of a content item."""
        with self.db.session() as session:
            row = self._canonical_row(session, event_id)
            return row.to_record() if row else None

    def get_all_by_event_id(self, event_id: int) -> List[EventDateRecord]:
        """Get every occurrence of a content item, instances included, ordered by start."""
        with self.db.session() as session:
            rows = (
                session.query(EventDate)
                .filter(EventDate.event_id == event_id)
                .order_by(order_by(EventDate.start_datetime, ASC), order_by(EventDate.id, ASC))
                .all()
            )
            return [row.to_record() for row in rows]

    def get_rrule_by_event_id(self, event_id: int) -> Optional[str]:
        record = self.get_by_event_id(event_id)
        return record.rrule if record else None

    def get_linked_for_post(self, post_id: int) -> List[EventDateRecord]:
        """Occurrences a content item is attached to as a secondary post."""
        with self.db.session() as session:
            rows = (
                session.query(EventDate)
                .join(event_date_posts, event_date_posts.c.event_date_id == EventDate.id)
                .filter(event_date_posts.c.post_id == post_id)
                .order_by(order_by(EventDate.start_datetime, ASC))
                .all()
            )
            return [row.to_record() for row in rows]

    def get_linked_post_ids(self, event_date_id: int) -> List[int]:
        with self.db.session() as session:
            rows = (
                session.query(event_date_posts.c.post_id)
                .filter(event_date_posts.c.event_date_id == event_date_id)
                .order_by(event_date_posts.c.post_id)
                .all()
            )
            return [post_id for (post_id,) in rows]

    def get_legacy_meta(self, event_id: int) -> Dict[str, str]:
        """Read the legacy key/value mirror of a content item."""
        with self.db.session() as session:
            rows = session.query(LegacyEventMeta).filter(LegacyEventMeta.post_id == event_id).all()
            return {row.meta_key: row.meta_value for row in rows}

    def get_standalone(
        self,
        query: DateRangeQuery,
        category_ids: Optional[Iterable[int]] = None,
        direction: str = ASC
    ) -> List[EventDateRecord]:
        """
        Get standalone occurrences matching a date range.

        Args:
            query: Date range the occurrences must match
            category_ids: Only occurrences tagged with one of these categories
            direction: Sort direction on start
        """
        with self.db.session() as session:
            q = (
                session.query(EventDate)
                .filter(EventDate.event_id.is_(None))
                .filter(EventDate.link_type.in_(STANDALONE_LINK_TYPES))
                .filter(*query.predicates(EventDate))
            )
            if category_ids:
                q = q.filter(EventDate.categories.any(Category.id.in_(list(category_ids))))
            rows = q.order_by(order_by(EventDate.start_datetime, direction), order_by(EventDate.id, ASC)).all()
            return [row.to_record() for row in rows]

    def get_standalone_for_date_range(
        self,
        start: DateInput,
        end: DateInput,
        category_ids: Optional[Iterable[int]] = None
    ) -> List[EventDateRecord]:
        """Standalone occurrences overlapping the inclusive window [start, end]."""
        return self.get_standalone(DateRangeQuery.overlapping(start, end), category_ids)

    def get_unlinked(self) -> List[EventDateRecord]:
        """All standalone occurrences, newest first."""
        with self.db.session() as session:
            rows = (
                session.query(EventDate)
                .filter(EventDate.event_id.is_(None))
                .order_by(order_by(EventDate.start_datetime, 'DESC'))
                .all()
            )
            return [row.to_record() for row in rows]

    # Canonical writes

    def save(self, event_id: int, start: DateInput, end: Optional[DateInput], all_day: bool) -> bool:
        """
        Create or update the canonical occurrence of a content item.

        The legacy mirror is written in the same transaction. Saving the same
        values twice changes nothing.

        Returns:
            bool: True if the occurrence and mirror were stored, False otherwise
        """
        return self.save_or_update_master(event_id, start, end, all_day) is not None

    def save_or_update_master(
        self,
        event_id: int,
        start: DateInput,
        end: Optional[DateInput],
        all_day: bool,
        occurrence_type: Optional[str] = None,
        rrule: Optional[str] = None
    ) -> Optional[int]:
        """
        Upsert the canonical occurrence, optionally switching it to a recurring master.

        Args:
            event_id: Owning content item id
            start: Naive local start
            end: Naive local end (optional)
            all_day: Whether the event spans whole days
            occurrence_type: 'single' or 'master'; None keeps the current type
            rrule: Recurrence rule for masters; None keeps the current rule

        Returns:
            Optional[int]: Id of the canonical row, or None on failure
        """
        if occurrence_type is not None and occurrence_type not in CANONICAL_TYPES:
            logger.error(f"Invalid canonical occurrence type {occurrence_type!r} for event {event_id}")
            return None
        try:
            start_dt, end_dt = _parse_range(start, end)
            return execute_in_transaction(
                self._upsert_canonical, event_id, start_dt, end_dt, bool(all_day), occurrence_type, rrule,
                database=self.db
            )
        except InvalidOccurrenceError as e:
            logger.warning(f"Not saving occurrence for event {event_id}: {e}")
            return None
        except DatabaseError as e:
            logger.error(f"Failed to save occurrence for event {event_id}: {e}")
            return None

    def _upsert_canonical(
        self,
        session: Session,
        event_id: int,
        start: datetime,
        end: Optional[datetime],
        all_day: bool,
        occurrence_type: Optional[str],
        rrule: Optional[str]
    ) -> int:
        """Write the canonical row and its legacy mirror in the caller's transaction."""
        row = self._canonical_row(session, event_id)
        if row is None:
            row = EventDate(
                event_id=event_id,
                start_datetime=start,
                end_datetime=end,
                all_day=all_day,
                occurrence_type=occurrence_type or SINGLE,
                rrule=rrule,
                link_type=LINK_POST,
            )
            session.add(row)
            logger.info(f"Created occurrence for event {event_id} starting {format_local(start)}")
        else:
            changes = {
                'start_datetime': start,
                'end_datetime': end,
                'all_day': all_day,
            }
            if occurrence_type is not None:
                changes['occurrence_type'] = occurrence_type
            if rrule is not None:
                changes['rrule'] = rrule or None
            for attribute, value in changes.items():
                if getattr(row, attribute) != value:
                    setattr(row, attribute, value)
            if session.is_modified(row):
                logger.info(f"Updated occurrence for event {event_id}")

        self._write_legacy_meta(session, event_id, _mirror_values(start, end, all_day))
        session.flush()
        return row.id

    def _write_legacy_meta(self, session: Session, event_id: int, values: Dict[str, str]) -> None:
        """Bring the legacy mirror in line with the canonical row, touching only keys that differ."""
        existing = {
            row.meta_key: row
            for row in session.query(LegacyEventMeta).filter(LegacyEventMeta.post_id == event_id).all()
        }
        for key, value in values.items():
            row = existing.get(key)
            if row is None:
                session.add(LegacyEventMeta(post_id=event_id, meta_key=key, meta_value=value))
            elif row.meta_value != value:
                row.meta_value = value

    def delete_by_event_id(self, event_id: int) -> bool:
        """Delete every occurrence of a content item and its legacy mirror."""
        try:
            self._delete_by_event_id(event_id)
            return True
        except DatabaseError as e:
            logger.error(f"Failed to delete occurrences for event {event_id}: {e}")
            return False

    @with_retry()
    def _delete_by_event_id(self, event_id: int) -> None:
        with self.db.session() as session:
            # Instances first, their master_id points at the master row
            session.query(EventDate).filter(
                EventDate.event_id == event_id, EventDate.occurrence_type == INSTANCE
            ).delete(synchronize_session=False)
            for row in session.query(EventDate).filter(EventDate.event_id == event_id).all():
                session.delete(row)
            session.query(LegacyEventMeta).filter(
                LegacyEventMeta.post_id == event_id
            ).delete(synchronize_session=False)

    # Recurring instances

    def save_occurrence(
        self,
        event_id: int,
        master_id: int,
        start: DateInput,
        end: Optional[DateInput],
        all_day: bool
    ) -> Optional[int]:
        """Add one generated instance of a recurring series. Returns the new row id or None."""
        try:
            start_dt, end_dt = _parse_range(start, end)
            with self.db.session() as session:
                row = EventDate(
                    event_id=event_id,
                    master_id=master_id,
                    start_datetime=start_dt,
                    end_datetime=end_dt,
                    all_day=bool(all_day),
                    occurrence_type=INSTANCE,
                    link_type=LINK_POST,
                )
                session.add(row)
                session.flush()
                return row.id
        except InvalidOccurrenceError as e:
            logger.warning(f"Not saving instance for event {event_id}: {e}")
            return None
        except DatabaseError as e:
            logger.error(f"Failed to save instance for event {event_id}: {e}")
            return None

    def delete_instances(self, event_id: int) -> bool:
        """Delete the generated instances of a series, keeping the master."""
        try:
            with self.db.session() as session:
                deleted = session.query(EventDate).filter(
                    EventDate.event_id == event_id, EventDate.occurrence_type == INSTANCE
                ).delete(synchronize_session=False)
            logger.info(f"Deleted {deleted} generated instances for event {event_id}")
            return True
        except DatabaseError as e:
            logger.error(f"Failed to delete instances for event {event_id}: {e}")
            return False

    # Standalone events and links

    def create_standalone(
        self,
        title: str,
        start: DateInput,
        end: Optional[DateInput] = None,
        all_day: bool = False,
        link_type: str = LINK_UNLINKED,
        external_url: Optional[str] = None,
        category_ids: Optional[Iterable[int]] = None
    ) -> Optional[int]:
        """
        Create an occurrence with no owning content item.

        Returns:
            Optional[int]: Id of the new row, or None on failure
        """
        if link_type not in STANDALONE_LINK_TYPES:
            logger.error(f"Invalid standalone link type {link_type!r}")
            return None
        try:
            start_dt, end_dt = _parse_range(start, end)
            with self.db.session() as session:
                row = EventDate(
                    event_id=None,
                    start_datetime=start_dt,
                    end_datetime=end_dt,
                    all_day=bool(all_day),
                    occurrence_type=SINGLE,
                    title=(title or '').strip() or None,
                    external_url=external_url,
                    link_type=link_type,
                )
                if category_ids:
                    row.categories = session.query(Category).filter(Category.id.in_(list(category_ids))).all()
                session.add(row)
                session.flush()
                return row.id
        except InvalidOccurrenceError as e:
            logger.warning(f"Not creating standalone event {title!r}: {e}")
            return None
        except DatabaseError as e:
            logger.error(f"Failed to create standalone event {title!r}: {e}")
            return None

    def add_linked_post(self, event_date_id: int, post_id: int) -> bool:
        """Attach a secondary content item to an occurrence. Adding an existing link is a no-op."""
        try:
            with self.db.session() as session:
                row = session.get(EventDate, event_date_id)
                post = session.get(ContentItem, post_id)
                if row is None or post is None:
                    logger.warning(f"Cannot link post {post_id} to occurrence {event_date_id}: not found")
                    return False
                if post not in row.linked_posts:
                    row.linked_posts.append(post)
            return True
        except DatabaseError as e:
            logger.error(f"Failed to link post {post_id} to occurrence {event_date_id}: {e}")
            return False

    @staticmethod
    def _canonical_row(session: Session, event_id: int) -> Optional[EventDate]:
        return (
            session.query(EventDate)
            .filter(EventDate.event_id == event_id)
            .filter(EventDate.occurrence_type.in_((SINGLE, MASTER)))
            .order_by(EventDate.id)
            .first()
        )
