"""Date-range predicates and event-start ordering for occurrence queries.

The same overlap rule is used for SQL queries and for in-memory feed
filtering, so local and remote events agree at window edges.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional, Tuple, Union

from sqlalchemy import and_, func
from sqlalchemy.orm import aliased

from ..models.event_date import EventDate, event_date_posts, CANONICAL_TYPES
from ..utils.timezone import parse_local, format_local

DateValue = Union[str, datetime]

ASC = 'ASC'
DESC = 'DESC'

def _as_datetime(value: DateValue) -> datetime:
    if isinstance(value, datetime):
        return value
    parsed = parse_local(value)
    if parsed is None:
        raise ValueError(f"Invalid local datetime: {value!r}")
    return parsed

def _as_string(value: Optional[DateValue]) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return format_local(value)

def overlaps(start: DateValue, end: Optional[DateValue], range_start: DateValue, range_end: DateValue) -> bool:
    """
    Check whether [start, end] overlaps the window [range_start, range_end].

    Both boundaries are inclusive. A missing end is treated as the start.
    """
    start = _as_string(start)
    end = _as_string(end) or start
    return start <= _as_string(range_end) and end >= _as_string(range_start)

@dataclass
class DateRangeQuery:
    """
    A date-range filter over occurrence start/end.

    Fields (all optional, naive site-local):
        start_after: start >= value
        end_before: end < value
        start_before: start <= value
        end_after: end >= value

    An occurrence without an end is treated as ending at its start.
    """
    start_after: Optional[DateValue] = None
    end_before: Optional[DateValue] = None
    start_before: Optional[DateValue] = None
    end_after: Optional[DateValue] = None

    @classmethod
    def overlapping(cls, start: DateValue, end: DateValue) -> 'DateRangeQuery':
        """Occurrences that overlap the inclusive window [start, end]."""
        return cls(start_before=end, end_after=start)

    @property
    def is_unbounded(self) -> bool:
        return all(value is None for value in (
            self.start_after, self.end_before, self.start_before, self.end_after
        ))

    def bounds(self) -> Tuple[Optional[str], Optional[str]]:
        """
        Loosest overlap window containing every match, as (lower, upper).

        Used to narrow remote fetches before the exact test in matches().
        None means that side is open.
        """
        lower = self.end_after if self.end_after is not None else self.start_after
        upper = self.start_before if self.start_before is not None else self.end_before
        return _as_string(lower), _as_string(upper)

    def predicates(self, target: Any = EventDate) -> List[Any]:
        """
        Build SQLAlchemy criteria for this range.

        Args:
            target: Mapped class, alias or table exposing start_datetime/end_datetime

        Raises:
            ValueError: If a bound is not a valid local datetime
        """
        columns = getattr(target, 'c', target)
        start = columns.start_datetime
        end = func.coalesce(columns.end_datetime, columns.start_datetime)

        criteria = []
        if self.start_after is not None:
            criteria.append(start >= _as_datetime(self.start_after))
        if self.end_before is not None:
            criteria.append(end < _as_datetime(self.end_before))
        if self.start_before is not None:
            criteria.append(start <= _as_datetime(self.start_before))
        if self.end_after is not None:
            criteria.append(end >= _as_datetime(self.end_after))
        return criteria

    def matches(self, start: DateValue, end: Optional[DateValue] = None) -> bool:
        """Apply the same test as predicates() to one occurrence in memory."""
        start = _as_string(start)
        end = _as_string(end) or start
        if self.start_after is not None and not start >= _as_string(self.start_after):
            return False
        if self.end_before is not None and not end < _as_string(self.end_before):
            return False
        if self.start_before is not None and not start <= _as_string(self.start_before):
            return False
        if self.end_after is not None and not end >= _as_string(self.end_after):
            return False
        return True

def order_by(column: Any, direction: str = ASC) -> Any:
    """
    Ordering directive for a column or expression.

    Raises:
        ValueError: If direction is not 'ASC' or 'DESC'
    """
    normalized = (direction or '').upper()
    if normalized == ASC:
        return column.asc()
    if normalized == DESC:
        return column.desc()
    raise ValueError(f"Invalid order direction: {direction}")

def join_dates_table(query: Any, content_id: Any, canonical_only: bool = False) -> Any:
    """
    Join occurrences onto a content query by content id.

    Works with both session.query() objects and select() statements.
    Recurring series join one row per instance; callers deduplicate.
    """
    onclause = EventDate.event_id == content_id
    if canonical_only:
        onclause = and_(onclause, EventDate.occurrence_type.in_(CANONICAL_TYPES))
    return query.join(EventDate, onclause)

def sort_by_event_start(query: Any, content_id: Any, direction: str = ASC) -> Any:
    """
    Order a content query by event start.

    The start comes from the item's own single/master occurrence when it
    has one, otherwise from an occurrence it is linked to as a secondary
    post.
    """
    direct = aliased(EventDate)
    linked = aliased(EventDate)
    link = event_date_posts.alias()

    query = (
        query
        .outerjoin(direct, and_(
            direct.event_id == content_id,
            direct.occurrence_type.in_(CANONICAL_TYPES),
        ))
        .outerjoin(link, link.c.post_id == content_id)
        .outerjoin(linked, and_(
            linked.id == link.c.event_date_id,
            linked.occurrence_type.in_(CANONICAL_TYPES),
        ))
    )
    return query.order_by(order_by(func.coalesce(direct.start_datetime, linked.start_datetime), direction))
