"""Read access to content items that own local events."""

from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy import exists, or_
from sqlalchemy.orm import aliased

from ..db import Database, db as default_db
from ..models.content import Category, ContentItem, PUBLISHED
from ..models.event_date import EventDate, EventDateRecord, event_date_posts
from ..query.date_range import DateRangeQuery, join_dates_table, sort_by_event_start, order_by, ASC

class ContentStore:
    """Queries content items by their occurrences."""

    def __init__(self, database: Optional[Database] = None):
        self.db = database or default_db

    def create(
        self,
        title: str,
        url: Optional[str] = None,
        excerpt: Optional[str] = None,
        status: str = PUBLISHED,
        category_ids: Optional[Iterable[int]] = None
    ) -> int:
        """Create a content item. Authoring lives elsewhere; this exists for imports and tests."""
        with self.db.session() as session:
            item = ContentItem(title=title, url=url, excerpt=excerpt, status=status)
            if category_ids:
                item.categories = session.query(Category).filter(Category.id.in_(list(category_ids))).all()
            session.add(item)
            session.flush()
            return item.id

    def create_category(self, slug: str, name: str) -> int:
        with self.db.session() as session:
            category = Category(slug=slug, name=name)
            session.add(category)
            session.flush()
            return category.id

    def get_category_ids(self, slugs: Iterable[str]) -> List[int]:
        """Ids of the categories with these slugs. Unknown slugs are left out."""
        slugs = [slug for slug in slugs if slug]
        if not slugs:
            return []
        with self.db.session() as session:
            rows = session.query(Category.id).filter(Category.slug.in_(slugs)).order_by(Category.id).all()
            return [category_id for (category_id,) in rows]

    def get_items(self, ids: Iterable[int]) -> Dict[int, Dict[str, Any]]:
        """Get content items keyed by id. Unknown ids are left out."""
        ids = list(ids)
        if not ids:
            return {}
        with self.db.session() as session:
            items = session.query(ContentItem).filter(ContentItem.id.in_(ids)).all()
            return {item.id: item.to_dict() for item in items}

    def find_ids_in_range(
        self,
        query: DateRangeQuery,
        category_ids: Optional[Iterable[int]] = None,
        statuses: Sequence[str] = (PUBLISHED,),
        direction: str = ASC
    ) -> List[int]:
        """
        Ids of content items with at least one occurrence matching the range.

        An item matches through its own occurrences or through an occurrence
        it is linked to as a secondary post. Results are ordered by event
        start and contain each id once.
        """
        linked = aliased(EventDate)
        direct_match = exists().where(EventDate.event_id == ContentItem.id, *query.predicates(EventDate))
        linked_match = exists().where(
            event_date_posts.c.post_id == ContentItem.id,
            linked.id == event_date_posts.c.event_date_id,
            *query.predicates(linked)
        )

        with self.db.session() as session:
            q = (
                session.query(ContentItem.id)
                .filter(ContentItem.status.in_(list(statuses)))
                .filter(or_(direct_match, linked_match))
            )
            if category_ids:
                q = q.filter(ContentItem.categories.any(Category.id.in_(list(category_ids))))
            q = sort_by_event_start(q, ContentItem.id, direction).order_by(ContentItem.id)

            seen = set()
            ordered = []
            for (item_id,) in q.all():
                if item_id not in seen:
                    seen.add(item_id)
                    ordered.append(item_id)
            return ordered

    def find_occurrences(
        self,
        query: DateRangeQuery,
        category_ids: Optional[Iterable[int]] = None,
        statuses: Sequence[str] = (PUBLISHED,),
        direction: str = ASC
    ) -> List[Tuple[Dict[str, Any], EventDateRecord]]:
        """Pairs of (content item, occurrence) for every owned occurrence matching the range."""
        with self.db.session() as session:
            q = join_dates_table(session.query(ContentItem, EventDate), ContentItem.id)
            q = q.filter(ContentItem.status.in_(list(statuses))).filter(*query.predicates(EventDate))
            if category_ids:
                q = q.filter(ContentItem.categories.any(Category.id.in_(list(category_ids))))
            q = q.order_by(order_by(EventDate.start_datetime, direction), order_by(EventDate.id, ASC))
            return [(item.to_dict(), row.to_record()) for item, row in q.all()]
