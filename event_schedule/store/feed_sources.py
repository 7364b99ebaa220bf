"""Repository for configured feed sources."""

import logging
import re
from typing import Any, Dict, Iterable, List, Optional

from ..config.data_sources import SOURCE_TYPES, CATEGORIES_SOURCE_TYPE
from ..db import Database, DatabaseError, db as default_db
from ..models.feed_source import FeedSource, FeedSourceConfig, DataSource

logger = logging.getLogger(__name__)

SLUG_PATTERN = re.compile(r'^[a-z0-9]+(?:-[a-z0-9]+)*$')

def _normalize_data_sources(data_sources: Iterable[Any]) -> List[Dict[str, Any]]:
    """Validate data sources and convert them to their stored JSON form."""
    normalized = []
    for item in data_sources:
        data_source = item if isinstance(item, DataSource) else DataSource.from_dict(item)
        if data_source.source_type not in SOURCE_TYPES and data_source.source_type != CATEGORIES_SOURCE_TYPE:
            raise ValueError(f"Unknown data source type: {data_source.source_type!r}")
        normalized.append(data_source.to_dict())
    return normalized

class FeedSourceRepository:
    """CRUD for feed sources."""

    def __init__(self, database: Optional[Database] = None):
        self.db = database or default_db

    def create(
        self,
        slug: str,
        name: str,
        data_sources: Iterable[Any] = (),
        enabled: bool = True
    ) -> Optional[int]:
        """
        Create a feed source.

        Raises:
            ValueError: If the slug or a data source type is invalid

        Returns:
            Optional[int]: New id, or None if it could not be stored (e.g. duplicate slug)
        """
        if not SLUG_PATTERN.match(slug or ''):
            raise ValueError(f"Invalid slug: {slug!r}")
        stored = _normalize_data_sources(data_sources)
        try:
            with self.db.session() as session:
                source = FeedSource(slug=slug, name=name, enabled=enabled, data_sources=stored)
                session.add(source)
                session.flush()
                logger.info(f"Created feed source {slug} with {len(stored)} data sources")
                return source.id
        except DatabaseError as e:
            logger.error(f"Failed to create feed source {slug}: {e}")
            return None

    def get_by_slug(self, slug: str) -> Optional[FeedSourceConfig]:
        with self.db.session() as session:
            source = session.query(FeedSource).filter(FeedSource.slug == slug).first()
            return source.to_config() if source else None

    def get_all(self, enabled_only: bool = False) -> List[FeedSourceConfig]:
        """All feed sources in creation order."""
        with self.db.session() as session:
            q = session.query(FeedSource)
            if enabled_only:
                q = q.filter(FeedSource.enabled.is_(True))
            return [source.to_config() for source in q.order_by(FeedSource.id).all()]

    def set_enabled(self, slug: str, enabled: bool) -> bool:
        try:
            with self.db.session() as session:
                source = session.query(FeedSource).filter(FeedSource.slug == slug).first()
                if source is None:
                    return False
                source.enabled = enabled
            return True
        except DatabaseError as e:
            logger.error(f"Failed to update feed source {slug}: {e}")
            return False

    def delete(self, slug: str) -> bool:
        try:
            with self.db.session() as session:
                deleted = session.query(FeedSource).filter(FeedSource.slug == slug).delete()
            return deleted > 0
        except DatabaseError as e:
            logger.error(f"Failed to delete feed source {slug}: {e}")
            return False
