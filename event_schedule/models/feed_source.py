"""Model for configured feed sources."""

from dataclasses import dataclass, field
from typing import Dict, Any, List
from sqlalchemy import Column, String, Boolean, DateTime, JSON, func

from .base import Base, IdType

@dataclass
class DataSource:
    """
    One data source inside a feed source.

    Fields:
        source_type: 'ical_url', 'federated_api' or 'categories'
        config: Type-specific settings ({'url', 'color'} or {'category_ids'})
        enabled: Disabled data sources are never fetched
    """
    source_type: str
    config: Dict[str, Any] = field(default_factory=dict)
    enabled: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DataSource':
        return cls(
            source_type=str(data.get('source_type') or ''),
            config=dict(data.get('config') or {}),
            enabled=bool(data.get('enabled', True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {'source_type': self.source_type, 'config': self.config, 'enabled': self.enabled}

@dataclass
class FeedSourceConfig:
    """Detached view of a feed source with its ordered data sources."""
    id: int
    slug: str
    name: str
    enabled: bool
    data_sources: List[DataSource] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'slug': self.slug,
            'name': self.name,
            'enabled': self.enabled,
            'data_sources': [data_source.to_dict() for data_source in self.data_sources],
        }

class FeedSource(Base):
    """
    A named, ordered collection of data sources shown together on a schedule.

    Fields:
        id: Unique identifier (auto-generated)
        slug: URL-safe identifier used by the API
        name: Display name
        enabled: Disabled sources contribute nothing and are never fetched
        data_sources: JSON list of {'source_type', 'config', 'enabled'}
        created_at: When the source was created
    """
    __tablename__ = 'feed_sources'

    id = Column(IdType, primary_key=True, autoincrement=True)
    slug = Column(String(200), nullable=False, unique=True)
    name = Column(String(255), nullable=False)
    enabled = Column(Boolean, nullable=False, default=True)
    data_sources = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, server_default=func.now())

    def to_config(self) -> FeedSourceConfig:
        return FeedSourceConfig(
            id=self.id,
            slug=self.slug,
            name=self.name,
            enabled=bool(self.enabled),
            data_sources=[DataSource.from_dict(item) for item in (self.data_sources or []) if isinstance(item, dict)],
        )

    def __str__(self) -> str:
        """String representation."""
        return f"FeedSource(id={self.id}, slug={self.slug}, enabled={self.enabled})"
