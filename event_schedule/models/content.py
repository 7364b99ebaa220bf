"""Content items that own local events, and their categories."""

from typing import Dict, Any
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Table, func
from sqlalchemy.orm import relationship

from .base import Base, IdType

PUBLISHED = 'publish'
DRAFT = 'draft'

content_categories = Table(
    'content_categories',
    Base.metadata,
    Column('content_id', IdType, ForeignKey('content_items.id', ondelete='CASCADE'), primary_key=True),
    Column('category_id', Integer, ForeignKey('categories.id', ondelete='CASCADE'), primary_key=True),
)

class Category(Base):
    """A category term used to filter schedules."""
    __tablename__ = 'categories'

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(200), nullable=False, unique=True)
    name = Column(String(200), nullable=False)

    def __str__(self) -> str:
        return f"Category(id={self.id}, slug={self.slug})"

class ContentItem(Base):
    """
    A content item (post) that owns event occurrences.

    Content authoring lives outside this service; the schedule only reads
    the fields below.

    Fields:
        id: Unique identifier
        title: Display title
        url: Permalink of the item
        excerpt: Short description (optional)
        status: Publication status ('publish' or 'draft')
        created_at: When the item was created
    """
    __tablename__ = 'content_items'

    id = Column(IdType, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False, default='')
    url = Column(Text, nullable=True)
    excerpt = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=PUBLISHED)
    created_at = Column(DateTime, server_default=func.now())

    categories = relationship('Category', secondary=content_categories, lazy='selectin')

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            'id': self.id,
            'title': self.title,
            'url': self.url,
            'excerpt': self.excerpt,
            'status': self.status,
            'category_ids': [category.id for category in self.categories],
        }

    def __str__(self) -> str:
        """String representation."""
        return f"ContentItem(id={self.id}, title={self.title}, status={self.status})"
