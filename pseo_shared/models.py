"""
Database models for the programmatic SEO content pipeline.

Two content tables back the Persistence Sink:
- articles: long-form blog posts generated from scheduled work items
- pages: comparison and topic landing pages

Rows are created once by the generation pipeline and never mutated by it.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Column, String, Text, Boolean,
    DateTime, Index, Enum,
)
from sqlalchemy.dialects.postgresql import UUID, ARRAY
from sqlalchemy.orm import declarative_base
import enum


def utc_now():
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


Base = declarative_base()


class PageType(enum.Enum):
    """Kind of published content."""
    ARTICLE = "ARTICLE"
    COMPARISON = "COMPARISON"
    TOPIC = "TOPIC"


class Article(Base):
    """
    A generated blog article (PageType.ARTICLE).

    Title is unique-ish by content policy only; slug carries the hard
    uniqueness constraint and is the last line of defence against duplicates.
    """
    __tablename__ = "articles"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    title = Column(Text, nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)

    content = Column(Text, nullable=False)  # Markdown with injected links
    excerpt = Column(Text)
    meta_description = Column(Text)
    keywords = Column(ARRAY(Text), default=list)

    featured_image = Column(Text)  # URL or local /images/... path
    article_images = Column(ARRAY(Text), default=list)

    published = Column(Boolean, nullable=False, default=True)
    published_at = Column(DateTime(timezone=True), default=utc_now)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        Index('idx_articles_published_at', published_at.desc()),
    )


class Page(Base):
    """
    A comparison or topic landing page (PageType.COMPARISON / PageType.TOPIC).
    """
    __tablename__ = "pages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    type = Column(
        Enum(PageType, name="page_type", values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        index=True,
    )
    title = Column(Text, nullable=False)
    slug = Column(String(255), unique=True, nullable=False, index=True)

    content = Column(Text, nullable=False)
    excerpt = Column(Text)
    meta_description = Column(Text)
    keywords = Column(ARRAY(Text), default=list)

    cover_image = Column(Text)
    section_images = Column(ARRAY(Text), default=list)

    published = Column(Boolean, nullable=False, default=True)
    published_at = Column(DateTime(timezone=True), default=utc_now)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    __table_args__ = (
        Index('idx_pages_type_published', type, published),
    )
