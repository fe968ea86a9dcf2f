"""
Database operations for the content pipeline (the Persistence Sink).

ARTICLE pages live in the articles table; COMPARISON and TOPIC pages live
in the pages table. The slug unique constraint on both tables is the hard
duplicate backstop; everything else is best-effort.
"""
from contextlib import AbstractAsyncContextManager
from typing import Callable, List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from pseo_shared.database import get_db_session
from pseo_shared.models import Article, Page, PageType
from .errors import PersistenceError
from .schemas import ExistingContent, LinkCandidate, PublishedPage

logger = structlog.get_logger()

SessionFactory = Callable[[], AbstractAsyncContextManager[AsyncSession]]

# Public URL base per page type
URL_BASES = {
    PageType.ARTICLE: "/blog",
    PageType.COMPARISON: "/compare",
    PageType.TOPIC: "/peptides",
}


class ContentStore:
    """
    Async store for published content.

    Args:
        session_factory: Async context manager yielding a session
            (defaults to pseo_shared.database.get_db_session)
    """

    def __init__(self, session_factory: Optional[SessionFactory] = None):
        self._session = session_factory or get_db_session

    # =========================================================================
    # READS
    # =========================================================================

    async def find_existing_titles_and_slugs(self) -> ExistingContent:
        """
        Snapshot of every published title and slug across both tables (for dedup).
        """
        try:
            async with self._session() as db:
                article_rows = await db.execute(select(Article.title, Article.slug))
                page_rows = await db.execute(select(Page.title, Page.slug))
                rows = list(article_rows.fetchall()) + list(page_rows.fetchall())
        except SQLAlchemyError as e:
            logger.error("existing_content_fetch_failed", error=str(e))
            raise PersistenceError(f"Could not read existing content: {e}") from e

        existing = ExistingContent(
            titles=[row[0] for row in rows if row[0]],
            slugs=[row[1] for row in rows if row[1]],
        )
        logger.info("existing_content_fetched", titles=len(existing.titles), slugs=len(existing.slugs))
        return existing

    async def list_published(self, page_type: PageType) -> List[LinkCandidate]:
        """Published pages of one type as link candidates (title -> public URL)."""
        model = Article if page_type == PageType.ARTICLE else Page
        query = select(model.title, model.slug).where(model.published.is_(True))
        if model is Page:
            query = query.where(Page.type == page_type)

        try:
            async with self._session() as db:
                result = await db.execute(query.order_by(model.published_at.desc()))
                rows = result.fetchall()
        except SQLAlchemyError as e:
            logger.error("published_pages_fetch_failed", type=page_type.value, error=str(e))
            raise PersistenceError(f"Could not list {page_type.value} pages: {e}") from e

        base = URL_BASES[page_type]
        return [LinkCandidate(text=title, url=f"{base}/{slug}") for title, slug in rows]

    # =========================================================================
    # WRITES
    # =========================================================================

    async def create(self, page: PublishedPage) -> str:
        """
        Insert one published page and return the new row id.

        Raises:
            PersistenceError: slug already taken or any database failure
        """
        if page.type == PageType.ARTICLE:
            row = Article(
                title=page.title,
                slug=page.slug,
                content=page.content,
                excerpt=page.excerpt,
                meta_description=page.meta_description,
                keywords=list(page.keywords),
                featured_image=page.cover_image,
                article_images=list(page.section_images),
                published=True,
            )
        else:
            row = Page(
                type=page.type,
                title=page.title,
                slug=page.slug,
                content=page.content,
                excerpt=page.excerpt,
                meta_description=page.meta_description,
                keywords=list(page.keywords),
                cover_image=page.cover_image,
                section_images=list(page.section_images),
                published=True,
            )

        try:
            async with self._session() as db:
                db.add(row)
                await db.flush()
                row_id = str(row.id)
        except IntegrityError as e:
            logger.warning("page_slug_conflict", slug=page.slug, type=page.type.value)
            raise PersistenceError(f"Slug already exists: {page.slug}") from e
        except SQLAlchemyError as e:
            logger.error("page_create_failed", slug=page.slug, error=str(e))
            raise PersistenceError(f"Could not save {page.slug}: {e}") from e

        logger.info("page_created", id=row_id, slug=page.slug, type=page.type.value, title=page.title[:80])
        return row_id
