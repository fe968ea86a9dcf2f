"""Tests for the ContentStore (with an in-memory session) and environment settings."""
import asyncio
import uuid
from contextlib import asynccontextmanager

import pytest
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, OperationalError

from pseo.db_ops import ContentStore
from pseo.errors import PersistenceError
from pseo.schemas import LinkCandidate, LLMConfig, PipelineSettings, PublishedPage
from pseo_shared.database import normalize_database_url
from pseo_shared.models import Article, Page, PageType


class FakeResult:
    def __init__(self, rows):
        self.rows = rows

    def fetchall(self):
        return list(self.rows)


class FakeSession:
    """Just enough of AsyncSession for ContentStore."""

    def __init__(self, results=(), flush_error=None):
        self.results = list(results)
        self.flush_error = flush_error
        self.added = []
        self.statements = []

    async def execute(self, statement):
        self.statements.append(statement)
        if isinstance(self.results[0], Exception):
            raise self.results.pop(0)
        return FakeResult(self.results.pop(0))

    def add(self, row) -> None:
        self.added.append(row)

    async def flush(self) -> None:
        if self.flush_error is not None:
            raise self.flush_error
        for row in self.added:
            row.id = uuid.UUID(int=len(self.added))


def store_for(session: FakeSession) -> ContentStore:
    @asynccontextmanager
    async def factory():
        yield session

    return ContentStore(session_factory=factory)


def make_page(page_type: PageType = PageType.ARTICLE, slug: str = "bpc-157-guide-12") -> PublishedPage:
    return PublishedPage(
        type=page_type,
        slug=slug,
        title="BPC-157 Guide",
        content="Body.",
        excerpt="Excerpt.",
        meta_description="Meta.",
        keywords=["bpc-157"],
        cover_image="/images/blog/cover.jpg",
        section_images=["/images/blog/s1.jpg"],
    )


def test_existing_snapshot_merges_both_tables() -> None:
    session = FakeSession(results=[
        [("Article One", "article-one-1")],
        [("Purgo vs Core", "purgo-labs-vs-core-peptides"), ("BPC-157", "bpc-157")],
    ])

    existing = asyncio.run(store_for(session).find_existing_titles_and_slugs())

    assert existing.titles == ["Article One", "Purgo vs Core", "BPC-157"]
    assert existing.slugs == ["article-one-1", "purgo-labs-vs-core-peptides", "bpc-157"]


def test_articles_go_to_the_articles_table() -> None:
    session = FakeSession()

    row_id = asyncio.run(store_for(session).create(make_page()))

    row = session.added[0]
    assert isinstance(row, Article)
    assert row.featured_image == "/images/blog/cover.jpg"
    assert row.article_images == ["/images/blog/s1.jpg"]
    assert row_id == str(uuid.UUID(int=1))


def test_landing_pages_go_to_the_pages_table() -> None:
    session = FakeSession()

    asyncio.run(store_for(session).create(make_page(PageType.TOPIC, slug="bpc-157")))

    row = session.added[0]
    assert isinstance(row, Page)
    assert row.type == PageType.TOPIC
    assert row.cover_image == "/images/blog/cover.jpg"


def test_slug_conflict_becomes_persistence_error() -> None:
    session = FakeSession(flush_error=IntegrityError("INSERT INTO articles", {}, Exception("duplicate key")))

    with pytest.raises(PersistenceError):
        asyncio.run(store_for(session).create(make_page()))


def test_database_failure_becomes_persistence_error() -> None:
    session = FakeSession(results=[OperationalError("SELECT", {}, Exception("connection refused"))])

    with pytest.raises(PersistenceError):
        asyncio.run(store_for(session).find_existing_titles_and_slugs())


def test_list_published_builds_public_urls() -> None:
    session = FakeSession(results=[[("Purgo Style Labs vs Swiss Chems", "purgo-labs-vs-swiss-chems")]])

    links = asyncio.run(store_for(session).list_published(PageType.COMPARISON))

    assert links == [
        LinkCandidate(text="Purgo Style Labs vs Swiss Chems", url="/compare/purgo-labs-vs-swiss-chems"),
    ]


def test_database_url_is_normalised_to_asyncpg() -> None:
    assert normalize_database_url("postgres://u:p@h/db") == "postgresql+asyncpg://u:p@h/db"
    assert normalize_database_url("postgresql://u:p@h/db") == "postgresql+asyncpg://u:p@h/db"
    assert normalize_database_url("postgresql+asyncpg://u:p@h/db") == "postgresql+asyncpg://u:p@h/db"


def test_settings_from_env(monkeypatch) -> None:
    monkeypatch.setenv("LLM_PROVIDER", "openai")
    monkeypatch.delenv("LLM_MODEL", raising=False)
    monkeypatch.setenv("LLM_TEMPERATURE", "0.3")
    monkeypatch.setenv("IMAGE_PROVIDER", "placeholder")
    monkeypatch.setenv("PSEO_BATCH_SIZE", "3")
    monkeypatch.setenv("PSEO_CALL_INTERVAL", "0")
    monkeypatch.setenv("DRY_RUN", "true")

    settings = PipelineSettings.from_env()

    assert settings.llm.provider == "openai"
    assert settings.llm.resolved_model == "gpt-4o-mini"
    assert settings.llm.temperature == 0.3
    assert settings.image.provider == "placeholder"
    assert settings.batch_size == 3
    assert settings.call_interval == 0
    assert settings.dry_run is True


def test_temperature_is_range_checked() -> None:
    with pytest.raises(ValidationError):
        LLMConfig(temperature=3)
