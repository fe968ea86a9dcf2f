"""In-memory fakes and builders shared by the pipeline tests."""
import json
from typing import Dict, List, Optional

from pseo.errors import PersistenceError
from pseo.schemas import ExistingContent, LinkCandidate, PublishedPage
from pseo_shared.models import PageType


def long_content(sentence: str = "BPC-157 is studied in laboratory research settings.", minimum: int = 850) -> str:
    """Markdown body of at least `minimum` characters that ends on a full stop."""
    paragraphs = ["## Overview"]
    while len("\n\n".join(paragraphs)) < minimum:
        paragraphs.append(" ".join([sentence] * 3))
    return "\n\n".join(paragraphs)


def article_json(
    title: str = "Where Researchers Source BPC-157",
    content: Optional[str] = None,
    excerpt: str = "A practical guide to sourcing BPC-157 for research.",
    keywords=None,
    meta_description: Optional[str] = "Buy BPC-157 online from a trusted research supplier.",
) -> str:
    data = {
        "title": title,
        "content": content if content is not None else long_content(),
        "excerpt": excerpt,
        "keywords": keywords if keywords is not None else ["buy bpc-157", "bpc-157 supplier"],
    }
    if meta_description is not None:
        data["metaDescription"] = meta_description
    return json.dumps(data)


class FakeClock:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.sleeps: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.sleeps.append(seconds)


class FakeModel:
    """Returns queued responses in order; exceptions in the queue are raised."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls: List[Dict[str, str]] = []

    async def complete(self, system_prompt: str, user_prompt: str, temperature=None, max_tokens=None) -> str:
        self.calls.append({"system": system_prompt, "user": user_prompt})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeImages:
    """Stands in for ImageAdapter; every acquisition succeeds unless `fail` is set."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls: List[Dict[str, Optional[str]]] = []

    async def acquire_image(self, prompt: str, slug: str, fallback: Optional[str] = "https://stock.example/fallback.jpg"):
        self.calls.append({"prompt": prompt, "slug": slug, "fallback": fallback})
        if self.fail:
            return fallback
        return f"/images/blog/{slug}.jpg"


class FakeStore:
    """In-memory ContentStore with the same async interface."""

    def __init__(self, existing: Optional[ExistingContent] = None, fail_creates: int = 0, published=None):
        self.existing = existing or ExistingContent()
        self.fail_creates = fail_creates
        self.published: Dict[PageType, List[LinkCandidate]] = published or {}
        self.created: List[PublishedPage] = []

    async def find_existing_titles_and_slugs(self) -> ExistingContent:
        return self.existing

    async def list_published(self, page_type: PageType) -> List[LinkCandidate]:
        return list(self.published.get(page_type, []))

    async def create(self, page: PublishedPage) -> str:
        taken = {p.slug for p in self.created} | set(self.existing.slugs)
        if self.fail_creates > 0:
            self.fail_creates -= 1
            raise PersistenceError(f"Database unavailable while saving {page.slug}")
        if page.slug in taken:
            raise PersistenceError(f"Slug already exists: {page.slug}")
        self.created.append(page)
        return f"row-{len(self.created)}"
