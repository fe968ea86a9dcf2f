"""
Generation orchestrator: the batch loop.

For each claimed work item: pre-check against the existing-content
snapshot, ask the model for an article, recover it with the resilient
parser, acquire images, inject internal links and persist. One item's
failure is logged and counted, never fatal to the batch.
"""
import random
from datetime import date
from typing import List, Optional

import structlog

from pseo_shared.models import PageType
from .catalog import COMPETITORS, INTENTS, SUBJECTS, TOPICS, LinkCatalog, comparison_slug
from .db_ops import ContentStore
from .errors import MalformedResponseError, PersistenceError, PipelineError
from .images import ImageAdapter, ImageSource
from .linking import inject
from .llm import ModelClient
from .parser import parse
from .prompts import (
    build_article_prompts,
    build_comparison_prompts,
    build_topic_page_prompts,
    cover_image_prompt,
    section_image_prompt,
)
from .scheduler import WorkQueue, collides, next_batch, slug_base
from .schemas import ExistingContent, GeneratedArticle, LinkCandidate, PipelineSettings, PublishedPage, RunResult, WorkItem
from .seo import clamp_meta_description, section_headings, slugify, unique_slug
from .throttle import Throttle

logger = structlog.get_logger()

GENERATED = "generated"
SKIPPED = "skipped"
ERRORED = "errored"
DRY_RUN = "dry_run"

MAX_SECTION_IMAGES = 3


def summarize(generated: int, skipped: int, errors: int, noun: str = "posts") -> str:
    return f"Generated {generated} {noun}, skipped {skipped} duplicates, {errors} errors"


class GenerationOrchestrator:
    """
    Runs batches of content generation against injected collaborators.

    Args:
        model: Anything with `async complete(system_prompt, user_prompt) -> str`
        images: ImageAdapter (or an object with the same acquire_image)
        store: ContentStore (or an in-memory stand-in)
        catalog: Link catalog for product/navigation candidates
        throttle: Fixed-interval sleeps between calls and items
        queue: Backlog of work items
        dry_run: Log what would be generated without calling the model
        rng: Random source for shuffling, title suggestions and slug suffixes
        today: Date used in prompts (defaults to the current date)
    """

    def __init__(
        self,
        model,
        images,
        store,
        catalog: Optional[LinkCatalog] = None,
        throttle: Optional[Throttle] = None,
        queue: Optional[WorkQueue] = None,
        dry_run: bool = False,
        rng: Optional[random.Random] = None,
        today: Optional[date] = None,
    ):
        self.model = model
        self.images = images
        self.store = store
        self.catalog = catalog or LinkCatalog()
        self.throttle = throttle or Throttle()
        self.queue = queue or WorkQueue(SUBJECTS, TOPICS, INTENTS, COMPETITORS)
        self.dry_run = dry_run
        self.rng = rng or random.Random()
        self.today = today

    @classmethod
    def from_settings(cls, settings: PipelineSettings) -> "GenerationOrchestrator":
        """Wire the production collaborators from environment-derived settings."""
        return cls(
            model=ModelClient(settings.llm),
            images=ImageAdapter(ImageSource(settings.image), settings.image),
            store=ContentStore(),
            throttle=Throttle(settings.call_interval, settings.item_interval),
            dry_run=settings.dry_run,
        )

    # =========================================================================
    # ARTICLE BATCHES
    # =========================================================================

    async def run(self, batch_size: int) -> RunResult:
        """Snapshot existing content, claim a batch and process it."""
        try:
            existing = await self.store.find_existing_titles_and_slugs()
        except PersistenceError as e:
            logger.error("batch_aborted", reason="existing_content_unavailable", error=str(e))
            return RunResult(success=False, message=f"Could not read existing content: {e}")

        batch = next_batch(self.queue, existing, batch_size, self.rng)
        if not batch:
            logger.info("batch_empty", backlog=len(self.queue))
        return await self.process_batch(batch, existing)

    async def process_batch(self, batch: List[WorkItem], existing: ExistingContent) -> RunResult:
        """
        Process items sequentially and aggregate outcomes.

        The batch may have been claimed earlier, so every item is checked
        against `existing` again before any upstream call.
        """
        counts = {GENERATED: 0, SKIPPED: 0, ERRORED: 0, DRY_RUN: 0}

        for index, item in enumerate(batch):
            outcome = await self.process_item(item, existing)
            counts[outcome] += 1
            if outcome in (GENERATED, ERRORED) and index < len(batch) - 1:
                await self.throttle.after_item()

        result = RunResult(
            generated=counts[GENERATED],
            skipped=counts[SKIPPED],
            errors=counts[ERRORED],
            message=summarize(counts[GENERATED], counts[SKIPPED], counts[ERRORED]),
        )
        logger.info(
            "batch_complete",
            generated=result.generated,
            skipped=result.skipped,
            errors=result.errors,
            dry_run=counts[DRY_RUN],
        )
        return result

    async def process_item(self, item: WorkItem, existing: ExistingContent) -> str:
        """Run one work item to completion and return its outcome."""
        label = item.describe()

        if collides(item, existing):
            logger.info("item_skipped_duplicate", item=label)
            return SKIPPED

        if self.dry_run:
            logger.info("dry_run_item", item=label)
            return DRY_RUN

        try:
            slug = await self._generate_article(item)
        except PipelineError as e:
            logger.error("item_failed", item=label, error_type=type(e).__name__, error=str(e))
            return ERRORED
        except Exception as e:
            logger.exception("item_unexpected_error", item=label, error=str(e))
            return ERRORED

        logger.info("article_generated", item=label, slug=slug)
        return GENERATED

    async def _complete(self, system_prompt: str, user_prompt: str) -> GeneratedArticle:
        try:
            raw = await self.model.complete(system_prompt, user_prompt)
        finally:
            await self.throttle.after_call()

        article = parse(raw)
        if article is None:
            raise MalformedResponseError("Model response could not be recovered into a complete article")
        return article

    async def _generate_article(self, item: WorkItem) -> str:
        system_prompt, user_prompt = build_article_prompts(item, self.rng, self.today)
        article = await self._complete(system_prompt, user_prompt)

        slug = unique_slug(article.title, self.rng, fallback=slug_base(item))

        cover_image = await self.images.acquire_image(cover_image_prompt(item), slug)
        await self.throttle.after_call()

        section_images = []
        for number, heading in enumerate(section_headings(article.content, MAX_SECTION_IMAGES), start=1):
            image = await self.images.acquire_image(
                section_image_prompt(item, heading),
                f"{slug}-section-{number}",
                fallback=None,
            )
            await self.throttle.after_call()
            if image:
                section_images.append(image)

        candidates = (
            self.catalog.candidates_for_subject(item.subject)
            + self.catalog.navigation_links()
            + await self._published_links()
        )
        content = inject(article.content, candidates)

        page = PublishedPage(
            type=PageType.ARTICLE,
            slug=slug,
            title=article.title,
            content=content,
            excerpt=article.excerpt,
            meta_description=clamp_meta_description(article.meta_description or article.excerpt),
            keywords=article.keywords,
            cover_image=cover_image,
            section_images=section_images,
        )
        await self.store.create(page)
        return slug

    async def _published_links(self) -> List[LinkCandidate]:
        links: List[LinkCandidate] = []
        for page_type in (PageType.COMPARISON, PageType.TOPIC):
            links.extend(await self.store.list_published(page_type))
        return links

    # =========================================================================
    # COMPARISON AND TOPIC PAGES
    # =========================================================================

    async def run_pages(self, comparison_batch: int = 2, topic_batch: int = 2) -> RunResult:
        """
        Generate "Brand vs Competitor" and subject guide pages whose
        deterministic slug is not yet published.
        """
        try:
            existing = await self.store.find_existing_titles_and_slugs()
        except PersistenceError as e:
            logger.error("pages_aborted", reason="existing_content_unavailable", error=str(e))
            return RunResult(success=False, message=f"Could not read existing content: {e}")

        published = {slug.lower() for slug in existing.slugs}
        comparisons = [(c, comparison_slug(c)) for c in self.queue.competitors]
        topics = [(s, slugify(s)) for s in self.queue.subjects]

        pending_comparisons = [(c, slug) for c, slug in comparisons if slug not in published]
        pending_topics = [(s, slug) for s, slug in topics if slug not in published]
        skipped = (len(comparisons) - len(pending_comparisons)) + (len(topics) - len(pending_topics))

        jobs = [
            (PageType.COMPARISON, slug, competitor, build_comparison_prompts(competitor))
            for competitor, slug in pending_comparisons[:max(comparison_batch, 0)]
        ] + [
            (PageType.TOPIC, slug, subject, build_topic_page_prompts(subject))
            for subject, slug in pending_topics[:max(topic_batch, 0)]
        ]

        counts = {GENERATED: 0, ERRORED: 0, DRY_RUN: 0}
        for index, (page_type, slug, label, prompts) in enumerate(jobs):
            outcome = await self.process_page(page_type, slug, label, prompts)
            counts[outcome] += 1
            if outcome != DRY_RUN and index < len(jobs) - 1:
                await self.throttle.after_item()

        result = RunResult(
            generated=counts[GENERATED],
            skipped=skipped,
            errors=counts[ERRORED],
            message=summarize(counts[GENERATED], skipped, counts[ERRORED], noun="pages"),
        )
        logger.info("pages_complete", generated=result.generated, skipped=result.skipped, errors=result.errors)
        return result

    async def process_page(self, page_type: PageType, slug: str, label: str, prompts) -> str:
        if self.dry_run:
            logger.info("dry_run_page", type=page_type.value, slug=slug, label=label)
            return DRY_RUN

        try:
            article = await self._complete(*prompts)
            candidates = self.catalog.product_links() + await self._published_links()
            page = PublishedPage(
                type=page_type,
                slug=slug,
                title=article.title,
                content=inject(article.content, candidates),
                excerpt=article.excerpt,
                meta_description=clamp_meta_description(article.meta_description or article.excerpt),
                keywords=article.keywords,
            )
            await self.store.create(page)
        except PipelineError as e:
            logger.error("page_failed", type=page_type.value, slug=slug, error_type=type(e).__name__, error=str(e))
            return ERRORED
        except Exception as e:
            logger.exception("page_unexpected_error", type=page_type.value, slug=slug, error=str(e))
            return ERRORED

        logger.info("page_generated", type=page_type.value, slug=slug, label=label)
        return GENERATED
