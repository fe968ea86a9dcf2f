#!/usr/bin/env python3
"""
Batch entry point for programmatic content generation.

Generates a batch of blog articles (default) or, with --pages, the
comparison and topic landing pages. Intended to be run from cron.

Usage:
    python scripts/generate_pseo_content.py --batch-size 5
    python scripts/generate_pseo_content.py --dry-run
    python scripts/generate_pseo_content.py --pages --comparison-batch 2 --topic-batch 2
"""
import argparse
import asyncio
import sys
from pathlib import Path

# Add parent to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import structlog

from pseo.orchestrator import GenerationOrchestrator
from pseo.schemas import PipelineSettings, RunResult
from pseo_shared.database import check_db_connection, engine

logger = structlog.get_logger()


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate SEO content with the configured model provider.")
    parser.add_argument("--batch-size", type=int, default=None, help="Articles per run (env PSEO_BATCH_SIZE, default 5)")
    parser.add_argument("--dry-run", action="store_true", help="Log what would be generated without calling the model")
    parser.add_argument("--pages", action="store_true", help="Generate comparison and topic pages instead of articles")
    parser.add_argument("--comparison-batch", type=int, default=2, help="Comparison pages per run")
    parser.add_argument("--topic-batch", type=int, default=2, help="Topic pages per run")
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    args = parse_args(argv)

    settings = PipelineSettings.from_env()
    if args.dry_run:
        settings.dry_run = True
    batch_size = args.batch_size or settings.batch_size

    logger.info(
        "generation_started",
        mode="pages" if args.pages else "articles",
        batch_size=batch_size,
        dry_run=settings.dry_run,
        llm_provider=settings.llm.provider,
        image_provider=settings.image.provider,
    )

    if not await check_db_connection():
        await engine.dispose()
        print("Database unavailable, nothing generated")
        return 1

    orchestrator = GenerationOrchestrator.from_settings(settings)
    try:
        if args.pages:
            result: RunResult = await orchestrator.run_pages(args.comparison_batch, args.topic_batch)
        else:
            result = await orchestrator.run(batch_size)
    finally:
        await engine.dispose()

    print(result.message)
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
