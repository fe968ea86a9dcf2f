"""
Small SEO helpers shared by the scheduler and the orchestrator.
"""
import random
import re
from typing import List, Optional

_NON_SLUG = re.compile(r"[^a-z0-9]+")
_H2_HEADING = re.compile(r"^##\s+(.+)$", re.MULTILINE)

META_DESCRIPTION_MAX = 160


def slugify(text: str) -> str:
    """Lowercase, collapse every non-alphanumeric run to '-', trim dashes."""
    return _NON_SLUG.sub("-", text.lower()).strip("-")


def unique_slug(title: str, rng: Optional[random.Random] = None, fallback: str = "") -> str:
    """
    Slug from title plus a random 0-999 disambiguator.

    Titles with no ASCII letters or digits slugify to nothing; `fallback`
    (usually the work item's slug base) is used in their place.
    """
    rng = rng or random
    base = slugify(title) or slugify(fallback) or "article"
    return f"{base}-{rng.randint(0, 999)}"


def section_headings(content: str, limit: int = 3) -> List[str]:
    """Text of the first `limit` level-2 markdown headings."""
    return [m.strip() for m in _H2_HEADING.findall(content)][:limit]


def clamp_meta_description(description: str, max_length: int = META_DESCRIPTION_MAX) -> str:
    """Truncate a meta description with an ellipsis so it fits search snippets."""
    description = description.strip()
    if len(description) > max_length:
        description = description[: max_length - 3].rstrip() + "..."
    return description
