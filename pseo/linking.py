"""
Paragraph-scoped internal link injection for markdown articles.

For every paragraph, each link candidate may turn its first eligible
occurrence into `[text](url)`. A candidate is linked at most once per
paragraph, and text that already sits inside a markdown link (either the
`[...]` label or the `(...)` target) is never touched.
"""
import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, List, Set

import structlog

from .schemas import LinkCandidate

logger = structlog.get_logger()

_PARAGRAPH_BREAK = re.compile(r"(\n\n+)")


@dataclass
class LinkScanState:
    """
    Bracket/paren balance of the text scanned so far.

    A position is inside a link label when more '[' than ']' have been seen,
    and inside a link target when brackets are balanced but more '(' than
    ')' have been seen.
    """
    open_brackets: int = 0
    close_brackets: int = 0
    open_parens: int = 0
    close_parens: int = 0

    def feed(self, text: str) -> "LinkScanState":
        for char in text:
            if char == "[":
                self.open_brackets += 1
            elif char == "]":
                self.close_brackets += 1
            elif char == "(":
                self.open_parens += 1
            elif char == ")":
                self.close_parens += 1
        return self

    @property
    def inside_bracket(self) -> bool:
        return self.open_brackets > self.close_brackets

    @property
    def inside_paren(self) -> bool:
        return self.open_brackets == self.close_brackets and self.open_parens > self.close_parens

    @property
    def inside_link(self) -> bool:
        return self.inside_bracket or self.inside_paren


@lru_cache(maxsize=1024)
def _candidate_pattern(text: str) -> "re.Pattern[str]":
    # Lookarounds instead of \b so texts ending in punctuation ("NAD+") still match
    return re.compile(rf"(?<!\w){re.escape(text)}(?!\w)", re.IGNORECASE)


def is_inside_link(text: str, offset: int) -> bool:
    """True if `offset` in `text` falls within an existing markdown link."""
    return LinkScanState().feed(text[:offset]).inside_link


def inject_paragraph(paragraph: str, candidates: Iterable[LinkCandidate]) -> str:
    """Inject links into a single paragraph."""
    linked_concepts: Set[str] = set()

    for candidate in candidates:
        concept = candidate.text.lower()
        if not concept.strip() or concept in linked_concepts:
            continue

        markdown_link = f"[{candidate.text}]({candidate.url})"
        if markdown_link in paragraph:
            linked_concepts.add(concept)
            continue

        match = _candidate_pattern(candidate.text).search(paragraph)
        if not match:
            continue

        # Only the first occurrence is eligible; if it is already part of a
        # link the paragraph is left alone for this candidate
        if is_inside_link(paragraph, match.start()):
            continue

        paragraph = paragraph[:match.start()] + markdown_link + paragraph[match.end():]
        linked_concepts.add(concept)

    return paragraph


def inject(content: str, candidates: List[LinkCandidate]) -> str:
    """
    Add internal links to markdown content.

    Paragraphs are split on blank lines and processed independently; the
    original paragraph separators are preserved.

    Args:
        content: Markdown article body
        candidates: Link candidates, tried in order

    Returns:
        Content with at most one new link per candidate per paragraph
    """
    if not content or not candidates:
        return content

    parts = _PARAGRAPH_BREAK.split(content)
    # split() with a capture group alternates paragraph, separator, paragraph, ...
    result = "".join(
        part if index % 2 else inject_paragraph(part, candidates)
        for index, part in enumerate(parts)
    )

    logger.debug(
        "links_injected",
        candidates=len(candidates),
        links_added=result.count("](") - content.count("]("),
    )
    return result
