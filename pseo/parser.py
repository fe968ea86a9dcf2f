"""
Resilient parser for model responses.

Models are asked for a single JSON object but regularly wrap it in code
fences, append commentary, or emit literal newlines inside string values.
parse() runs a tagged recovery chain over the response:

1. direct            - json.loads on the unwrapped object
2. repaired          - escape raw control characters inside string values, retry
3. manual_extraction - regex out each field independently

Whatever stage succeeds, the article must still pass the quality gate
(minimum length, no mid-sentence ending) or parse() returns None.
"""
import json
import re
from typing import Callable, List, Optional, Tuple

import structlog
from pydantic import ValidationError

from .errors import MalformedResponseError
from .schemas import GeneratedArticle

logger = structlog.get_logger()

MIN_CONTENT_LENGTH = 800

# Truncation heuristic: the last TAIL_WINDOW chars must contain a sentence end
# unless they are trivially short
TAIL_WINDOW = 100
TAIL_MIN_LENGTH = 20

_FENCE_OPEN = re.compile(r"^```[a-zA-Z]*[ \t]*\n?")
_FENCE_CLOSE = re.compile(r"\n?```$")
_SENTENCE_END = re.compile(r"[.!?](\s|$)")

# Balanced, escape-aware JSON string body
_QUOTED = r'"((?:[^"\\]|\\.)*)"'
_KEYWORDS_ARRAY = re.compile(r'"keywords"\s*:\s*\[([^\]]*)\]', re.DOTALL)
_QUOTED_ITEM = re.compile(_QUOTED, re.DOTALL)
_ESCAPE = re.compile(r"\\(.)", re.DOTALL)
_UNESCAPES = {"n": "\n", "r": "\r", "t": "\t", '"': '"', "\\": "\\"}


def _field_pattern(name: str) -> "re.Pattern[str]":
    return re.compile(rf'"{name}"\s*:\s*{_QUOTED}', re.DOTALL)


_FIELD_PATTERNS = {
    name: _field_pattern(name)
    for name in ("title", "content", "excerpt", "metaDescription")
}


# =============================================================================
# PRE-PROCESSING
# =============================================================================

def strip_wrapping(raw_text: str) -> str:
    """
    Remove code fences and anything outside the outermost JSON object.

    Returns the substring from the first '{' to the last '}' when both exist,
    otherwise the de-fenced text unchanged.
    """
    text = raw_text.strip()
    text = _FENCE_OPEN.sub("", text)
    text = _FENCE_CLOSE.sub("", text).strip()

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return text[start:end + 1]
    return text


def repair_control_characters(text: str) -> str:
    """
    Escape literal control characters that appear inside JSON string values.

    Newline, carriage return and tab become their two-character escapes;
    any other control byte inside a string is dropped. Characters outside
    string values are passed through, so already-valid JSON is unchanged.
    """
    out = []
    in_string = False
    escape_next = False

    for char in text:
        if escape_next:
            out.append(char)
            escape_next = False
            continue

        if char == "\\":
            escape_next = True
            out.append(char)
            continue

        if char == '"':
            in_string = not in_string
            out.append(char)
            continue

        if not in_string:
            out.append(char)
        elif char == "\n":
            out.append("\\n")
        elif char == "\r":
            out.append("\\r")
        elif char == "\t":
            out.append("\\t")
        elif ord(char) < 32 or ord(char) == 127:
            continue
        else:
            out.append(char)

    return "".join(out)


def unescape(value: str) -> str:
    """Undo the JSON escapes a model is likely to emit (\\n \\r \\t \\" \\\\)."""
    return _ESCAPE.sub(lambda m: _UNESCAPES.get(m.group(1), m.group(0)), value)


# =============================================================================
# RECOVERY STAGES
# =============================================================================

def _article_from_json(text: str) -> GeneratedArticle:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"invalid JSON: {e}") from e

    if not isinstance(data, dict):
        raise MalformedResponseError(f"expected a JSON object, got {type(data).__name__}")

    try:
        return GeneratedArticle.model_validate(data)
    except (ValidationError, TypeError, ValueError) as e:
        raise MalformedResponseError(f"missing or invalid fields: {e}") from e


def parse_direct(text: str) -> GeneratedArticle:
    """Stage 1: standard JSON parsing."""
    return _article_from_json(text)


def parse_repaired(text: str) -> GeneratedArticle:
    """Stage 2: JSON parsing after control-character repair."""
    return _article_from_json(repair_control_characters(text))


def _extract_keywords(text: str) -> List[str]:
    match = _KEYWORDS_ARRAY.search(text)
    if not match:
        return []
    try:
        keywords = json.loads(f"[{match.group(1)}]")
        return [str(k) for k in keywords]
    except json.JSONDecodeError:
        return [unescape(m) for m in _QUOTED_ITEM.findall(match.group(1))]


def extract_fields(text: str) -> GeneratedArticle:
    """
    Stage 3: pull each field out independently.

    Tolerates a broken document as long as title, content and excerpt are
    individually well-formed quoted strings. metaDescription falls back to
    the excerpt.
    """
    values = {}
    for name, pattern in _FIELD_PATTERNS.items():
        match = pattern.search(text)
        if match:
            values[name] = unescape(match.group(1))

    missing = [name for name in ("title", "content", "excerpt") if name not in values]
    if missing:
        raise MalformedResponseError(f"could not extract fields: {', '.join(missing)}")

    return GeneratedArticle(
        title=values["title"],
        content=values["content"],
        excerpt=values["excerpt"],
        keywords=_extract_keywords(text),
        metaDescription=values.get("metaDescription") or values["excerpt"],
    )


RECOVERY_CHAIN: List[Tuple[str, Callable[[str], GeneratedArticle]]] = [
    ("direct", parse_direct),
    ("repaired", parse_repaired),
    ("manual_extraction", extract_fields),
]


def recover_article(text: str) -> Tuple[str, GeneratedArticle]:
    """
    Run the recovery chain on already-unwrapped text.

    Returns:
        (stage_name, article) for the first stage that succeeds

    Raises:
        MalformedResponseError: if every stage fails
    """
    last_error: Optional[MalformedResponseError] = None
    for name, attempt in RECOVERY_CHAIN:
        try:
            return name, attempt(text)
        except MalformedResponseError as e:
            logger.debug("parse_stage_failed", stage=name, error=str(e)[:200])
            last_error = e
    raise MalformedResponseError(f"all recovery stages failed: {last_error}") from last_error


# =============================================================================
# QUALITY GATE
# =============================================================================

def looks_truncated(content: str) -> bool:
    """True when the tail of the content has no sentence-ending punctuation."""
    tail = content[-TAIL_WINDOW:].strip()
    return len(tail) > TAIL_MIN_LENGTH and not _SENTENCE_END.search(tail)


def passes_quality_gate(article: GeneratedArticle) -> bool:
    if len(article.content) < MIN_CONTENT_LENGTH:
        logger.warning("content_too_short", length=len(article.content))
        return False
    if looks_truncated(article.content):
        logger.warning("content_truncated", tail=article.content[-60:])
        return False
    return True


def parse(raw_text: str) -> Optional[GeneratedArticle]:
    """
    Convert a raw model response into a GeneratedArticle.

    Returns None when no stage recovers the required fields or the result
    fails the quality gate. Never raises on bad input.
    """
    if not raw_text or not raw_text.strip():
        logger.warning("empty_model_response")
        return None

    text = strip_wrapping(raw_text)

    try:
        stage, article = recover_article(text)
    except MalformedResponseError as e:
        logger.error("response_unparseable", error=str(e)[:300], preview=raw_text[:200])
        return None

    if stage != "direct":
        logger.info("response_recovered", stage=stage)

    if not passes_quality_gate(article):
        return None

    return article
