"""Tests for the resilient model-response parser."""
import json

from pseo.parser import (
    MIN_CONTENT_LENGTH,
    parse,
    recover_article,
    repair_control_characters,
    strip_wrapping,
    unescape,
)
from tests.fakes import article_json, long_content

BROKEN_TEMPLATE = '{{"title": "Broken JSON Guide" "content": {content}, "excerpt": "Short excerpt.", "keywords": ["bpc-157", "research"]}}'


def test_valid_json_with_850_char_content_is_accepted() -> None:
    content = "A" * 849 + "."
    raw = json.dumps({
        "title": "BPC-157 Guide",
        "content": content,
        "excerpt": "Guide excerpt.",
        "keywords": ["bpc-157"],
        "metaDescription": "Meta.",
    })

    article = parse(raw)

    assert article is not None
    assert article.title == "BPC-157 Guide"
    assert article.content == content
    assert article.meta_description == "Meta."


def test_short_content_is_rejected() -> None:
    raw = article_json(content="B" * 199 + ".")
    assert parse(raw) is None


def test_short_content_is_rejected_from_every_stage() -> None:
    short = "Too short. " * 10
    assert len(short) < MIN_CONTENT_LENGTH

    direct = article_json(content=short)
    repaired = article_json(content="Line one.\nLine two.").replace("\\n", "\n")
    extracted = BROKEN_TEMPLATE.format(content=json.dumps(short))

    assert parse(direct) is None
    assert parse(repaired) is None
    assert parse(extracted) is None


def test_repair_is_noop_on_valid_json() -> None:
    raw = article_json()
    assert repair_control_characters(raw) == raw


def test_literal_newlines_inside_strings_survive_repair() -> None:
    raw = '{"content": "first line\nsecond\tline"}'

    repaired = repair_control_characters(raw)

    assert repaired == '{"content": "first line\\nsecond\\tline"}'
    assert json.loads(repaired)["content"] == "first line\nsecond\tline"


def test_repair_drops_other_control_bytes_inside_strings_only() -> None:
    raw = '{"a": "x\x07y"}\n'
    assert repair_control_characters(raw) == '{"a": "xy"}\n'


def test_code_fences_and_chatter_are_stripped() -> None:
    body = article_json()
    raw = "Here is your article:\n```json\n" + body + "\n```"

    assert strip_wrapping("```json\n" + body + "\n```") == body
    assert strip_wrapping(raw) == body
    assert parse(raw) is not None


def test_recovery_chain_reports_the_stage_that_succeeded() -> None:
    content = long_content()
    with_literal_newlines = article_json(content=content).replace("\\n", "\n")
    broken = BROKEN_TEMPLATE.format(content=json.dumps(content))

    assert recover_article(article_json(content=content))[0] == "direct"

    stage, article = recover_article(with_literal_newlines)
    assert stage == "repaired"
    assert article.content == content

    stage, article = recover_article(broken)
    assert stage == "manual_extraction"
    assert article.content == content


def test_manual_extraction_falls_back_to_excerpt_for_meta_description() -> None:
    broken = BROKEN_TEMPLATE.format(content=json.dumps(long_content()))

    article = parse(broken)

    assert article is not None
    assert article.title == "Broken JSON Guide"
    assert article.meta_description == "Short excerpt."
    assert article.keywords == ["bpc-157", "research"]


def test_missing_required_field_returns_none() -> None:
    raw = json.dumps({"title": "No Excerpt", "content": long_content()})
    assert parse(raw) is None


def test_missing_meta_description_defaults_to_excerpt() -> None:
    article = parse(article_json(meta_description=None))
    assert article is not None
    assert article.meta_description == article.excerpt


def test_comma_separated_keywords_become_a_list() -> None:
    article = parse(article_json(keywords="buy bpc-157, bpc-157 supplier ,"))
    assert article is not None
    assert article.keywords == ["buy bpc-157", "bpc-157 supplier"]


def test_scalar_keywords_fall_through_to_field_extraction() -> None:
    for scalar in (5, True, {"a": 1}):
        raw = json.dumps({
            "title": "A",
            "content": long_content(),
            "excerpt": "e",
            "keywords": scalar,
            "metaDescription": "m",
        })

        stage, article = recover_article(raw)

        assert stage == "manual_extraction"
        assert article.title == "A"
        assert article.keywords == []
        assert article.meta_description == "m"
        assert parse(raw) is not None


def test_truncated_content_is_rejected() -> None:
    tail = (
        "and the next part of this guide covers storage temperatures, reconstitution "
        "steps, vial handling and the way researchers label"
    )
    assert len(tail) > 100

    assert parse(article_json(content=long_content() + "\n\n" + tail)) is None


def test_content_ending_in_question_or_exclamation_passes() -> None:
    assert parse(article_json(content=long_content() + " Ready to order?")) is not None
    assert parse(article_json(content=long_content() + " Order today!")) is not None


def test_garbage_and_empty_responses_return_none() -> None:
    assert parse("") is None
    assert parse("   ") is None
    assert parse("I'm sorry, I can't help with that.") is None
    assert parse("[1, 2, 3]") is None


def test_unescape_handles_known_escapes_only() -> None:
    assert unescape(r'say \"hi\"\nnext\\line') == 'say "hi"\nnext\\line'
    assert unescape(r"caf\u00e9") == r"caf\u00e9"
