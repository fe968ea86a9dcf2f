"""Tests for slug/meta helpers, the link catalog and prompt builders."""
import random
from datetime import date

from pseo.catalog import (
    ABOUT_URL,
    CATALOG_URL,
    CatalogProduct,
    LinkCatalog,
    comparison_slug,
)
from pseo.linking import inject
from pseo.prompts import (
    build_article_prompts,
    build_topic_page_prompts,
    cover_image_prompt,
    section_image_prompt,
)
from pseo.schemas import LinkCandidate, WorkItem
from pseo.seo import clamp_meta_description, section_headings, slugify, unique_slug


def test_slugify_collapses_punctuation() -> None:
    assert slugify("Where to Buy BPC-157 Online: 2025 Guide!") == "where-to-buy-bpc-157-online-2025-guide"
    assert slugify("NAD+") == "nad"
    assert slugify("  --  ") == ""


def test_unique_slug_appends_suffix_in_range() -> None:
    rng = random.Random(5)
    for _ in range(50):
        base, _, suffix = unique_slug("BPC-157 Guide", rng).rpartition("-")
        assert base == "bpc-157-guide"
        assert 0 <= int(suffix) <= 999


def test_unique_slug_falls_back_when_title_has_no_ascii_alphanumerics() -> None:
    rng = random.Random(1)

    base, _, suffix = unique_slug("¿¡Péptidos!", rng, fallback="BPC-157 Research Benefits").rpartition("-")
    assert base == "p-ptidos"

    base, _, suffix = unique_slug("¿¡!", rng, fallback="BPC-157 Research Benefits").rpartition("-")
    assert base == "bpc-157-research-benefits"
    assert 0 <= int(suffix) <= 999

    assert unique_slug("日本語", rng).rpartition("-")[0] == "article"


def test_section_headings_only_reads_level_two() -> None:
    content = "# Title\n\n## First\n\ntext\n\n### Sub\n\n## Second \n\n## Third\n\n## Fourth"
    assert section_headings(content) == ["First", "Second", "Third"]


def test_clamp_meta_description() -> None:
    assert clamp_meta_description("  short  ") == "short"
    clamped = clamp_meta_description("word " * 50)
    assert len(clamped) <= 160
    assert clamped.endswith("...")


def test_subject_aliases_resolve_to_product_slug() -> None:
    catalog = LinkCatalog()

    assert catalog.resolve_product_slug("Tirzepatide") == "glp-2-trz"
    assert catalog.resolve_product_slug("Melanotan II") == "melatonin-ii"
    assert catalog.resolve_product_slug("Epitalon") == "epitalon"
    assert catalog.candidates_for_subject("Epitalon") == [
        LinkCandidate(text="Epitalon", url="/products/epitalon"),
    ]


def test_default_catalog_links_aliases_without_storefront_products() -> None:
    catalog = LinkCatalog()

    candidates = catalog.candidates_for_subject("Tirzepatide")

    assert [c.text for c in candidates] == ["Tirzepatide", "trizepitide", "tirze-patide", "glp-2 trz", "glp2 trz"]
    assert all(c.url == "/products/glp-2-trz" for c in candidates)
    assert inject("Buy trizepitide online.", candidates) == "Buy [trizepitide](/products/glp-2-trz) online."

    links = catalog.product_links()
    assert LinkCandidate(text="melanotan 2", url="/products/melatonin-ii") in links
    assert LinkCandidate(text="bpc157", url="/products/bpc-157") in links
    assert len([c for c in links if c.text.lower() == "bpc-157"]) == 1


def test_known_product_links_name_and_aliases() -> None:
    product = CatalogProduct(name="GLP-2 TRZ", slug="glp-2-trz")
    catalog = LinkCatalog(products=[product])

    candidates = catalog.candidates_for_subject("Tirzepatide")

    assert candidates[0] == LinkCandidate(text="GLP-2 TRZ", url="/products/glp-2-trz")
    assert LinkCandidate(text="trizepitide", url="/products/glp-2-trz") in candidates
    assert all(c.url == "/products/glp-2-trz" for c in candidates)


def test_product_links_cover_subjects_without_products() -> None:
    catalog = LinkCatalog(products=[CatalogProduct(name="BPC-157", slug="bpc-157")], subjects=["BPC-157", "Semax"])

    links = catalog.product_links()

    assert LinkCandidate(text="Semax", url="/products/semax") in links
    assert [c for c in links if c.text == "BPC-157"] == [LinkCandidate(text="BPC-157", url="/products/bpc-157")]
    assert LinkCandidate(text="Buy Peptides Online", url=CATALOG_URL) in links


def test_navigation_links() -> None:
    assert LinkCatalog.navigation_links() == [
        LinkCandidate(text="Shop", url=CATALOG_URL),
        LinkCandidate(text="Products", url=CATALOG_URL),
        LinkCandidate(text="About", url=ABOUT_URL),
    ]


def test_comparison_slug() -> None:
    assert comparison_slug("Limitless Life Nootropics") == "purgo-labs-vs-limitless-life-nootropics"


def test_article_prompt_carries_context_and_contract() -> None:
    item = WorkItem(subject="Semax", topic="Mechanism of Action", intent="third-party tested")

    system_prompt, user_prompt = build_article_prompts(item, random.Random(0), date(2025, 6, 15))

    assert "Purgo Style Labs" in system_prompt
    assert "Semax" in user_prompt
    assert '"third-party tested"' in user_prompt
    assert "June 2025" in user_prompt
    assert '"metaDescription"' in user_prompt
    assert "Competitor Analysis" not in user_prompt


def test_topic_prompt_and_image_prompts() -> None:
    _, user_prompt = build_topic_page_prompts("Selank")
    item = WorkItem(subject="Selank", topic="Storage and Handling", intent="buy online")

    assert "guide about Selank" in user_prompt
    assert cover_image_prompt(item) == "Selank Storage and Handling research peptide laboratory scientific"
    assert section_image_prompt(item, "Dosing") == "Selank Dosing Storage and Handling research laboratory"
