"""
Link catalog: the linkable entities of the storefront.

Holds the content plan (subjects, topics, intents, competitors), the map of
common names and misspellings to product slugs, and builds the link
candidates the injector works with.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .schemas import LinkCandidate
from .seo import slugify

BRAND_NAME = "Purgo Style Labs"
BRAND_SLUG = "purgo-labs"

# =============================================================================
# CONTENT PLAN
# =============================================================================

SUBJECTS = [
    "BPC-157", "Tirzepatide", "Retatrutide", "IGF-1 LR3",
    "Tesamorelin", "Glutathione", "Semaglutide", "TB-500",
    "Ipamorelin", "CJC-1295", "Melanotan II", "Epitalon",
    "GHK-Cu", "AOD-9604", "MOTS-c", "Kisspeptin-10",
    "Semax", "Selank", "NAD+", "SS-31", "Wolverine", "KLOW", "VIP", "Glow Complex", "BAC Water",
]

COMPETITORS = [
    "Peptide Sciences", "Blue Sky Peptides", "Limitless Life Nootropics",
    "Paradigm Peptides", "Core Peptides", "Swiss Chems",
    "Biotech Peptides", "Pure Rawz", "Sports Technology Labs",
]

TOPICS = [
    "Research Benefits", "Mechanism of Action", "Clinical Studies Overview",
    "Comparison Guide", "Storage and Handling", "Purity Analysis",
    "Dosage Protocols for Research", "Side Effects in Studies", "Half-Life and Solubility",
    "Stacking Protocols", "Lyophilization Process", "Reconstitution Guide",
]

INTENTS = [
    "buy online", "research usage", "chemical structure",
    "laboratory safety", "wholesale pricing", "bulk suppliers",
    "fast shipping", "US-made", "third-party tested",
]

COMPARISON_TOPIC = "Competitor Comparison"
COMPARISON_INTENT = "buy online"

# Common/alternate names and misspellings -> our product slug
PRODUCT_ALIASES_TO_SLUG: Dict[str, str] = {
    "tirzepatide": "glp-2-trz",
    "trizepitide": "glp-2-trz",
    "tirze-patide": "glp-2-trz",
    "glp-2 trz": "glp-2-trz",
    "glp2 trz": "glp-2-trz",
    "retatrutide": "glp-3-rt",
    "reta-trutide": "glp-3-rt",
    "glp-3 rt": "glp-3-rt",
    "glp3 rt": "glp-3-rt",
    "melanotan ii": "melatonin-ii",
    "melanotan 2": "melatonin-ii",
    "melatonin ii": "melatonin-ii",
    "melatonin 2": "melatonin-ii",
    "semaglutide": "sema-glutide",
    "sema-glutide": "sema-glutide",
    "bpc-157": "bpc-157",
    "bpc157": "bpc-157",
    "tb-500": "tb-500",
    "tb500": "tb-500",
    "ghk-cu": "ghk-cu",
    "nad+": "nad-plus",
    "nad plus": "nad-plus",
    "ss-31": "ss-31",
    "ss31": "ss-31",
    "mots-c": "mots-c",
    "motsc": "mots-c",
}

CATALOG_URL = "/products"
ABOUT_URL = "/about"


@dataclass(frozen=True)
class CatalogProduct:
    """A storefront product as far as linking is concerned."""
    name: str
    slug: str

    @property
    def url(self) -> str:
        return f"{CATALOG_URL}/{self.slug}"


@dataclass
class LinkCatalog:
    """
    Builds link candidates from storefront products, aliases and subjects.

    Products come from the storefront; subjects without a matching product
    still link to /products/<slug> so the storefront can resolve or redirect.
    """
    products: List[CatalogProduct] = field(default_factory=list)
    subjects: List[str] = field(default_factory=lambda: list(SUBJECTS))
    aliases: Dict[str, str] = field(default_factory=lambda: dict(PRODUCT_ALIASES_TO_SLUG))

    def find_product(self, slug_or_name: str) -> Optional[CatalogProduct]:
        normalized = slug_or_name.lower().strip()
        for product in self.products:
            if product.slug.lower() == normalized or product.name.lower() == normalized:
                return product
        return None

    def resolve_product_slug(self, name: str) -> str:
        """Resolve a product name (e.g. "Tirzepatide") to our product slug."""
        normalized = name.lower().strip()
        aliased = self.aliases.get(normalized)
        if aliased:
            return aliased
        product = self.find_product(normalized)
        if product:
            return product.slug
        return slugify(normalized)

    def aliases_for(self, slug: str) -> List[str]:
        return [alias for alias, target in self.aliases.items() if target == slug]

    def candidates_for_product(self, product: CatalogProduct) -> List[LinkCandidate]:
        candidates = [LinkCandidate(text=product.name, url=product.url)]
        candidates.extend(LinkCandidate(text=alias, url=product.url) for alias in self.aliases_for(product.slug))
        return candidates

    def candidates_for_unlisted(self, name: str, slug: str) -> List[LinkCandidate]:
        """
        The name plus every alias mapped to `slug`, all linking to
        /products/<slug>. Used when the storefront lists no such product.
        """
        url = f"{CATALOG_URL}/{slug}"
        candidates = [LinkCandidate(text=name, url=url)]
        seen = {name.lower()}
        for alias in self.aliases_for(slug):
            if alias not in seen:
                seen.add(alias)
                candidates.append(LinkCandidate(text=alias, url=url))
        return candidates

    def candidates_for_subject(self, subject: str) -> List[LinkCandidate]:
        """
        Candidates for the subject of one work item.

        When the subject resolves to a storefront product, its name and every
        alias pointing at it link to the product page; otherwise the subject
        and the aliases of its resolved slug link to that slug.
        """
        slug = self.resolve_product_slug(subject)
        product = self.find_product(slug)
        if product:
            return self.candidates_for_product(product)
        return self.candidates_for_unlisted(subject, slug)

    @staticmethod
    def navigation_links() -> List[LinkCandidate]:
        return [
            LinkCandidate(text="Shop", url=CATALOG_URL),
            LinkCandidate(text="Products", url=CATALOG_URL),
            LinkCandidate(text="About", url=ABOUT_URL),
        ]

    def product_links(self) -> List[LinkCandidate]:
        """
        Every product and every configured subject without a product (each
        with its aliases), and the generic shopping phrases. Used for landing pages.
        """
        candidates: List[LinkCandidate] = []
        for product in self.products:
            candidates.extend(self.candidates_for_product(product))

        for subject in self.subjects:
            slug = self.resolve_product_slug(subject)
            if not self.find_product(slug) and not self.find_product(subject):
                candidates.extend(self.candidates_for_unlisted(subject, slug))

        candidates.extend([
            LinkCandidate(text="Buy Peptides Online", url=CATALOG_URL),
            LinkCandidate(text="Research Peptides", url=CATALOG_URL),
            LinkCandidate(text="US Made Peptides", url=ABOUT_URL),
        ])
        return candidates


def comparison_slug(competitor: str) -> str:
    return f"{BRAND_SLUG}-vs-{slugify(competitor)}"
