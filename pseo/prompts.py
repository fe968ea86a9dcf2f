"""
Prompt templates for the content pipeline.

All model-facing text is centralized here for easier iteration. Every
prompt asks for the same JSON contract:
{"title", "content", "excerpt", "keywords", "metaDescription"}.
"""
import random
from datetime import date
from typing import Optional, Tuple
from urllib.parse import quote

from .catalog import BRAND_NAME
from .schemas import WorkItem

JSON_CONTRACT = """Output ONLY valid JSON in the following format:
{
  "title": "...",
  "content": "...",
  "excerpt": "...",
  "keywords": ["..."],
  "metaDescription": "..."
}"""

ARTICLE_SYSTEM_PROMPT = f"""You are an expert SEO content writer for "{BRAND_NAME}".
You write in a professional, brand-appropriate tone."""

PAGE_SYSTEM_PROMPT = f"""You are an expert SEO content writer for "{BRAND_NAME}". Write in a professional, objective tone."""

# Concrete title shapes; the prompt forbids the "Unlock the power of" family
TITLE_VARIATIONS = [
    "The Complete Guide to Buying {subject} Online",
    "Where to Buy {subject} for Research: Verified Suppliers Guide",
    "{subject} Online: How to Choose a Trusted Research Supplier",
    "Buying {subject} Online: Quality, Purity, and Shipping Guide",
    "Research-Grade {subject}: Where to Buy and What to Look For",
    "The Ultimate Guide to Purchasing {subject} for Laboratory Research",
    "{subject} Supplier Guide: Finding Quality Research Peptides Online",
    "How to Buy {subject} Online: Complete Buyer's Guide",
    "Finding Quality {subject} for Research: A Researcher's Guide",
    "{subject} Research Supplier: Complete Buying Guide",
    "What Researchers Should Know Before Buying {subject}",
    "{subject} for Lab Research: Sourcing, Quality, and Best Practices",
    "A Practical Guide to Sourcing {subject} for Your Lab",
    "Quality and Purity: What to Look for When Buying {subject}",
    "{subject} Buyer's Guide: From Selection to Delivery",
    "Research Applications of {subject}: Sourcing and Standards",
    "Comparing {subject} Suppliers: What Matters for Your Research",
    "{subject} in the Lab: Where to Source and How to Verify Quality",
]


def research_context(subject: str, today: date) -> str:
    return f"""Research Context for {subject} ({today.year}):
- Consider recent developments in peptide research
- Think about current market trends and researcher needs
- Consider common questions and concerns researchers have
- Reference current best practices in peptide purchasing
- Be aware of recent regulatory or quality standard updates
- Consider what active researchers are discussing about {subject}"""


def wikipedia_url(term: str) -> str:
    return f"https://en.wikipedia.org/wiki/{quote(term.replace(' ', '_'))}"


def build_article_prompts(
    item: WorkItem,
    rng: Optional[random.Random] = None,
    today: Optional[date] = None,
) -> Tuple[str, str]:
    """
    Build (system_prompt, user_prompt) for one work item.

    A random title variation is suggested so a batch does not converge on
    one headline shape.
    """
    rng = rng or random
    today = today or date.today()
    subject = item.subject
    suggested_title = rng.choice(TITLE_VARIATIONS).format(subject=subject)

    competitor_line = ""
    if item.competitor:
        competitor_line = (
            f"- Competitor Analysis: Compare {BRAND_NAME} vs {item.competitor}. "
            f"Be fair but highlight {BRAND_NAME} advantages.\n"
        )

    user_prompt = f"""Write a comprehensive, SEO-optimized blog post that targets BUYER INTENT searches. Be CREATIVE and UNIQUE - avoid generic, robotic content.

Context:
- Product: {subject}
- Topic: {item.topic}
- Current Date: {today.strftime("%B %Y")}
{competitor_line}- User Search Intent: "{item.intent}" (This is a BUYER searching - they want to purchase. Write content that helps them make a purchase decision).

{research_context(subject, today)}

IMPORTANT: Research and incorporate recent information about {subject}:
- Recent research findings or studies (if available)
- Current market trends for {subject}
- Common questions researchers have about {subject}
- Real-world considerations for purchasing {subject}
- Be conversational and helpful, not robotic or templated
- You MAY discuss other peptides on the market and relate them to {subject} where relevant.

CRITICAL: People searching "{item.intent}" want to BUY. Answer:
- Where to buy {subject} online (with specific, actionable advice)
- How to choose a reliable supplier (real criteria, not generic)
- What to look for when buying {subject} (specific quality indicators)
- Why {BRAND_NAME} is a trusted source (concrete reasons)
- Pricing considerations, shipping options, quality verification

Requirements:
1. Title: Create a UNIQUE, catchy, SEO-friendly title. NEVER use "Unlock the power of", "Unlock the potential of", "Discover the power of" or "Discover the potential of".
   Prefer concrete, specific titles like: "{suggested_title}"

2. Content:
   - Write a COMPLETE article of 1200-1800 words. Do NOT stop mid-sentence. Finish every section and the conclusion.
   - Use Markdown formatting: ## for main sections, ### for subsections, bullet points.
   - Include 3-5 natural Wikipedia links for scientific terms, e.g. [Peptide]({wikipedia_url("Peptide")}) or [{subject}]({wikipedia_url(subject)}) if a page exists.
   - Add a "Recent Research and Developments" section if relevant.

3. Keywords: 10-15 keywords targeting BUYER searches, including "{item.intent}", "buy {subject}", "buy {subject} online", "{subject} supplier".

4. Excerpt: A unique 150-160 char summary with purchase intent.

5. Meta Description: A unique meta description (max 160 chars).

DO NOT include a "Related Research Products" section at the end.

{JSON_CONTRACT}"""

    return ARTICLE_SYSTEM_PROMPT, user_prompt


def build_comparison_prompts(competitor: str) -> Tuple[str, str]:
    user_prompt = f"""Write a comparison article: "{BRAND_NAME} vs {competitor}".
Include: key differences (quality, shipping, pricing), why customers choose {BRAND_NAME}, and when each option may suit different needs.
Use Markdown: ## for sections, ### for subsections, bullet points. 800-1200 words. Finish every section; do not stop mid-sentence.

{JSON_CONTRACT}"""
    return PAGE_SYSTEM_PROMPT, user_prompt


def build_topic_page_prompts(subject: str) -> Tuple[str, str]:
    user_prompt = f"""Write a guide about {subject}. Cover: what it is, quality considerations, how to shop (lead to {BRAND_NAME}).
Use Markdown: ## and ###, bullet points. 800-1200 words. Include natural internal link opportunities to products and about. Finish every section; do not stop mid-sentence.

{JSON_CONTRACT}"""
    return PAGE_SYSTEM_PROMPT, user_prompt


def cover_image_prompt(item: WorkItem) -> str:
    return f"{item.subject} {item.topic} research peptide laboratory scientific"


def section_image_prompt(item: WorkItem, section_title: str) -> str:
    return f"{item.subject} {section_title} {item.topic} research laboratory"
