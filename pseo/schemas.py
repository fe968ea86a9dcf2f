"""
Pydantic schemas for the content pipeline.

Transient records (WorkItem, LinkCandidate, GeneratedArticle), the durable
PublishedPage handed to the Persistence Sink, run results, and the settings
the pipeline is configured with.
"""
import os
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pseo_shared.models import PageType


# =============================================================================
# CONTENT RECORDS
# =============================================================================

class WorkItem(BaseModel):
    """
    One unit of scheduled content generation.

    Either a subject/topic/intent combination or, when competitor is set,
    a subject-vs-competitor comparison.
    """
    model_config = ConfigDict(frozen=True)

    subject: str
    topic: str
    intent: str
    competitor: Optional[str] = None

    @property
    def dedup_key(self) -> tuple:
        """Items sharing this key are duplicates for scheduling purposes."""
        return (self.subject, self.topic, self.competitor or self.intent)

    def describe(self) -> str:
        label = f"{self.subject} - {self.topic} ({self.intent})"
        if self.competitor:
            label += f" vs {self.competitor}"
        return label


class LinkCandidate(BaseModel):
    """A (display text, target URL) pair the link injector may turn into a link."""
    model_config = ConfigDict(frozen=True)

    text: str
    url: str


class GeneratedArticle(BaseModel):
    """
    Structured article recovered from a model response.

    Field names follow the JSON contract given to the model
    (metaDescription is camelCase on the wire).
    """
    model_config = ConfigDict(populate_by_name=True)

    title: str
    content: str
    excerpt: str
    keywords: List[str] = Field(default_factory=list)
    meta_description: str = Field(default="", alias="metaDescription")

    @model_validator(mode="before")
    @classmethod
    def default_meta_description(cls, data):
        """Fall back to the excerpt when the model omitted the meta description."""
        if isinstance(data, dict):
            meta = data.get("metaDescription", data.get("meta_description"))
            if not meta and isinstance(data.get("excerpt"), str):
                data = {**data, "metaDescription": data["excerpt"]}
        return data

    @field_validator("keywords", mode="before")
    @classmethod
    def ensure_list(cls, v):
        """Models sometimes return a comma-separated string instead of an array."""
        if v is None:
            return []
        if isinstance(v, str):
            return [k.strip() for k in v.split(",") if k.strip()]
        if isinstance(v, (list, tuple)):
            return [str(k) for k in v]
        raise ValueError(f"keywords must be an array or a comma-separated string, got {type(v).__name__}")


class PublishedPage(BaseModel):
    """The finished artifact handed to the Persistence Sink."""
    type: PageType
    slug: str
    title: str
    content: str
    excerpt: str = ""
    meta_description: str = ""
    keywords: List[str] = Field(default_factory=list)
    cover_image: Optional[str] = None
    section_images: List[str] = Field(default_factory=list)


class ExistingContent(BaseModel):
    """Read-only snapshot of published titles and slugs, taken at batch start."""
    titles: List[str] = Field(default_factory=list)
    slugs: List[str] = Field(default_factory=list)


class RunResult(BaseModel):
    """Aggregate outcome of one batch run."""
    success: bool = True
    generated: int = 0
    skipped: int = 0
    errors: int = 0
    message: str = ""


# =============================================================================
# CONFIGURATION
# =============================================================================

DEFAULT_MODELS = {
    "anthropic": "claude-3-haiku-20240307",
    "openai": "gpt-4o-mini",
}


class LLMConfig(BaseModel):
    """
    Model API configuration.

    Resolution order (first non-None wins):
    1. Explicit values on this object
    2. Environment variables (LLM_PROVIDER, LLM_MODEL, ...)
    3. Defaults (Anthropic, Claude 3 Haiku)
    """
    provider: str = Field(
        default="anthropic",
        description="Model provider: 'anthropic' or 'openai' (any OpenAI-compatible host)"
    )
    model: Optional[str] = Field(
        default=None,
        description="Provider model id; defaults per provider when unset"
    )
    temperature: float = Field(
        default=0.9,
        ge=0,
        le=2,
        description="Sampling temperature; high by default so articles vary"
    )
    max_tokens: int = Field(default=8192, gt=0)
    anthropic_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"
    timeout: float = Field(default=120, description="HTTP timeout in seconds")

    @property
    def resolved_model(self) -> str:
        return self.model or DEFAULT_MODELS.get(self.provider, "")


class ImageConfig(BaseModel):
    """
    Image source configuration.

    Example:
        IMAGE_PROVIDER=huggingface   # Hugging Face -> Unsplash -> Picsum
        IMAGE_PROVIDER=placeholder   # development, no network
    """
    provider: str = Field(
        default="huggingface",
        description="Image provider: 'huggingface', 'unsplash', 'picsum', 'placeholder'"
    )
    huggingface_model: str = "stabilityai/stable-diffusion-xl-base-1.0"
    huggingface_api_key: Optional[str] = None
    unsplash_access_key: Optional[str] = None
    size: str = "1024x1024"
    images_dir: str = Field(
        default=os.path.join("public", "images", "blog"),
        description="Where inline image payloads are written"
    )
    images_url_prefix: str = Field(
        default="/images/blog",
        description="Public URL prefix for images written to images_dir"
    )
    timeout: float = 60


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("true", "1", "yes")


class PipelineSettings(BaseModel):
    """Everything the batch job needs, gathered from the environment."""
    llm: LLMConfig = Field(default_factory=LLMConfig)
    image: ImageConfig = Field(default_factory=ImageConfig)
    batch_size: int = Field(default=5, gt=0)
    dry_run: bool = False
    call_interval: float = Field(default=1.0, ge=0, description="Seconds between model/image calls")
    item_interval: float = Field(default=2.0, ge=0, description="Seconds between batch items")

    @classmethod
    def from_env(cls) -> "PipelineSettings":
        llm = LLMConfig(
            provider=os.environ.get("LLM_PROVIDER") or "anthropic",
            model=os.environ.get("LLM_MODEL") or None,
            temperature=float(os.environ.get("LLM_TEMPERATURE", "0.9")),
            max_tokens=int(os.environ.get("LLM_MAX_TOKENS", "8192")),
            anthropic_api_key=os.environ.get("ANTHROPIC_API_KEY"),
            openai_api_key=os.environ.get("OPENAI_API_KEY"),
            openai_base_url=os.environ.get("OPENAI_BASE_URL") or "https://api.openai.com/v1",
        )
        image = ImageConfig(
            provider=os.environ.get("IMAGE_PROVIDER") or "huggingface",
            huggingface_api_key=os.environ.get("HUGGINGFACE_API_KEY"),
            unsplash_access_key=os.environ.get("UNSPLASH_ACCESS_KEY"),
            images_dir=os.environ.get("PSEO_IMAGES_DIR") or os.path.join("public", "images", "blog"),
            images_url_prefix=os.environ.get("PSEO_IMAGES_URL_PREFIX") or "/images/blog",
        )
        return cls(
            llm=llm,
            image=image,
            batch_size=int(os.environ.get("PSEO_BATCH_SIZE", "5")),
            dry_run=_env_flag("DRY_RUN"),
            call_interval=float(os.environ.get("PSEO_CALL_INTERVAL", "1.0")),
            item_interval=float(os.environ.get("PSEO_ITEM_INTERVAL", "2.0")),
        )
