"""
Image acquisition for generated articles.

ImageSource asks a provider for an image and returns either an absolute
URL or an inline base64 data URL. ImageAdapter normalises that result:
URLs pass through, inline payloads are written to disk, and any failure
yields a fixed stock image. Image problems never abort article generation.

Providers (IMAGE_PROVIDER):
- huggingface: Hugging Face inference -> Unsplash search -> Picsum seed URL
- unsplash: Unsplash search -> Picsum seed URL
- picsum: Picsum seed URL
- placeholder: deterministic placehold.co URL (development)
"""
import base64
import binascii
import hashlib
import os
import random
import re
import time
from typing import Callable, Optional

import httpx
import structlog

from .errors import ImageAcquisitionError
from .schemas import ImageConfig

logger = structlog.get_logger()

FALLBACK_IMAGE_URL = "https://images.unsplash.com/photo-1532187863486-abf9dbad1b69?w=1024&h=1024&fit=crop"

HUGGINGFACE_API_URL = "https://api-inference.huggingface.co/models"
UNSPLASH_SEARCH_URL = "https://api.unsplash.com/search/photos"

_GENERIC_WORDS = {"peptide", "research", "laboratory", "lab", "scientific", "science", "study", "analysis"}
_NON_SEED = re.compile(r"[^a-z0-9-]")


def extract_search_terms(prompt: str) -> str:
    """
    Turn an image prompt into a short stock-photo search query.

    Keeps the first word (usually the product name), up to three
    non-generic words longer than 3 characters, and a variation term
    chosen from the prompt's theme.
    """
    words = prompt.split()
    lead = words[0] if words else ""
    topic_words = " ".join(
        [w for w in words if w.lower() not in _GENERIC_WORDS and len(w) > 3][:3]
    )

    if len(lead) > 2:
        query = f"{lead} {topic_words}".strip()
    else:
        query = topic_words or "laboratory research"

    lowered = prompt.lower()
    if "purity" in lowered or "analysis" in lowered:
        query += " quality testing"
    elif "buy" in lowered or "supplier" in lowered:
        query += " pharmaceutical"
    elif "structure" in lowered or "molecular" in lowered:
        query += " molecular structure"
    elif "shipping" in lowered or "delivery" in lowered:
        query += " packaging"
    else:
        query += " laboratory"

    return query[:100].strip() or "laboratory research science"


def picsum_url(prompt: str) -> str:
    """Stable placeholder photo keyed on the first words of the prompt."""
    seed = _NON_SEED.sub("", "-".join(prompt.split()[:3]).lower()) or "research"
    return f"https://picsum.photos/seed/{seed}/1024/1024"


class ImageSource:
    """
    Upstream image provider chain.

    generate() returns an absolute URL, a data URL, or None when every
    provider in the chain failed.
    """

    def __init__(
        self,
        config: ImageConfig,
        client: Optional[httpx.AsyncClient] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self._client = client
        self._rng = rng or random.Random()

    async def generate(self, prompt: str) -> Optional[str]:
        provider = self.config.provider

        if provider == "placeholder":
            prompt_hash = hashlib.md5(prompt.encode()).hexdigest()[:6]
            logger.info("placeholder_image_generated", prompt=prompt[:50])
            return f"https://placehold.co/1024x1024/1a1a2e/eaeaea?text=Image+{prompt_hash}"

        chains = {
            "huggingface": [self._huggingface, self._unsplash],
            "unsplash": [self._unsplash],
            "picsum": [],
        }
        if provider not in chains:
            logger.error("unknown_image_provider", provider=provider)
            return None

        for attempt in chains[provider]:
            try:
                image = await attempt(prompt)
            except (httpx.HTTPError, ImageAcquisitionError, ValueError) as e:
                logger.warning("image_provider_failed", provider=attempt.__name__.lstrip("_"), error=str(e))
                continue
            if image:
                return image

        logger.info("image_picsum_fallback", prompt=prompt[:50])
        return picsum_url(prompt)

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        if self._client is not None:
            return await self._client.request(method, url, **kwargs)
        async with httpx.AsyncClient(timeout=self.config.timeout) as client:
            return await client.request(method, url, **kwargs)

    async def _huggingface(self, prompt: str) -> Optional[str]:
        """Stable Diffusion on Hugging Face inference; works without a key but rate limited."""
        headers = {"Content-Type": "application/json"}
        if self.config.huggingface_api_key:
            headers["Authorization"] = f"Bearer {self.config.huggingface_api_key}"

        width, height = (int(n) for n in self.config.size.split("x"))
        response = await self._request(
            "POST",
            f"{HUGGINGFACE_API_URL}/{self.config.huggingface_model}",
            headers=headers,
            json={
                "inputs": prompt,
                "parameters": {
                    "width": width,
                    "height": height,
                    "num_inference_steps": 30,
                    "guidance_scale": 7.5,
                },
            },
        )

        if response.status_code == 503:
            raise ImageAcquisitionError("Hugging Face model is loading")
        response.raise_for_status()

        content_type = response.headers.get("content-type", "").split(";")[0].strip()
        if not content_type.startswith("image/"):
            # JSON bodies here are errors such as "model is currently loading"
            raise ImageAcquisitionError(f"Hugging Face returned {content_type or 'no content type'}")
        if not response.content:
            raise ImageAcquisitionError("Hugging Face returned an empty image")

        image_b64 = base64.b64encode(response.content).decode("ascii")
        logger.info("huggingface_image_generated", prompt=prompt[:50])
        return f"data:{content_type};base64,{image_b64}"

    async def _unsplash(self, prompt: str) -> Optional[str]:
        access_key = self.config.unsplash_access_key
        if not access_key:
            logger.info("unsplash_skipped", reason="no_api_key")
            return None

        query = extract_search_terms(prompt)
        page = self._rng.randint(1, 5)
        response = await self._request(
            "GET",
            UNSPLASH_SEARCH_URL,
            params={
                "query": query,
                "per_page": 10,
                "page": page,
                "orientation": "landscape",
                "client_id": access_key,
            },
            headers={"Accept-Version": "v1"},
        )
        response.raise_for_status()
        results = response.json().get("results") or []
        if not results:
            raise ImageAcquisitionError(f"No Unsplash results for {query!r}")

        photo = results[self._rng.randrange(min(10, len(results)))]
        urls = photo.get("urls") or {}
        image_url = urls.get("regular") or urls.get("full")
        if not image_url:
            raise ImageAcquisitionError("Unsplash result has no image URL")

        logger.info("unsplash_image_found", photo_id=photo.get("id"), query=query)
        return image_url


class ImageAdapter:
    """
    Normalises image source output to a pass-through URL or a local path.

    Args:
        source: Upstream image source
        config: Where inline payloads are written and how they are addressed
        clock: Millisecond timestamp used to disambiguate filenames
    """

    def __init__(
        self,
        source: ImageSource,
        config: ImageConfig,
        clock: Optional[Callable[[], int]] = None,
    ):
        self.source = source
        self.config = config
        self._clock = clock or (lambda: int(time.time() * 1000))

    async def acquire_image(
        self,
        prompt: str,
        slug: str,
        fallback: Optional[str] = FALLBACK_IMAGE_URL,
    ) -> Optional[str]:
        """
        Request an image and return a URL or local path.

        Never raises. On any failure returns `fallback` (the stock image by
        default; pass None to get None instead).
        """
        try:
            image_data = await self.source.generate(prompt)
            if not image_data:
                raise ImageAcquisitionError("image source returned nothing")
            return self.store(image_data, slug)
        except Exception as e:
            logger.warning("image_acquisition_failed", slug=slug, error=str(e), using_fallback=bool(fallback))
            return fallback

    def store(self, image_data: str, slug: str) -> str:
        """
        Pass absolute URLs through; decode and persist data URLs.

        Raises:
            ImageAcquisitionError: empty payload, bad base64, unknown format
                or write failure
        """
        if image_data.startswith(("http://", "https://")):
            logger.info("external_image_used", url=image_data[:100])
            return image_data

        if not image_data.startswith("data:"):
            raise ImageAcquisitionError(f"Unknown image format: {image_data[:50]}")

        _, _, payload = image_data.partition(";base64,")
        if not payload:
            raise ImageAcquisitionError("No base64 data found in image")

        try:
            image_bytes = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ImageAcquisitionError(f"Invalid base64 image payload: {e}") from e
        if not image_bytes:
            raise ImageAcquisitionError("Decoded image is empty")

        filename = f"{slug}-{self._clock()}.jpg"
        file_path = os.path.join(self.config.images_dir, filename)
        try:
            os.makedirs(self.config.images_dir, exist_ok=True)
            with open(file_path, "wb") as f:
                f.write(image_bytes)
        except OSError as e:
            raise ImageAcquisitionError(f"Could not write {file_path}: {e}") from e

        logger.info("image_saved", path=file_path, bytes=len(image_bytes))
        return f"{self.config.images_url_prefix.rstrip('/')}/{filename}"
