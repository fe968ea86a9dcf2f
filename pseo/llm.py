"""
Model API client for article generation.

The pipeline treats the model as an untrusted text source: complete()
returns the raw response text and never interprets it. Parsing happens in
pseo.parser.

Providers:
- anthropic: Messages API
- openai: Chat Completions (also any OpenAI-compatible host via OPENAI_BASE_URL)
"""
import hashlib
import json
import os
from pathlib import Path
from typing import Any, Optional

import httpx
import structlog

from .errors import TransientUpstreamError
from .schemas import LLMConfig

logger = structlog.get_logger()

ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"


# =============================================================================
# DEV CACHE (for speeding up development iteration)
# =============================================================================
# Enable with LLM_DEV_CACHE=true in .env
# Clear all: rm -rf /tmp/pseo_llm_cache/

LLM_DEV_CACHE_DIR = Path(os.environ.get("LLM_DEV_CACHE_DIR", "/tmp/pseo_llm_cache"))


def _is_dev_cache_enabled() -> bool:
    """Check if LLM dev cache is enabled via env var."""
    return os.environ.get("LLM_DEV_CACHE", "").lower() in ("true", "1", "yes")


def _get_cache_key(data: Any) -> str:
    data_str = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(data_str.encode()).hexdigest()[:16]


def _get_cached_response(data: Any) -> Optional[str]:
    """Get cached raw response if it exists and dev cache is enabled."""
    if not _is_dev_cache_enabled():
        return None

    cache_file = LLM_DEV_CACHE_DIR / f"{_get_cache_key(data)}.json"
    if not cache_file.exists():
        return None

    try:
        with open(cache_file, "r") as f:
            cached = json.load(f)
        logger.info("llm_dev_cache_hit", cache_file=str(cache_file))
        return cached.get("response")
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("llm_dev_cache_read_error", error=str(e))
        return None


def _save_to_cache(data: Any, response: str) -> None:
    if not _is_dev_cache_enabled():
        return

    try:
        LLM_DEV_CACHE_DIR.mkdir(parents=True, exist_ok=True)
        cache_file = LLM_DEV_CACHE_DIR / f"{_get_cache_key(data)}.json"
        with open(cache_file, "w") as f:
            json.dump({"response": response}, f)
        logger.info("llm_dev_cache_saved", cache_file=str(cache_file))
    except OSError as e:
        logger.warning("llm_dev_cache_write_error", error=str(e))


# =============================================================================
# CLIENT
# =============================================================================

class ModelClient:
    """
    Thin async client over the configured model provider.

    Args:
        config: Provider, model, keys and sampling defaults
        client: Optional httpx client (one is created per call if not provided)
    """

    def __init__(self, config: LLMConfig, client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._client = client

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Send one request and return the raw response text.

        Raises:
            TransientUpstreamError: on network/HTTP failure or an unexpected
                response envelope
        """
        temperature = self.config.temperature if temperature is None else temperature
        max_tokens = max_tokens or self.config.max_tokens
        provider = self.config.provider

        cache_data = {
            "system": system_prompt,
            "user": user_prompt,
            "provider": provider,
            "model": self.config.resolved_model,
        }
        cached = _get_cached_response(cache_data)
        if cached:
            return cached

        if provider == "anthropic":
            url, headers, body = self._anthropic_request(system_prompt, user_prompt, temperature, max_tokens)
        elif provider == "openai":
            url, headers, body = self._openai_request(system_prompt, user_prompt, temperature, max_tokens)
        else:
            raise ValueError(f"Unknown LLM provider: {provider}")

        data = await self._post(url, headers, body)

        try:
            if provider == "anthropic":
                text = data["content"][0]["text"]
            else:
                text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            logger.error("llm_response_envelope_invalid", provider=provider, error=str(e))
            raise TransientUpstreamError(f"Invalid response format from {provider}: {e}") from e

        if not text:
            raise TransientUpstreamError(f"Empty response from {provider}")

        _save_to_cache(cache_data, text)
        return text

    def _anthropic_request(self, system_prompt, user_prompt, temperature, max_tokens):
        api_key = self.config.anthropic_api_key
        if not api_key:
            raise ValueError("ANTHROPIC_API_KEY not set")

        headers = {
            "x-api-key": api_key,
            "Content-Type": "application/json",
            "anthropic-version": ANTHROPIC_VERSION,
        }
        body = {
            "model": self.config.resolved_model,
            "max_tokens": max_tokens,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
            "temperature": temperature,
        }
        return ANTHROPIC_API_URL, headers, body

    def _openai_request(self, system_prompt, user_prompt, temperature, max_tokens):
        api_key = self.config.openai_api_key
        if not api_key:
            raise ValueError("OPENAI_API_KEY not set")

        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        body = {
            "model": self.config.resolved_model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        url = f"{self.config.openai_base_url.rstrip('/')}/chat/completions"
        return url, headers, body

    async def _post(self, url: str, headers: dict, body: dict) -> dict:
        close_client = False
        client = self._client
        if client is None:
            client = httpx.AsyncClient(timeout=self.config.timeout)
            close_client = True

        try:
            response = await client.post(url, headers=headers, json=body)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "llm_http_error",
                status=e.response.status_code,
                body=e.response.text[:300],
            )
            raise TransientUpstreamError(
                f"Model API error: {e.response.status_code} {e.response.reason_phrase}"
            ) from e
        except httpx.HTTPError as e:
            logger.error("llm_request_failed", error=str(e))
            raise TransientUpstreamError(f"Model API request failed: {e}") from e
        except json.JSONDecodeError as e:
            raise TransientUpstreamError(f"Model API returned non-JSON body: {e}") from e
        finally:
            if close_client:
                await client.aclose()
