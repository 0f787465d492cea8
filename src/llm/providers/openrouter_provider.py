from __future__ import annotations
import logging
import os
from typing import Optional

import httpx

from smart_calendar.errors import ConfigurationError, ParseError, UpstreamError
from .base import LLMProvider

logger = logging.getLogger(__name__)


class OpenRouterProvider(LLMProvider):
    """Chat-completion provider for OpenRouter's OpenAI-compatible endpoint.

    The API key is read on every call so that a missing key fails the
    submission that needs it, without any request being sent.
    """

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self.model = os.getenv("OPENROUTER_MODEL", "openai/gpt-4o-mini").strip()
        self.base_url = os.getenv("OPENROUTER_BASE_URL", "https://openrouter.ai/api/v1").strip()
        self.referer = os.getenv("OPENROUTER_REFERER", "http://localhost:3000").strip()
        self.title = os.getenv("OPENROUTER_TITLE", "Smart Calendar").strip()
        self._client = client

    async def generate(self, *, user: str, system: Optional[str] = None, model: str | None = None) -> str:
        api_key = os.getenv("OPENROUTER_API_KEY", "").strip()
        if not api_key:
            raise ConfigurationError("OPENROUTER_API_KEY is missing")

        logger.info(f"Sending extraction request to OpenRouter (key {api_key[:4]}...)")

        url = f"{self.base_url}/chat/completions"
        headers = {
            "Authorization": f"Bearer {api_key}",
            "HTTP-Referer": self.referer,
            "X-Title": self.title,
            "Content-Type": "application/json",
        }
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": user})
        payload = {
            "model": model or self.model,
            "messages": messages,
            "response_format": {"type": "json_object"},
        }

        if self._client is not None:
            r = await self._client.post(url, headers=headers, json=payload)
        else:
            async with httpx.AsyncClient(timeout=30.0) as client:
                r = await client.post(url, headers=headers, json=payload)

        if r.is_error:
            try:
                details = r.json()
            except ValueError:
                details = r.text
            logger.error(f"OpenRouter API error {r.status_code}: {details}")
            raise UpstreamError(
                "OpenRouter request was not successful",
                status_code=r.status_code,
                payload=details,
            )

        try:
            data = r.json()
            return data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ParseError("OpenRouter response has no message content") from e
