import json
import logging
import os
from typing import Any, Optional

from llm.providers.base import LLMProvider
from smart_calendar.errors import ConfigurationError, ParseError

logger = logging.getLogger(__name__)


def _default_provider() -> LLMProvider:
    name = os.getenv("LLM_PROVIDER", "openrouter").strip().lower()
    if name == "mock":
        from llm.providers.mock_provider import MockProvider
        return MockProvider()
    if name == "openrouter":
        from llm.providers.openrouter_provider import OpenRouterProvider
        return OpenRouterProvider()
    raise ConfigurationError(f"Unknown LLM_PROVIDER: {name}")


class LLMClient:
    """Thin wrapper around an LLMProvider that turns model output into JSON."""

    def __init__(self, provider: Optional[LLMProvider] = None):
        self.provider = provider or _default_provider()

    async def complete(self, prompt: str) -> str:
        return await self.provider.generate(user=prompt)

    async def complete_json(self, prompt: str) -> dict[str, Any]:
        content = await self.complete(prompt)
        logger.debug(f"Model content: {content}")
        return parse_json_object(content)


def parse_json_object(content: str) -> dict[str, Any]:
    """Parse a JSON object from model output.

    Models sometimes wrap the object in prose; the outermost {...} is tried
    before giving up.
    """
    try:
        data = json.loads(content)
    except (TypeError, json.JSONDecodeError) as e:
        start = content.find("{") if isinstance(content, str) else -1
        end = content.rfind("}") if isinstance(content, str) else -1
        if start == -1 or end <= start:
            raise ParseError("Model output is not valid JSON") from e
        try:
            data = json.loads(content[start : end + 1])
        except json.JSONDecodeError as e2:
            raise ParseError("Model output is not valid JSON") from e2

    if not isinstance(data, dict):
        raise ParseError(f"Expected a JSON object, got {type(data).__name__}")
    return data
