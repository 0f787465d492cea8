from __future__ import annotations
import json
import re
from datetime import date, timedelta
from typing import Optional

from llm.providers.base import LLMProvider

_QUOTED_TEXT = re.compile(r'Texto a analizar: "(.*)"', re.DOTALL)


class MockProvider(LLMProvider):
    async def generate(self, *, user: str, system: Optional[str] = None, model: str | None = None) -> str:
        """
        Returns a dummy event for tomorrow at 17:00 titled after the analysed text.
        """
        match = _QUOTED_TEXT.search(user)
        if not match:
            # Default fallback
            return "{}"

        text = match.group(1).strip()
        return json.dumps({
            "titulo": text[:60] or "Evento",
            "fecha": (date.today() + timedelta(days=1)).isoformat(),
            "hora": "17:00",
        })
