from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional

class LLMProvider(ABC):
    @abstractmethod
    async def generate(self, *, user: str, system: Optional[str] = None) -> str:
        """
        Must return the model output as TEXT (we'll parse/validate JSON in LLMClient).
        """
        raise NotImplementedError
