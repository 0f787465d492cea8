import logging
from datetime import datetime
from typing import Optional

from pydantic import ValidationError

from llm.llm_client import LLMClient
from llm.schemas import EventExtractionResult
from smart_calendar.errors import ParseError
from smart_calendar.models import ExtractedEvent

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = """
Analiza el siguiente texto y extrae la información para un evento de calendario.
La fecha y hora deben basarse en la fecha actual: {now}.
Devuelve únicamente un objeto JSON válido con las siguientes claves:
- "titulo": Un título breve y descriptivo para el evento.
- "fecha": La fecha del evento en formato YYYY-MM-DD.
- "hora": La hora del evento en formato HH:MM (24 horas).

Texto a analizar: "{text}"
"""


def build_prompt(text: str, now: datetime) -> str:
    return PROMPT_TEMPLATE.format(now=now.isoformat(), text=text)


class EventExtractor:

    def __init__(self, llm_client: Optional[LLMClient] = None):
        self._llm = llm_client

    @property
    def llm(self) -> LLMClient:
        # Created lazily so a misconfigured provider only fails the submission.
        if self._llm is None:
            self._llm = LLMClient()
        return self._llm

    async def extract(self, text: str, now: Optional[datetime] = None) -> ExtractedEvent:
        now = now or datetime.now().astimezone()
        prompt = build_prompt(text, now)
        logger.info(f"Extracting event from text ({len(text)} chars)")

        data = await self.llm.complete_json(prompt)
        try:
            result = EventExtractionResult.model_validate(data)
        except ValidationError as e:
            raise ParseError(f"Extraction result has an unexpected shape: {data}") from e

        return ExtractedEvent(
            title=result.titulo,
            date=result.fecha,
            time=result.hora,
            description=text,
        )
