from __future__ import annotations
import re
from datetime import date, time
from typing import Any
from pydantic import BaseModel, ConfigDict, Field, field_validator

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^\d{1,2}:\d{2}(:\d{2})?$")


class EventExtractionResult(BaseModel):
    """Raw JSON object the model is asked to return (Spanish keys)."""

    model_config = ConfigDict(extra="ignore")

    titulo: str = Field(..., min_length=1)
    fecha: date
    hora: time

    @field_validator("titulo")
    @classmethod
    def titulo_not_blank(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("titulo must not be blank")
        return v2

    @field_validator("fecha", mode="before")
    @classmethod
    def fecha_is_iso_date(cls, v: Any) -> Any:
        if not isinstance(v, str) or not _DATE_RE.match(v.strip()):
            raise ValueError("fecha must be YYYY-MM-DD")
        return v.strip()

    @field_validator("hora", mode="before")
    @classmethod
    def hora_is_24h(cls, v: Any) -> Any:
        if not isinstance(v, str) or not _TIME_RE.match(v.strip()):
            raise ValueError("hora must be HH:MM (24h)")
        return v.strip().zfill(5) if len(v.strip()) == 4 else v.strip()
