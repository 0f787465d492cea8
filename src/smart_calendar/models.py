from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Session(BaseModel):
    access_token: str = Field(..., min_length=1)
    email: str = Field(..., min_length=1)


class ExtractedEvent(BaseModel):
    """Event fields extracted from free text; description is the text itself."""

    title: str
    date: dt.date
    time: dt.time
    description: str = ""

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v2 = v.strip()
        if not v2:
            raise ValueError("title must not be blank")
        return v2


class EventTime(BaseModel):
    dateTime: str
    timeZone: Optional[str] = None


class EventPayload(BaseModel):
    """Body of POST /calendars/primary/events."""

    summary: str
    description: str = ""
    start: EventTime
    end: EventTime


class Organizer(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")


class ProviderEvent(BaseModel):
    id: str
    title: str = "(Sin título)"
    link: Optional[str] = None
    start: Union[dt.datetime, dt.date, None] = None
    organizer: Optional[Organizer] = None
    color: Optional[str] = None

    @classmethod
    def from_google(cls, item: Dict[str, Any]) -> "ProviderEvent":
        start = item.get("start", {})
        start_value: Union[dt.datetime, dt.date, None] = None
        if start.get("dateTime"):
            start_value = dt.datetime.fromisoformat(start["dateTime"])
        elif start.get("date"):
            start_value = dt.date.fromisoformat(start["date"])

        organizer = item.get("organizer")
        return cls(
            id=item.get("id", ""),
            title=item.get("summary") or "(Sin título)",
            link=item.get("htmlLink"),
            start=start_value,
            organizer=Organizer(**organizer) if organizer else None,
        )


MessageKind = Literal["success", "error", "none"]


class UIMessage(BaseModel):
    kind: MessageKind = "none"
    text: str = ""


class UIState(BaseModel):
    message: UIMessage = Field(default_factory=UIMessage)
    extracted: Optional[ExtractedEvent] = None
    upcoming: List[ProviderEvent] = Field(default_factory=list)
    processing: bool = False
