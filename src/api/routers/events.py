import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from api.backend import EMPTY_INPUT_MESSAGE, BackendAPI
from api.dependencies import get_backend, get_session
from smart_calendar.errors import AuthExpiredError, CalendarAssistantError
from smart_calendar.models import Session
from smart_calendar.presentation import EXAMPLE_INPUTS, ICON_CODES, INPUT_TEMPLATES, icon_url

router = APIRouter()
logger = logging.getLogger(__name__)


class EventTextIn(BaseModel):
    text: str


@router.post("/events")
async def submit_event(
    payload: EventTextIn,
    backend: BackendAPI = Depends(get_backend),
    session: Session = Depends(get_session),
):
    """Create a calendar event from a free-text description."""
    if backend.state.processing:
        raise HTTPException(status_code=409, detail="A submission is already in progress")

    message = await backend.submit(payload.text, session)

    if message.kind == "success":
        status_code = 201
    elif message.text == EMPTY_INPUT_MESSAGE:
        status_code = 400
    else:
        status_code = 502
    return JSONResponse(status_code=status_code, content=backend.state.model_dump(mode="json"))


@router.get("/events/upcoming")
async def upcoming_events(
    backend: BackendAPI = Depends(get_backend),
    session: Session = Depends(get_session),
) -> dict:
    try:
        events = await backend.refresh_upcoming(session)
    except AuthExpiredError:
        raise HTTPException(status_code=401, detail="Google session expired")
    except (CalendarAssistantError, httpx.HTTPError) as e:
        logger.error(f"Error fetching upcoming events: {e}")
        raise HTTPException(status_code=502, detail="Could not fetch upcoming events")
    return {"events": [e.model_dump(mode="json") for e in events]}


@router.get("/state")
async def get_state(backend: BackendAPI = Depends(get_backend)) -> dict:
    session = backend.current_session()
    return {
        "authenticated": session is not None,
        "email": session.email if session else None,
        **backend.state.model_dump(mode="json"),
    }


@router.get("/icons")
async def list_icons() -> dict:
    return {name: icon_url(name) for name in ICON_CODES}


@router.get("/shortcuts")
async def list_shortcuts() -> dict:
    return {"examples": list(EXAMPLE_INPUTS), "templates": list(INPUT_TEMPLATES)}
