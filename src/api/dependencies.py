from fastapi import Depends, HTTPException

from api import state
from api.backend import BackendAPI
from smart_calendar.models import Session


def get_backend() -> BackendAPI:
    if state.backend is None:
        state.backend = BackendAPI()
    return state.backend


def get_session(backend: BackendAPI = Depends(get_backend)) -> Session:
    session = backend.current_session()
    if session is None:
        raise HTTPException(status_code=401, detail="Not connected to Google Calendar")
    return session
