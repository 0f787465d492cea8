import asyncio
import os
import logging
from collections import OrderedDict
from typing import Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Response
from google_auth_oauthlib.flow import Flow
from pydantic import BaseModel

from api.backend import BackendAPI
from api.dependencies import get_backend

router = APIRouter()
logger = logging.getLogger(__name__)

# Google Auth Configuration
GOOGLE_CLIENT_ID = os.getenv("GOOGLE_CLIENT_ID")
GOOGLE_CLIENT_SECRET = os.getenv("GOOGLE_CLIENT_SECRET")
GOOGLE_REDIRECT_URI = os.getenv(
    "GOOGLE_REDIRECT_URI", "http://localhost:8000/auth/google/callback"
)
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

SCOPES = [
    "openid",
    "https://www.googleapis.com/auth/calendar.events",
    "https://www.googleapis.com/auth/userinfo.email",
]

MAX_PENDING_LOGINS = int(os.getenv("MAX_PENDING_LOGINS", "100"))

# OAuth state -> PKCE code verifier, kept until the callback arrives;
# the oldest abandoned logins are dropped past MAX_PENDING_LOGINS
_pending_verifiers: "OrderedDict[str, Optional[str]]" = OrderedDict()


class TokenIn(BaseModel):
    access_token: str


def _make_flow(state: Optional[str] = None) -> Flow:
    return Flow.from_client_config(
        {
            "web": {
                "client_id": GOOGLE_CLIENT_ID,
                "client_secret": GOOGLE_CLIENT_SECRET,
                "auth_uri": "https://accounts.google.com/o/oauth2/auth",
                "token_uri": "https://oauth2.googleapis.com/token",
            }
        },
        scopes=SCOPES,
        redirect_uri=GOOGLE_REDIRECT_URI,
        state=state,
    )


def _remember_verifier(state: str, verifier: Optional[str]) -> None:
    _pending_verifiers[state] = verifier
    while len(_pending_verifiers) > MAX_PENDING_LOGINS:
        dropped, _ = _pending_verifiers.popitem(last=False)
        logger.info(f"Dropping abandoned OAuth login {dropped[:8]}...")


def _redirect(query: str) -> Response:
    return Response(status_code=307, headers={"Location": f"{FRONTEND_URL}/?{query}"})


@router.get("/auth/google/login")
async def google_login():
    """Initiates the OAuth2 flow - redirects to Google."""
    if not GOOGLE_CLIENT_ID or not GOOGLE_CLIENT_SECRET:
        raise HTTPException(status_code=500, detail="Google credentials not configured")

    flow = _make_flow()
    authorization_url, state = flow.authorization_url(include_granted_scopes="true")
    _remember_verifier(state, flow.code_verifier)

    # Redirect the browser directly to Google's OAuth page
    return Response(status_code=307, headers={"Location": authorization_url})


@router.get("/auth/google/callback")
async def google_callback(
    code: Optional[str] = None,
    state: Optional[str] = None,
    error: Optional[str] = None,
    backend: BackendAPI = Depends(get_backend),
):
    """Handles the OAuth2 callback."""
    if error or not code:
        logger.error(f"OAuth error: {error}")
        return _redirect("error=" + quote(error or "missing_code"))

    try:
        flow = _make_flow(state=state)
        flow.code_verifier = _pending_verifiers.pop(state, None) if state else None
        await asyncio.to_thread(flow.fetch_token, code=code)
        token = flow.credentials.token
    except Exception as e:
        logger.error(f"OAuth callback failed: {e}")
        return _redirect("error=token_exchange_failed")

    message = await backend.login(token)
    if message.kind != "success":
        return _redirect("error=" + quote(message.text))
    return _redirect("success=true")


@router.post("/auth/session")
async def create_session(
    payload: TokenIn,
    backend: BackendAPI = Depends(get_backend),
) -> dict:
    """Token flow: the browser already holds an access token."""
    message = await backend.login(payload.access_token)
    if message.kind != "success":
        raise HTTPException(status_code=401, detail=message.text)
    return backend.state.model_dump(mode="json")


@router.get("/auth/google/status")
async def google_status(backend: BackendAPI = Depends(get_backend)) -> dict:
    """Check if user is connected."""
    session = backend.current_session()
    return {"connected": session is not None, "email": session.email if session else None}


@router.post("/auth/google/disconnect")
async def google_disconnect(backend: BackendAPI = Depends(get_backend)) -> dict:
    """Forget the stored session."""
    backend.logout()
    return {"status": "disconnected"}
