import logging
import os
from datetime import datetime, timezone
from typing import Any, List, Optional

import httpx

from smart_calendar.errors import AuthExpiredError, UpstreamError
from smart_calendar.models import EventPayload, ProviderEvent
from storage.session_store import SessionStore

logger = logging.getLogger(__name__)

CALENDAR_API_URL = os.getenv("CALENDAR_API_URL", "https://www.googleapis.com/calendar/v3")
USERINFO_URL = os.getenv("GOOGLE_USERINFO_URL", "https://www.googleapis.com/oauth2/v3/userinfo")
CALENDAR_HTTP_TIMEOUT_S = float(os.getenv("CALENDAR_HTTP_TIMEOUT_S", "30"))
UPCOMING_LIMIT = 5


def _error_details(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text


class CalendarIntegration:
    """Google Calendar REST client authenticated with a bearer access token."""

    def __init__(
        self,
        session_store: Optional[SessionStore] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.session_store = session_store
        self._client = client

    async def _request(self, method: str, url: str, token: str, **kwargs) -> httpx.Response:
        headers = {"Authorization": f"Bearer {token}"}
        if self._client is not None:
            return await self._client.request(method, url, headers=headers, **kwargs)
        async with httpx.AsyncClient(timeout=CALENDAR_HTTP_TIMEOUT_S) as client:
            return await client.request(method, url, headers=headers, **kwargs)

    async def get_profile(self, token: str) -> dict:
        r = await self._request("GET", USERINFO_URL, token)
        if r.is_error:
            details = _error_details(r)
            logger.error(f"Google userinfo error {r.status_code}: {details}")
            raise UpstreamError("Could not fetch user info", status_code=r.status_code, payload=details)
        return r.json()

    async def create_event(self, token: str, payload: EventPayload) -> ProviderEvent:
        logger.info(f"Creating calendar event: {payload.summary}")
        r = await self._request(
            "POST",
            f"{CALENDAR_API_URL}/calendars/primary/events",
            token,
            json=payload.model_dump(exclude_none=True),
        )
        if r.is_error:
            details = _error_details(r)
            logger.error(f"Google Calendar create error {r.status_code}: {details}")
            raise UpstreamError(
                "Could not create the event in Google Calendar",
                status_code=r.status_code,
                payload=details,
            )
        return ProviderEvent.from_google(r.json())

    async def list_upcoming(
        self,
        token: str,
        now: Optional[datetime] = None,
        max_results: int = UPCOMING_LIMIT,
    ) -> List[ProviderEvent]:
        """Next events from now, with recurring events expanded.

        A 401 means the token expired: the stored session is dropped before
        AuthExpiredError is raised.
        """
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.astimezone()
        params = {
            "timeMin": now.isoformat(),
            "maxResults": max_results,
            "singleEvents": "true",
            "orderBy": "startTime",
        }
        r = await self._request(
            "GET", f"{CALENDAR_API_URL}/calendars/primary/events", token, params=params
        )

        if r.status_code == 401:
            details = _error_details(r)
            logger.warning("Google access token expired, logging out")
            if self.session_store is not None:
                self.session_store.clear()
            raise AuthExpiredError("Google session expired", status_code=401, payload=details)

        if r.is_error:
            details = _error_details(r)
            logger.error(f"Google Calendar list error {r.status_code}: {details}")
            raise UpstreamError(
                "Could not fetch upcoming events",
                status_code=r.status_code,
                payload=details,
            )

        items = r.json().get("items", [])
        return [ProviderEvent.from_google(item) for item in items]
