import asyncio
import json
from datetime import datetime, timezone

import pytest

from integration.calendar_integration import CalendarIntegration
from smart_calendar.errors import AuthExpiredError, UpstreamError
from smart_calendar.models import EventPayload, EventTime

EVENTS = ("GET", "/calendar/v3/calendars/primary/events")
CREATE = ("POST", "/calendar/v3/calendars/primary/events")
USERINFO = ("GET", "/oauth2/v3/userinfo")
NOW = datetime(2024, 6, 12, 13, 0, tzinfo=timezone.utc)


def _payload():
    return EventPayload(
        summary="Cena con Fran y Gaby",
        description="Cena con Fran y Gaby el sábado a las 21hs",
        start=EventTime(dateTime="2024-06-15T21:00:00", timeZone="UTC"),
        end=EventTime(dateTime="2024-06-15T22:00:00", timeZone="UTC"),
    )


def test_get_profile(transport_factory):
    transport = transport_factory({USERINFO: (200, {"email": "ana@example.com", "sub": "1"})})
    calendar = CalendarIntegration(client=transport.client())

    profile = asyncio.run(calendar.get_profile("tok"))

    assert profile["email"] == "ana@example.com"
    assert transport.requests[0].headers["Authorization"] == "Bearer tok"


def test_create_event_posts_payload(transport_factory, google_event):
    transport = transport_factory({CREATE: (200, google_event(event_id="abc"))})
    calendar = CalendarIntegration(client=transport.client())

    created = asyncio.run(calendar.create_event("tok", _payload()))

    assert created.id == "abc"
    body = json.loads(transport.requests[0].content)
    assert body["summary"] == "Cena con Fran y Gaby"
    assert body["start"] == {"dateTime": "2024-06-15T21:00:00", "timeZone": "UTC"}
    assert body["end"]["dateTime"] == "2024-06-15T22:00:00"
    assert transport.requests[0].headers["Authorization"] == "Bearer tok"


def test_create_event_failure(transport_factory):
    error = {"error": {"code": 400, "message": "Bad Request"}}
    transport = transport_factory({CREATE: (400, error)})
    calendar = CalendarIntegration(client=transport.client())

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(calendar.create_event("tok", _payload()))
    assert exc_info.value.status_code == 400
    assert exc_info.value.payload == error


def test_list_upcoming_query(transport_factory, google_event):
    items = [
        google_event("a"),
        google_event("b", summary=None, start={"date": "2024-06-20"}),
    ]
    transport = transport_factory({EVENTS: (200, {"items": items})})
    calendar = CalendarIntegration(client=transport.client())

    events = asyncio.run(calendar.list_upcoming("tok", now=NOW))

    params = transport.requests[0].url.params
    assert params["timeMin"] == "2024-06-12T13:00:00+00:00"
    assert params["maxResults"] == "5"
    assert params["singleEvents"] == "true"
    assert params["orderBy"] == "startTime"
    assert [e.id for e in events] == ["a", "b"]
    assert events[1].title == "(Sin título)"
    assert events[1].start.isoformat() == "2024-06-20"


def test_list_upcoming_401_clears_session(transport_factory, session_store, session):
    session_store.save(session)
    transport = transport_factory({EVENTS: (401, {"error": {"code": 401}})})
    calendar = CalendarIntegration(session_store=session_store, client=transport.client())

    with pytest.raises(AuthExpiredError):
        asyncio.run(calendar.list_upcoming(session.access_token, now=NOW))

    assert session_store.load() is None


def test_list_upcoming_other_error_keeps_session(transport_factory, session_store, session):
    session_store.save(session)
    transport = transport_factory({EVENTS: (503, {"error": "backend"})})
    calendar = CalendarIntegration(session_store=session_store, client=transport.client())

    with pytest.raises(UpstreamError) as exc_info:
        asyncio.run(calendar.list_upcoming(session.access_token, now=NOW))

    assert not isinstance(exc_info.value, AuthExpiredError)
    assert session_store.load() == session
