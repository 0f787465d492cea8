import asyncio
from datetime import date, datetime, time, timezone

import pytest

from api.backend import (
    CONNECTED_MESSAGE,
    EMPTY_INPUT_MESSAGE,
    PROFILE_ERROR_MESSAGE,
    SUBMIT_ERROR_MESSAGE,
    SUBMIT_SUCCESS_MESSAGE,
    BackendAPI,
)
from smart_calendar.errors import (
    AuthExpiredError,
    ConfigurationError,
    SessionRequiredError,
    UpstreamError,
)
from smart_calendar.models import ExtractedEvent, ProviderEvent, Session

NOW = datetime(2024, 6, 12, 10, 0, tzinfo=timezone.utc)
TEXT = "Cena con Fran y Gaby el sábado a las 21hs"


class FakeExtractor:
    def __init__(self, calls, error=None):
        self.calls = calls
        self.error = error

    async def extract(self, text, now=None):
        self.calls.append(("extract", text))
        if self.error:
            raise self.error
        return ExtractedEvent(
            title="Cena con Fran y Gaby",
            date=date(2024, 6, 15),
            time=time(21, 0),
            description=text,
        )


class FakeCalendar:
    def __init__(self, calls, session_store=None, create_error=None, list_error=None, events=None):
        self.calls = calls
        self.session_store = session_store
        self.create_error = create_error
        self.list_error = list_error
        self.events = events if events is not None else []
        self.payloads = []

    async def get_profile(self, token):
        self.calls.append(("profile", token))
        if token == "bad":
            raise UpstreamError("nope", status_code=401)
        return {"email": "ana@example.com"}

    async def create_event(self, token, payload):
        self.calls.append(("create", token))
        self.payloads.append(payload)
        if self.create_error:
            raise self.create_error
        return ProviderEvent(id="new", title=payload.summary)

    async def list_upcoming(self, token, now=None, max_results=5):
        self.calls.append(("list", token))
        if self.list_error:
            if isinstance(self.list_error, AuthExpiredError) and self.session_store:
                self.session_store.clear()
            raise self.list_error
        return self.events


@pytest.fixture
def calls():
    return []


def _backend(calls, session_store, extractor=None, calendar=None, ttl=5.0):
    return BackendAPI(
        session_store=session_store,
        extractor=extractor or FakeExtractor(calls),
        calendar=calendar or FakeCalendar(calls, session_store=session_store),
        preview_ttl_s=ttl,
        clock=lambda: NOW,
    )


def test_submit_runs_steps_in_order(calls, session_store, session):
    backend = _backend(calls, session_store)

    message = asyncio.run(backend.submit(TEXT, session))

    assert message.kind == "success"
    assert message.text == SUBMIT_SUCCESS_MESSAGE
    assert [c[0] for c in calls] == ["extract", "create", "list"]
    assert backend.state.processing is False


def test_submit_builds_one_hour_event(calls, session_store, session, monkeypatch):
    monkeypatch.setenv("CALENDAR_TIMEZONE", "America/Argentina/Cordoba")
    calendar = FakeCalendar(calls, session_store=session_store)
    backend = _backend(calls, session_store, calendar=calendar)

    asyncio.run(backend.submit(TEXT, session))

    payload = calendar.payloads[0]
    assert payload.start.dateTime == "2024-06-15T21:00:00"
    assert payload.end.dateTime == "2024-06-15T22:00:00"
    assert payload.description == TEXT
    assert payload.start.timeZone == "America/Argentina/Cordoba"


@pytest.mark.parametrize("text", ["", "   ", "\n\t"])
def test_empty_input_makes_no_calls(calls, session_store, session, text):
    backend = _backend(calls, session_store)

    message = asyncio.run(backend.submit(text, session))

    assert message.kind == "error"
    assert message.text == EMPTY_INPUT_MESSAGE
    assert calls == []


def test_submit_without_session_is_a_programming_error(calls, session_store):
    backend = _backend(calls, session_store)
    with pytest.raises(SessionRequiredError):
        asyncio.run(backend.submit(TEXT, None))


@pytest.mark.parametrize(
    "error",
    [ConfigurationError("OPENROUTER_API_KEY is missing"), UpstreamError("boom", status_code=500)],
)
def test_extraction_failure_short_circuits(calls, session_store, session, error):
    backend = _backend(calls, session_store, extractor=FakeExtractor(calls, error=error))

    message = asyncio.run(backend.submit(TEXT, session))

    assert message.kind == "error"
    assert message.text == SUBMIT_ERROR_MESSAGE
    assert [c[0] for c in calls] == ["extract"]


def test_create_failure_short_circuits(calls, session_store, session):
    calendar = FakeCalendar(calls, create_error=UpstreamError("quota", status_code=403))
    backend = _backend(calls, session_store, calendar=calendar)

    message = asyncio.run(backend.submit(TEXT, session))

    assert message.text == SUBMIT_ERROR_MESSAGE
    assert [c[0] for c in calls] == ["extract", "create"]


def test_refresh_failure_still_reports_success(calls, session_store, session):
    calendar = FakeCalendar(calls, list_error=UpstreamError("list down", status_code=500))
    backend = _backend(calls, session_store, calendar=calendar)

    message = asyncio.run(backend.submit(TEXT, session))

    assert message.kind == "success"
    assert [c[0] for c in calls] == ["extract", "create", "list"]


def test_preview_is_cleared_after_ttl(calls, session_store, session):
    backend = _backend(calls, session_store, ttl=0.01)

    async def scenario():
        await backend.submit(TEXT, session)
        assert backend.state.extracted is not None
        assert backend.state.extracted.title == "Cena con Fran y Gaby"
        await asyncio.sleep(0.05)
        return backend.state.extracted

    assert asyncio.run(scenario()) is None


def test_refresh_filters_and_replaces_list(calls, session_store, session):
    events = [
        ProviderEvent(id="1", title="¡Feliz cumpleaños!"),
        ProviderEvent(id="2", title="Dentista"),
    ]
    calendar = FakeCalendar(calls, events=events)
    backend = _backend(calls, session_store, calendar=calendar)
    backend.state.upcoming = [ProviderEvent(id="old", title="Viejo")]

    upcoming = asyncio.run(backend.refresh_upcoming(session))

    assert [e.id for e in upcoming] == ["2"]
    assert backend.state.upcoming == upcoming
    assert upcoming[0].color is not None


def test_refresh_401_logs_out(calls, session_store, session):
    session_store.save(session)
    calendar = FakeCalendar(
        calls, session_store=session_store, list_error=AuthExpiredError("expired", status_code=401)
    )
    backend = _backend(calls, session_store, calendar=calendar)
    backend.state.upcoming = [ProviderEvent(id="old")]

    with pytest.raises(AuthExpiredError):
        asyncio.run(backend.refresh_upcoming(session))

    assert session_store.load() is None
    assert backend.state.upcoming == []


def test_login_saves_session(calls, session_store):
    backend = _backend(calls, session_store)

    message = asyncio.run(backend.login("ya29.fresh"))

    assert message.text == CONNECTED_MESSAGE
    assert session_store.load() == Session(access_token="ya29.fresh", email="ana@example.com")
    assert [c[0] for c in calls] == ["profile", "list"]


def test_login_failure_saves_nothing(calls, session_store):
    backend = _backend(calls, session_store)

    message = asyncio.run(backend.login("bad"))

    assert message.kind == "error"
    assert message.text == PROFILE_ERROR_MESSAGE
    assert session_store.load() is None


def test_logout_clears_everything(calls, session_store, session):
    session_store.save(session)
    backend = _backend(calls, session_store)
    backend.state.upcoming = [ProviderEvent(id="1")]

    backend.logout()

    assert session_store.load() is None
    assert backend.state.upcoming == []
    assert backend.state.message.kind == "none"


def test_restore(calls, session_store, session):
    backend = _backend(calls, session_store)
    assert backend.restore() is None

    session_store.save(session)
    assert backend.restore() == session
    assert backend.state.message.text == CONNECTED_MESSAGE
