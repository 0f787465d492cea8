import json

import httpx
import pytest

from smart_calendar.models import Session
from storage.session_store import SessionStore


class FakeProvider:
    def __init__(self, response_text: str):
        self._response_text = response_text
        self.prompts = []

    async def generate(self, *, user: str, system=None) -> str:
        self.prompts.append(user)
        return self._response_text


class RecordingTransport:
    """Callable for httpx.MockTransport that answers from a route table."""

    def __init__(self, routes=None):
        self.routes = routes or {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)
        status, body = self.routes.get(key, (404, {"error": "not found"}))
        return httpx.Response(status, json=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


@pytest.fixture
def fake_provider_factory():
    def _make(response_text: str):
        return FakeProvider(response_text)
    return _make


@pytest.fixture
def transport_factory():
    def _make(routes=None):
        return RecordingTransport(routes)
    return _make


@pytest.fixture
def session_store(tmp_path):
    return SessionStore(path=str(tmp_path / "session.json"))


@pytest.fixture
def session():
    return Session(access_token="ya29.token", email="ana@example.com")


@pytest.fixture
def google_event():
    def _make(event_id="evt1", summary="Cena con Fran y Gaby", organizer=None, start=None):
        item = {
            "id": event_id,
            "summary": summary,
            "htmlLink": f"https://calendar.google.com/event?eid={event_id}",
            "start": start or {"dateTime": "2024-06-15T21:00:00-03:00"},
        }
        if organizer:
            item["organizer"] = organizer
        return item
    return _make


@pytest.fixture
def completion_body():
    def _make(content: dict) -> dict:
        return {"choices": [{"message": {"role": "assistant", "content": json.dumps(content)}}]}
    return _make
