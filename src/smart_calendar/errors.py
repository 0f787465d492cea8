from __future__ import annotations

from typing import Any, Optional


class CalendarAssistantError(Exception):
    """Base class for every error raised by the assistant pipeline."""


class ConfigurationError(CalendarAssistantError):
    """A required setting (e.g. the extraction API key) is missing."""


class UpstreamError(CalendarAssistantError):
    """An external API answered with a non-success HTTP status."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


class AuthExpiredError(UpstreamError):
    """The calendar provider rejected the access token (HTTP 401).

    The local session has already been cleared when this is raised.
    """


class ParseError(CalendarAssistantError, ValueError):
    """The extraction output is not JSON or lacks the expected keys."""


class SessionRequiredError(CalendarAssistantError):
    """An operation that needs an authenticated session was called without one."""
