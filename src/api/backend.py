import asyncio
import logging
import os
from datetime import datetime
from typing import Callable, List, Optional

from extraction.event_extractor import EventExtractor
from integration.calendar_integration import CalendarIntegration
from scheduling.event_builder import build, local_now
from smart_calendar.errors import AuthExpiredError, SessionRequiredError
from smart_calendar.models import ExtractedEvent, ProviderEvent, Session, UIMessage, UIState
from smart_calendar.presentation import visible_events
from storage.session_store import SessionStore
from api.metrics import EVENTS_CREATED_TOTAL, FORCED_LOGOUTS_TOTAL, SUBMISSION_FAILURES_TOTAL

logger = logging.getLogger(__name__)

PREVIEW_TTL_S = float(os.getenv("PREVIEW_TTL_S", "5"))

EMPTY_INPUT_MESSAGE = "Por favor describe tu tarea"
SUBMIT_ERROR_MESSAGE = "Error al crear el evento. Revisa los registros para más detalles."
SUBMIT_SUCCESS_MESSAGE = "¡Evento creado exitosamente en Google Calendar!"
CONNECTED_MESSAGE = "¡Conectado con Google Calendar!"
PROFILE_ERROR_MESSAGE = "No se pudo obtener la información del usuario."


class BackendAPI:
    """Central orchestration component of the smart calendar.

    Owns the UI state and is the only writer of the session besides the
    calendar client's forced logout on 401.
    """

    def __init__(
        self,
        session_store: Optional[SessionStore] = None,
        extractor: Optional[EventExtractor] = None,
        calendar: Optional[CalendarIntegration] = None,
        preview_ttl_s: Optional[float] = None,
        clock: Callable[[], datetime] = local_now,
    ):
        self.session_store = session_store or SessionStore()
        self.extractor = extractor or EventExtractor()
        self.calendar = calendar or CalendarIntegration(session_store=self.session_store)
        self.preview_ttl_s = PREVIEW_TTL_S if preview_ttl_s is None else preview_ttl_s
        self.clock = clock
        self.state = UIState()
        self._preview_timer: Optional[asyncio.TimerHandle] = None

    def _set_message(self, kind: str, text: str) -> UIMessage:
        self.state.message = UIMessage(kind=kind, text=text)
        return self.state.message

    def _schedule_preview_clear(self, extracted: ExtractedEvent) -> None:
        if self._preview_timer is not None:
            self._preview_timer.cancel()

        def _clear() -> None:
            if self.state.extracted is extracted:
                self.state.extracted = None
            self._preview_timer = None

        self._preview_timer = asyncio.get_running_loop().call_later(self.preview_ttl_s, _clear)

    def _reset_state(self) -> None:
        if self._preview_timer is not None:
            self._preview_timer.cancel()
            self._preview_timer = None
        self.state = UIState()

    def current_session(self) -> Optional[Session]:
        return self.session_store.load()

    def restore(self) -> Optional[Session]:
        """Pick up a session saved by a previous run."""
        session = self.session_store.load()
        if session:
            logger.info(f"Session restored for {session.email}")
            self._set_message("success", CONNECTED_MESSAGE)
        return session

    async def login(self, token: str) -> UIMessage:
        self.state.processing = True
        try:
            profile = await self.calendar.get_profile(token)
            email = profile.get("email")
            if not email:
                raise ValueError("userinfo response has no email")
        except Exception as e:
            logger.error(f"Error fetching user info: {e}")
            return self._set_message("error", PROFILE_ERROR_MESSAGE)
        finally:
            self.state.processing = False

        session = Session(access_token=token, email=email)
        self.session_store.save(session)
        logger.info(f"Login successful for {email}")
        message = self._set_message("success", CONNECTED_MESSAGE)

        try:
            await self.refresh_upcoming(session)
        except Exception as e:
            logger.warning(f"Could not load upcoming events after login: {e}")
        return message

    def logout(self) -> None:
        self.session_store.clear()
        self._reset_state()
        logger.info("Logged out")

    async def refresh_upcoming(self, session: Session) -> List[ProviderEvent]:
        """Replace the cached upcoming list with a fresh, filtered fetch."""
        try:
            events = await self.calendar.list_upcoming(session.access_token, now=self.clock())
        except AuthExpiredError:
            FORCED_LOGOUTS_TOTAL.inc()
            self._reset_state()
            raise
        self.state.upcoming = visible_events(events)
        return self.state.upcoming

    async def submit(self, text: str, session: Optional[Session]) -> UIMessage:
        """Free text -> extracted fields -> calendar event -> refreshed list."""
        if session is None:
            raise SessionRequiredError("submit requires an authenticated session")

        if not text or not text.strip():
            return self._set_message("error", EMPTY_INPUT_MESSAGE)

        self.state.processing = True
        self.state.message = UIMessage()
        try:
            try:
                extracted = await self.extractor.extract(text, now=self.clock())
                self.state.extracted = extracted
                payload = build(extracted)
                created = await self.calendar.create_event(session.access_token, payload)
            except Exception as e:
                logger.exception(f"Event submission failed: {e}")
                SUBMISSION_FAILURES_TOTAL.labels(error=type(e).__name__).inc()
                return self._set_message("error", SUBMIT_ERROR_MESSAGE)

            EVENTS_CREATED_TOTAL.inc()
            logger.info(f"Event created: {created.id} {created.link or ''}")

            try:
                await self.refresh_upcoming(session)
            except Exception as e:
                # The event exists already; a failed refresh does not undo it.
                logger.warning(f"Could not refresh upcoming events: {e}")

            if self.state.extracted is not None:
                self._schedule_preview_clear(extracted)
            return self._set_message("success", SUBMIT_SUCCESS_MESSAGE)
        finally:
            self.state.processing = False
