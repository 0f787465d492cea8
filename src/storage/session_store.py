from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from smart_calendar.models import Session

logger = logging.getLogger(__name__)

TOKEN_KEY = "googleAccessToken"
EMAIL_KEY = "googleUserEmail"


class SessionStore:
    """Durable key-value storage for the two session strings."""

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path or os.getenv("SESSION_STORE_PATH", "data/session.json"))

    def _read(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Session file {self.path} is unreadable: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def load(self) -> Optional[Session]:
        data = self._read()
        token = data.get(TOKEN_KEY)
        email = data.get(EMAIL_KEY)
        if not (isinstance(token, str) and token and isinstance(email, str) and email):
            if data:
                logger.warning(f"Session file {self.path} is incomplete, ignoring it")
            return None
        return Session(access_token=token, email=email)

    def save(self, session: Session) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        data = {TOKEN_KEY: session.access_token, EMAIL_KEY: session.email}
        self.path.write_text(
            json.dumps(data, ensure_ascii=False, indent=2),
            encoding="utf-8",
        )
        logger.info(f"Saved session for {session.email}")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
        logger.info("Cleared stored session")
