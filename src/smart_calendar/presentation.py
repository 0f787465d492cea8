"""Display heuristics for upcoming events: colors, filtering, icon and text shortcuts."""

from __future__ import annotations

import logging
import re
from types import MappingProxyType
from typing import Iterable, List, Optional, Tuple, FrozenSet

from smart_calendar.models import ProviderEvent

logger = logging.getLogger(__name__)

HEALTH_COLOR = "#ef4444"
WORK_COLOR = "#3b82f6"
SOCIAL_COLOR = "#ec4899"
ACTIVITY_COLOR = "#22c55e"
TASK_COLOR = "#f59e0b"
DEFAULT_COLOR = "#8b5cf6"

# Evaluated in order; the first set with a keyword appearing as a whole word
# (singular or plural) in the title wins.
COLOR_RULES: Tuple[Tuple[FrozenSet[str], str], ...] = (
    (
        frozenset({
            "médico", "medico", "doctor", "dentista", "turno", "hospital",
            "clínica", "clinica", "pediatra", "vacuna", "análisis", "terapia",
        }),
        HEALTH_COLOR,
    ),
    (
        frozenset({
            "reunión", "reunion", "trabajo", "oficina", "cliente", "proyecto",
            "clase", "colegio", "escuela", "examen", "estudiar", "tarea",
        }),
        WORK_COLOR,
    ),
    (
        frozenset({
            "cena", "almuerzo", "cumpleaños", "fiesta", "amigos", "visita",
            "café", "cafe", "asado", "juntada",
        }),
        SOCIAL_COLOR,
    ),
    (
        frozenset({
            "danza", "atletismo", "fútbol", "futbol", "natación", "natacion",
            "gimnasio", "gym", "yoga", "tenis", "música", "musica", "deporte",
        }),
        ACTIVITY_COLOR,
    ),
    (
        frozenset({
            "llevar", "retirar", "buscar", "comprar", "pagar", "trámite",
            "tramite", "entregar", "llamar",
        }),
        TASK_COLOR,
    ),
)


def _word_pattern(keywords: FrozenSet[str]) -> re.Pattern:
    alternatives = "|".join(re.escape(k) for k in sorted(keywords, key=len, reverse=True))
    return re.compile(rf"\b(?:{alternatives})(?:e?s)?\b")


_COLOR_PATTERNS = tuple((_word_pattern(keywords), color) for keywords, color in COLOR_RULES)

COLOR_TOKENS = tuple(color for _, color in COLOR_RULES) + (DEFAULT_COLOR,)

VIRTUAL_CALENDAR_DOMAIN = "@group.v.calendar.google.com"
BIRTHDAY_GREETING = "¡Feliz cumpleaños!"


def color_of(title: str) -> str:
    lower = (title or "").lower()
    for pattern, color in _COLOR_PATTERNS:
        if pattern.search(lower):
            return color
    return DEFAULT_COLOR


def is_suppressed(event: ProviderEvent) -> bool:
    """True for entries the provider generates itself (birthdays, holidays)."""
    organizer_email = event.organizer.email if event.organizer else None
    if organizer_email and organizer_email.endswith(VIRTUAL_CALENDAR_DOMAIN):
        return True
    return event.title == BIRTHDAY_GREETING


def visible_events(events: Iterable[ProviderEvent]) -> List[ProviderEvent]:
    out = []
    for event in events:
        if is_suppressed(event):
            logger.debug(f"Hiding virtual calendar entry {event.id}")
            continue
        out.append(event.model_copy(update={"color": color_of(event.title)}))
    return out


# Shortcut name -> OpenMoji code point sequence.
ICON_CODES = MappingProxyType({
    "fc:businesswoman": "1F469-1F3FD-200D-1F4BC",
    "fc:manager": "1F9D4-1F3FB-200D-2642-FE0F",
    "fc:reading": "1F469-1F3FD-200D-1F3A4",
    "fc:sports-mode": "1F469-1F3FB-200D-1F3A8",
    "fc:podium-with-speaker": "1FA7A",
    "fc:like": "1F382",
    "fc:conference-call": "1F64B-1F3FC-200D-2640-FE0F",
    "fc:home": "1F3E0",
    "fc:music": "1F3B5",
    "fc:services": "1F3A8",
    "fc:customer-support": "1F9B7",
    "fc:contacts": "2709",
    "fc:package": "1F4E6",
    "fc:planner": "1F4C5",
    "fc:briefcase": "1F4BC",
    "fc:phone": "1F4F1",
    "fc:graduation-cap": "1F3EB",
    "fc:shop": "1F37D",
    "fc:gamepad": "1F3AE",
    "fc:microphone": "1F3A4",
    "fc:dancer": "1F483",
    "fc:artist-palette": "1F3A8",
    "fc:tooth": "1F9B7",
    "fc:person-running": "1F938-200D-2640-FE0F",
    "fc:handshake": "1F91D",
})

OPENMOJI_CDN = "https://cdn.jsdelivr.net/npm/openmoji@13.1.0/color/svg"


def icon_url(icon: str) -> Optional[str]:
    code = ICON_CODES.get(icon)
    if not code:
        logger.warning(f"No emoji code found for icon: {icon}")
        return None
    return f"{OPENMOJI_CDN}/{code.upper()}.svg"


# Text shortcuts offered next to the input box.
EXAMPLE_INPUTS = (
    "Llevar a Trini a Danza mañana a las 5pm",
    "Chiara tiene Atletismo el miercoles a las 16hs",
    "Cena con Fran y Gaby el sábado a las 21hs",
)

INPUT_TEMPLATES = (
    "Llevar a ... a ... el ... a las ...",
    "Retirar ... en ... el ... a las ...",
    "Visita de ... el ... a las ... en ...",
)
