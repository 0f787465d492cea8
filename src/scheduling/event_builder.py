import logging
import os
from datetime import datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from smart_calendar.models import EventPayload, EventTime, ExtractedEvent

logger = logging.getLogger(__name__)

EVENT_DURATION = timedelta(hours=1)
LOCALTIME_PATH = "/etc/localtime"


def _valid_zone(name: str) -> bool:
    try:
        ZoneInfo(name)
        return True
    except (ZoneInfoNotFoundError, ValueError):
        return False


def _zone_from_localtime() -> Optional[str]:
    target = os.path.realpath(LOCALTIME_PATH)
    if "/zoneinfo/" not in target:
        return None
    name = target.split("/zoneinfo/", 1)[1]
    return name if _valid_zone(name) else None


def local_timezone_name() -> Optional[str]:
    """IANA zone of the running process, or None when it has no IANA name.

    CALENDAR_TIMEZONE wins. Otherwise the zone comes from the same place the
    C library takes it: TZ when set, /etc/localtime when not. A TZ that is a
    POSIX rule (e.g. "ART3") has no IANA name.
    """
    name = os.getenv("CALENDAR_TIMEZONE", "").strip()
    if name:
        if _valid_zone(name):
            return name
        logger.warning(f"Ignoring unknown timezone {name!r} from CALENDAR_TIMEZONE")

    tz = os.getenv("TZ")
    if tz is not None:
        tz = tz.strip().lstrip(":")
        return tz if tz and _valid_zone(tz) else None
    return _zone_from_localtime()


def local_now() -> datetime:
    """Current time in the zone events are stamped with."""
    name = local_timezone_name()
    if name:
        return datetime.now(ZoneInfo(name))
    return datetime.now().astimezone()


def event_window(extracted: ExtractedEvent) -> tuple[datetime, datetime]:
    start = datetime.combine(extracted.date, extracted.time)
    return start, start + EVENT_DURATION


def build(extracted: ExtractedEvent, tz_name: Optional[str] = None) -> EventPayload:
    """Shape the provider payload for a one-hour event.

    With a zone name, dateTime is wall-clock time read in timeZone. Without
    one, dateTime carries the host's UTC offset for that date instead.
    """
    tz_name = tz_name or local_timezone_name()
    start, end = event_window(extracted)
    if tz_name is None:
        start = start.astimezone()
        end = start + EVENT_DURATION
    return EventPayload(
        summary=extracted.title,
        description=extracted.description,
        start=EventTime(dateTime=start.isoformat(timespec="seconds"), timeZone=tz_name),
        end=EventTime(dateTime=end.isoformat(timespec="seconds"), timeZone=tz_name),
    )
