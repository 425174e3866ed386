import logging
import os
from datetime import datetime, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

logger = logging.getLogger(__name__)

VENUE_TIMEZONE = (os.getenv("SIGNAGE_TIMEZONE", "") or "").strip()


class Clock(Protocol):
    def now(self) -> datetime: ...


def _load_zone(name: str) -> tzinfo | None:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning(f"Unknown timezone {name!r}, using system local time")
        return None


class SystemClock:
    """Aware wall-clock time at the venue.

    With no usable zone name the system's local zone is used.
    """

    def __init__(self, timezone_name: str | None = None) -> None:
        self._zone = _load_zone(VENUE_TIMEZONE if timezone_name is None else timezone_name.strip())

    @property
    def zone(self) -> tzinfo | None:
        return self._zone

    def now(self) -> datetime:
        if self._zone is None:
            return datetime.now().astimezone()
        return datetime.now(self._zone)
