"""Day / time / date-range window matching shared by playlists and screens.

All comparisons happen in the local wall-clock time of the ``now`` passed in,
so "17:00" means 5pm at the venue regardless of the server's zone.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, time

from loungetv.schemas.playlist import PlaylistOut
from loungetv.schemas.screen import ScreenOut

logger = logging.getLogger(__name__)


class ScheduleWindowError(ValueError):
    """A stored window field that cannot be interpreted."""


@dataclass(frozen=True)
class TimeSlot:
    time_start: str
    time_end: str


@dataclass(frozen=True)
class ScheduleWindow:
    scheduling_enabled: bool = False
    start_at: datetime | None = None
    end_at: datetime | None = None
    days_of_week: tuple[int | str, ...] = ()
    time_slots: tuple[TimeSlot, ...] = ()
    label: str = field(default="", compare=False)


def parse_hm(value: str) -> time:
    raw = (value or "").strip()
    parts = raw.split(":")
    if len(parts) not in (2, 3):
        raise ScheduleWindowError(f"time {value!r} is not HH:MM")
    try:
        hour = int(parts[0])
        minute = int(parts[1])
        second = int(parts[2]) if len(parts) == 3 else 0
    except ValueError as exc:
        raise ScheduleWindowError(f"time {value!r} is not numeric") from exc
    if hour < 0 or hour > 23 or minute < 0 or minute > 59 or second < 0 or second > 59:
        raise ScheduleWindowError(f"time {value!r} is out of range")
    return time(hour, minute, second)


def parse_days(values) -> frozenset[int]:
    days: set[int] = set()
    for item in values or ():
        try:
            day = int(str(item).strip())
        except ValueError as exc:
            raise ScheduleWindowError(f"day {item!r} is not a number") from exc
        if day < 0 or day > 6:
            raise ScheduleWindowError(f"day {item!r} is not in range 0-6")
        days.add(day)
    return frozenset(days)


def local_day_of_week(now: datetime) -> int:
    """0=Sunday .. 6=Saturday."""
    return now.isoweekday() % 7


def _as_local(value: datetime, now: datetime) -> datetime:
    # Stored datetimes are naive venue-local time.
    if now.tzinfo is None:
        return value if value.tzinfo is None else value.astimezone().replace(tzinfo=None)
    if value.tzinfo is None:
        return value.replace(tzinfo=now.tzinfo)
    return value


def _slot_contains(slot: TimeSlot, current: time) -> bool:
    start = parse_hm(slot.time_start)
    end = parse_hm(slot.time_end)
    if end < start:
        # TODO: decide whether overnight slots such as 22:00-02:00 should wrap past midnight.
        raise ScheduleWindowError(f"slot {slot.time_start}-{slot.time_end} ends before it starts")
    return start <= current < end


def _evaluate(window: ScheduleWindow, now: datetime) -> bool:
    if window.start_at is not None and now < _as_local(window.start_at, now):
        return False
    if window.end_at is not None and now > _as_local(window.end_at, now):
        return False

    days = parse_days(window.days_of_week)
    if days and local_day_of_week(now) not in days:
        return False

    if not window.time_slots:
        return True
    current = now.time()
    matched = False
    for slot in window.time_slots:
        # Every slot is parsed so a malformed one is reported even if another matches.
        if _slot_contains(slot, current):
            matched = True
    return matched


def is_window_open(window: ScheduleWindow, now: datetime) -> bool:
    """Return True when ``window`` admits the instant ``now``.

    Disabled scheduling always admits. A malformed window never does; the
    problem is logged and the caller simply sees a closed window.
    """
    if not window.scheduling_enabled:
        return True
    try:
        return _evaluate(window, now)
    except ScheduleWindowError as exc:
        logger.warning(f"Ignoring malformed schedule window {window.label or '?'}: {exc}")
        return False


def window_for_screen(screen: ScreenOut) -> ScheduleWindow:
    slots: tuple[TimeSlot, ...] = ()
    if screen.time_start and screen.time_end:
        slots = (TimeSlot(screen.time_start, screen.time_end),)
    return ScheduleWindow(
        scheduling_enabled=screen.scheduling_enabled,
        start_at=screen.start_at,
        end_at=screen.end_at,
        days_of_week=tuple(screen.days_of_week or ()),
        time_slots=slots,
        label=f"screen {screen.id}",
    )


def window_for_playlist(playlist: PlaylistOut) -> ScheduleWindow:
    slots = tuple(
        TimeSlot(slot.time_start, slot.time_end)
        for slot in (playlist.time_slots or ())
        if slot.time_start and slot.time_end
    )
    # Legacy single-slot fields only count when no usable slot list exists.
    if not slots and playlist.time_start and playlist.time_end:
        slots = (TimeSlot(playlist.time_start, playlist.time_end),)
    return ScheduleWindow(
        scheduling_enabled=playlist.scheduling_enabled,
        start_at=playlist.start_at,
        end_at=playlist.end_at,
        days_of_week=tuple(playlist.days_of_week or ()),
        time_slots=slots,
        label=f"playlist {playlist.id}",
    )


def screen_eligible(screen: ScreenOut, now: datetime) -> bool:
    return screen.is_active and is_window_open(window_for_screen(screen), now)
