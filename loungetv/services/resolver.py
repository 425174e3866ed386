import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime

from loungetv.schemas.playlist import PlaylistOut
from loungetv.schemas.screen import ScreenOut
from loungetv.services.schedule_window import is_window_open, screen_eligible, window_for_playlist

logger = logging.getLogger(__name__)

REASON_MANUAL = "manual"
REASON_SCHEDULED = "scheduled"
REASON_DEFAULT = "default"
REASON_ALL_SCREENS = "all_screens"

Memberships = Mapping[int, Iterable[int]]


@dataclass(frozen=True)
class Resolution:
    screens: tuple[ScreenOut, ...]
    playlist_id: int | None
    playlist_name: str | None
    reason: str

    @property
    def screen_ids(self) -> frozenset[int]:
        return frozenset(screen.id for screen in self.screens)


def _smallest_id(playlists: Iterable[PlaylistOut]) -> PlaylistOut | None:
    return min(playlists, key=lambda playlist: playlist.id, default=None)


def select_playlist(now: datetime, playlists: Iterable[PlaylistOut]) -> tuple[PlaylistOut | None, str]:
    playlists = list(playlists)

    manual = _smallest_id(p for p in playlists if p.is_active)
    if manual is not None:
        return manual, REASON_MANUAL

    scheduled = _smallest_id(
        p for p in playlists if p.scheduling_enabled and is_window_open(window_for_playlist(p), now)
    )
    if scheduled is not None:
        return scheduled, REASON_SCHEDULED

    default = _smallest_id(p for p in playlists if p.is_default)
    if default is not None:
        return default, REASON_DEFAULT

    return None, REASON_ALL_SCREENS


def _members(playlist_id: int, screens: Iterable[ScreenOut], memberships: Memberships) -> list[ScreenOut]:
    member_ids = set(memberships.get(playlist_id, ()))
    return [screen for screen in screens if screen.id in member_ids]


def resolve(
    now: datetime,
    playlists: Iterable[PlaylistOut],
    screens: Iterable[ScreenOut],
    memberships: Memberships,
) -> Resolution:
    screens = list(screens)
    playlist, reason = select_playlist(now, playlists)

    candidates = screens if playlist is None else _members(playlist.id, screens, memberships)
    eligible = sorted(
        (screen for screen in candidates if screen_eligible(screen, now)),
        key=lambda screen: screen.id,
    )
    logger.debug(
        f"Resolved {len(eligible)}/{len(candidates)} screens via {reason}"
        f" playlist={playlist.id if playlist else None}"
    )
    return Resolution(
        screens=tuple(eligible),
        playlist_id=playlist.id if playlist else None,
        playlist_name=playlist.name if playlist else None,
        reason=reason,
    )


def fallback_screens(
    playlists: Iterable[PlaylistOut],
    screens: Iterable[ScreenOut],
    memberships: Memberships,
) -> tuple[ScreenOut, ...]:
    """The designated default set looped when nothing else is eligible.

    Active members of the default playlist, regardless of their own windows.
    """
    default = _smallest_id(p for p in playlists if p.is_default)
    if default is None:
        return ()
    members = _members(default.id, screens, memberships)
    return tuple(sorted((s for s in members if s.is_active), key=lambda screen: screen.id))
