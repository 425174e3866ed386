"""Fake collaborators for driving the engine without an event loop."""

import heapq
import random
from datetime import datetime, timedelta
from typing import Callable

from loungetv.schemas.playlist import PlaylistOut
from loungetv.schemas.screen import ScreenOut, ScreenType
from loungetv.schemas.settings import SettingsOut


class FakeHandle:
    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Manual scheduler: nothing fires until ``advance`` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: list[tuple[float, int, FakeHandle]] = []
        self._seq = 0

    def monotonic(self) -> float:
        return self.now

    def call_later(self, delay: float, callback: Callable[[], None]) -> FakeHandle:
        handle = FakeHandle(self.now + max(0.0, delay), callback)
        heapq.heappush(self._queue, (handle.when, self._seq, handle))
        self._seq += 1
        return handle

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        # Tolerate float drift from repeated 0.1s ticks.
        while self._queue and self._queue[0][0] <= target + 1e-9:
            when, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.now = max(self.now, when)
            handle.callback()
        self.now = target

    @property
    def pending(self) -> list[FakeHandle]:
        return [handle for _, _, handle in self._queue if not handle.cancelled]


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


class NoShuffle(random.Random):
    """Keeps every order as given so rotation sequences are predictable."""

    def shuffle(self, x) -> None:
        return None


class FakeCatalog:
    def __init__(
        self,
        screens: list[ScreenOut] | None = None,
        playlists: list[PlaylistOut] | None = None,
        memberships: dict[int, list[int]] | None = None,
        settings: SettingsOut | None = None,
    ) -> None:
        self.screens = screens or []
        self.playlists = playlists or []
        self.memberships = memberships or {}
        self.settings = settings or SettingsOut()
        self.error: Exception | None = None
        self.fetches = 0

    def _check(self) -> None:
        self.fetches += 1
        if self.error is not None:
            raise self.error

    def fetch_screens(self) -> list[ScreenOut]:
        self._check()
        return list(self.screens)

    def fetch_playlists(self) -> list[PlaylistOut]:
        self._check()
        return list(self.playlists)

    def fetch_settings(self) -> SettingsOut:
        self._check()
        return self.settings

    def fetch_memberships(self) -> dict[int, list[int]]:
        self._check()
        return {key: list(value) for key, value in self.memberships.items()}


def make_screen(screen_id: int, screen_type: ScreenType = ScreenType.EVENT, **fields) -> ScreenOut:
    fields.setdefault("title", f"Screen {screen_id}")
    return ScreenOut(id=screen_id, type=screen_type, **fields)


def make_playlist(playlist_id: int, **fields) -> PlaylistOut:
    fields.setdefault("name", f"Playlist {playlist_id}")
    return PlaylistOut(id=playlist_id, **fields)
