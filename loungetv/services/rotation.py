import logging
import random
from enum import Enum
from typing import Callable, Iterable, Sequence

from loungetv.schemas.screen import ScreenOut, ScreenType
from loungetv.schemas.settings import SettingsOut
from loungetv.services.timers import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

PROGRESS_TICK_SECONDS = 0.1

Listener = Callable[["RotationController"], None]


class RotationState(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"


def shuffled(screens: Iterable[ScreenOut], rng: random.Random) -> tuple[ScreenOut, ...]:
    order = list(screens)
    rng.shuffle(order)
    return tuple(order)


def first_playable_index(screens: Sequence[ScreenOut], is_interstitial: Callable[[ScreenOut], bool]) -> int:
    for index, screen in enumerate(screens):
        if not is_interstitial(screen):
            return index
    return 0


def reshuffled_avoiding(
    screens: Sequence[ScreenOut],
    last_id: int,
    rng: random.Random,
    is_interstitial: Callable[[ScreenOut], bool],
) -> tuple[ScreenOut, ...]:
    """Shuffle ``screens`` so the first playable screen is not ``last_id``.

    When the shuffle puts the just-shown screen first it is swapped with a
    random other position. A single screen has nowhere to go and stays.
    """
    order = list(screens)
    rng.shuffle(order)
    if len(order) < 2:
        return tuple(order)
    first = first_playable_index(order, is_interstitial)
    if order[first].id == last_id:
        others = [i for i, screen in enumerate(order) if i != first and not is_interstitial(screen)]
        if not others:
            others = [i for i in range(len(order)) if i != first]
        swap = others[rng.randrange(len(others))]
        order[first], order[swap] = order[swap], order[first]
    return tuple(order)


class RotationController:
    def __init__(
        self,
        scheduler: Scheduler,
        settings: SettingsOut | None = None,
        rng: random.Random | None = None,
        interstitial_type: ScreenType = ScreenType.SNAP_AND_PURR,
        progress_tick: float = PROGRESS_TICK_SECONDS,
    ) -> None:
        self._scheduler = scheduler
        self._settings = settings or SettingsOut()
        self._rng = rng or random.Random()
        self._interstitial_type = interstitial_type
        self._tick = progress_tick

        self._screens: tuple[ScreenOut, ...] = ()
        self._index = 0
        self._advance_counter = 0
        self._auto_advance = True
        self._progress = 0.0
        self._duration = 0.0
        self._started_at: float | None = None
        self._advance_handle: TimerHandle | None = None
        self._progress_handle: TimerHandle | None = None
        self._listeners: list[Listener] = []

    @property
    def screens(self) -> tuple[ScreenOut, ...]:
        return self._screens

    @property
    def settings(self) -> SettingsOut:
        return self._settings

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current_screen(self) -> ScreenOut | None:
        if not self._screens or self._index >= len(self._screens):
            return None
        return self._screens[self._index]

    @property
    def progress(self) -> float:
        return self._progress

    @property
    def advance_counter(self) -> int:
        return self._advance_counter

    @property
    def is_auto_advancing(self) -> bool:
        return self._auto_advance

    @property
    def state(self) -> RotationState:
        if not self._screens:
            return RotationState.IDLE
        return RotationState.PLAYING if self._auto_advance else RotationState.PAUSED

    @property
    def current_duration(self) -> float:
        screen = self.current_screen
        if screen is None:
            return float(self._settings.default_duration_seconds)
        return self.duration_for(screen)

    @property
    def remaining_seconds(self) -> float | None:
        """Seconds until the advance timer fires, or None when none is running."""
        if self._started_at is None:
            return None
        elapsed = self._scheduler.monotonic() - self._started_at
        return max(0.0, self._duration - elapsed)

    def duration_for(self, screen: ScreenOut) -> float:
        seconds = screen.duration_seconds if screen.duration_seconds > 0 else self._settings.default_duration_seconds
        return float(seconds)

    def is_interstitial(self, screen: ScreenOut) -> bool:
        return screen.type == self._interstitial_type

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener`` whenever the screen on display or playback changes."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def configure(self, screens: Iterable[ScreenOut], settings: SettingsOut | None = None) -> None:
        """Replace the working set with a fresh shuffle and start from the top."""
        self._cancel_timers()
        if settings is not None:
            self._settings = settings
        self._screens = shuffled(screens, self._rng)
        self._index = 0
        self._advance_counter = 0
        logger.info(
            f"Rotation configured with {len(self._screens)} screens, "
            f"default duration {self._settings.default_duration_seconds}s"
        )
        self._show_current()

    def update_screens(self, new_screens: Iterable[ScreenOut]) -> None:
        """Swap in a refreshed working set without disturbing the screen on display.

        If the current screen survives the refresh it keeps its running timers
        and progress. Otherwise the cursor snaps to the start of the new set.
        """
        current = self.current_screen
        order = shuffled(new_screens, self._rng)

        if not order:
            self._cancel_timers()
            self._screens = ()
            self._index = 0
            self._progress = 0.0
            logger.info("Rotation idle: no eligible screens")
            self._notify()
            return

        if current is not None:
            for index, screen in enumerate(order):
                if screen.id == current.id:
                    self._screens = order
                    self._index = index
                    self._notify()
                    return
            logger.debug(f"Screen {current.id} left the working set, restarting from the top")

        self._cancel_timers()
        self._screens = order
        self._index = 0
        self._show_current()

    def update_settings(self, settings: SettingsOut) -> None:
        """New settings apply from the next screen onward."""
        self._settings = settings

    def start(self) -> None:
        if self._auto_advance and self._advance_handle is not None:
            return
        self._auto_advance = True
        if not self._screens:
            return
        self._cancel_timers()
        self._show_current()

    def stop(self) -> None:
        """Pause auto-advance. The progress bar stays where it is."""
        self._auto_advance = False
        self._cancel_timers()
        self._notify()

    def toggle(self) -> None:
        if self._auto_advance:
            self.stop()
        else:
            self.start()

    def next(self) -> None:
        if not self._screens:
            return
        self._cancel_timers()
        self._advance()
        self._show_current()

    def previous(self) -> None:
        if not self._screens:
            return
        self._cancel_timers()
        self._index = (self._index - 1) % len(self._screens)
        self._show_current()

    def go_to(self, index: int) -> None:
        if index < 0 or index >= len(self._screens):
            logger.debug(f"Ignoring go_to({index}) outside 0..{len(self._screens) - 1}")
            return
        self._cancel_timers()
        self._index = index
        self._show_current()

    def _advance(self) -> None:
        self._advance_counter += 1
        frequency = self._settings.snap_and_purr_frequency
        if frequency > 0 and self._advance_counter >= frequency:
            target = self._interstitial_index()
            if target is not None:
                self._index = target
                self._advance_counter = 0
                return
        self._advance_index()

    def _interstitial_index(self) -> int | None:
        count = len(self._screens)
        for step in range(1, count + 1):
            index = (self._index + step) % count
            if index != self._index and self.is_interstitial(self._screens[index]):
                return index
        return None

    def _advance_index(self) -> None:
        screens = self._screens
        count = len(screens)
        just_shown = screens[self._index]
        has_playable = any(not self.is_interstitial(screen) for screen in screens)

        steps = 1
        next_index = (self._index + 1) % count
        # Interstitials are only reached through _interstitial_index.
        while has_playable and self.is_interstitial(screens[next_index]) and steps < count:
            next_index = (next_index + 1) % count
            steps += 1

        if self._index + steps >= count:
            self._screens = reshuffled_avoiding(screens, just_shown.id, self._rng, self.is_interstitial)
            next_index = first_playable_index(self._screens, self.is_interstitial) if has_playable else 0
            logger.debug("Rotation wrapped, working set reshuffled")
        self._index = next_index

    def _show_current(self) -> None:
        self._progress = 0.0
        screen = self.current_screen
        if screen is not None:
            logger.info(
                f"Showing screen {screen.id} '{screen.title}' ({screen.type.value}) "
                f"for {self.duration_for(screen):g}s"
            )
            if self._auto_advance:
                self._start_timers()
        self._notify()

    def _start_timers(self) -> None:
        screen = self.current_screen
        if screen is None:
            return
        self._duration = self.duration_for(screen)
        self._started_at = self._scheduler.monotonic()
        self._advance_handle = self._scheduler.call_later(self._duration, self._on_advance_timer)
        self._progress_handle = self._scheduler.call_later(self._tick, self._on_progress_tick)

    def _cancel_timers(self) -> None:
        if self._advance_handle is not None:
            self._advance_handle.cancel()
            self._advance_handle = None
        if self._progress_handle is not None:
            self._progress_handle.cancel()
            self._progress_handle = None
        self._started_at = None

    def _on_advance_timer(self) -> None:
        self._advance_handle = None
        self.next()

    def _on_progress_tick(self) -> None:
        self._progress_handle = None
        if self._duration <= 0:
            return
        self._progress = min(1.0, self._progress + self._tick / self._duration)
        if self._progress < 1.0:
            self._progress_handle = self._scheduler.call_later(self._tick, self._on_progress_tick)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Rotation listener failed")
