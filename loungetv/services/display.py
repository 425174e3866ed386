import asyncio
import logging
import random
from datetime import datetime

from loungetv.schemas.display import DisplayState, ServingOut
from loungetv.schemas.screen import ScreenOut
from loungetv.schemas.settings import FallbackMode, SettingsOut
from loungetv.services.catalog import CatalogProvider
from loungetv.services.clock import Clock
from loungetv.services.realtime import RealtimeHub
from loungetv.services.resolver import Resolution, fallback_screens, resolve
from loungetv.services.rotation import RotationController, RotationState
from loungetv.services.timers import Scheduler, TimerHandle

logger = logging.getLogger(__name__)

CONTROLS_VISIBLE_SECONDS = 3.0

COMMAND_NEXT = "next"
COMMAND_PREVIOUS = "previous"
COMMAND_TOGGLE = "toggle-play-pause"
COMMAND_SHOW_CONTROLS = "show-controls"
COMMANDS = (COMMAND_NEXT, COMMAND_PREVIOUS, COMMAND_TOGGLE, COMMAND_SHOW_CONTROLS)


class UnknownCommandError(ValueError):
    def __init__(self, command: str) -> None:
        super().__init__(f"Unknown remote command {command!r}")
        self.command = command


class DisplaySession:
    def __init__(
        self,
        catalog: CatalogProvider,
        clock: Clock,
        scheduler: Scheduler,
        controller: RotationController | None = None,
        hub: RealtimeHub | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self._catalog = catalog
        self._clock = clock
        self._scheduler = scheduler
        self._controller = controller or RotationController(scheduler, rng=rng)
        self._hub = hub
        self._settings = self._controller.settings

        self._serving: Resolution | None = None
        self._resolved_at: datetime | None = None
        self._loaded = False
        self._fallback_active = False
        self._held_screen: ScreenOut | None = None
        self._controls_visible = False
        self._controls_handle: TimerHandle | None = None
        self._last_refresh_at: datetime | None = None
        self._last_refresh_error: str | None = None

        self._published_screen_id: int | None = None
        self._published_state: RotationState | None = None
        self._controller.subscribe(self._on_rotation_changed)

    @property
    def controller(self) -> RotationController:
        return self._controller

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def settings(self) -> SettingsOut:
        return self._settings

    @property
    def serving(self) -> Resolution | None:
        return self._serving

    @property
    def held_screen(self) -> ScreenOut | None:
        return self._held_screen

    @property
    def controls_visible(self) -> bool:
        return self._controls_visible

    @property
    def is_fallback(self) -> bool:
        return self._fallback_active

    def refresh(self) -> Resolution | None:
        """Returns None when the catalog could not be read; the old set keeps rotating."""
        now = self._clock.now()
        try:
            settings = self._catalog.fetch_settings()
            playlists = self._catalog.fetch_playlists()
            screens = self._catalog.fetch_screens()
            memberships = self._catalog.fetch_memberships()
        except Exception as exc:
            self._last_refresh_error = f"{type(exc).__name__}: {exc}"
            logger.exception(
                f"Catalog refresh failed, keeping {len(self._controller.screens)} screen(s) in rotation"
            )
            return None

        resolution = resolve(now, playlists, screens, memberships)
        fallback = fallback_screens(playlists, screens, memberships)
        self._last_refresh_at = now
        self._last_refresh_error = None
        self._apply(now, settings, resolution, fallback)
        self._publish(
            "catalog_refreshed",
            {
                "playlist_id": resolution.playlist_id,
                "reason": resolution.reason,
                "screen_count": len(self._controller.screens),
                "fallback": self._fallback_active,
            },
        )
        return resolution

    def preview(self, at: datetime) -> Resolution:
        """Resolve the catalog at an arbitrary instant without touching playback."""
        venue_zone = self._clock.now().tzinfo
        if at.tzinfo is None:
            at = at.replace(tzinfo=venue_zone)
        elif venue_zone is not None:
            at = at.astimezone(venue_zone)
        return resolve(
            at,
            self._catalog.fetch_playlists(),
            self._catalog.fetch_screens(),
            self._catalog.fetch_memberships(),
        )

    def _apply(
        self,
        now: datetime,
        settings: SettingsOut,
        resolution: Resolution,
        fallback: tuple[ScreenOut, ...],
    ) -> None:
        self._settings = settings
        self._controller.update_settings(settings)
        self._serving = resolution
        self._resolved_at = now

        working = resolution.screens
        use_fallback = False
        if not working and settings.fallback_mode == FallbackMode.LOOP_DEFAULT and fallback:
            working = fallback
            use_fallback = True
        if use_fallback and not self._fallback_active:
            logger.info(f"Nothing eligible, looping {len(fallback)} default screen(s)")
        self._fallback_active = use_fallback

        if not working:
            current = self._controller.current_screen
            if current is not None:
                self._held_screen = current
                logger.info(
                    f"Nothing eligible ({settings.fallback_mode.value}), holding screen {current.id}"
                )
            self._controller.update_screens(())
            return

        self._held_screen = None
        current = self._controller.current_screen
        working_ids = {screen.id for screen in working}
        if (
            not self._loaded
            or self._controller.state == RotationState.IDLE
            or current is None
            or current.id not in working_ids
        ):
            self._controller.configure(working, settings)
        else:
            self._controller.update_screens(working)
        self._loaded = True

    async def run_forever(self) -> None:
        """Refresh every `refresh_interval_seconds`, re-read each round, until cancelled."""
        while True:
            try:
                self.refresh()
            except Exception:
                logger.exception("Display refresh round failed, retrying next round")
            await asyncio.sleep(self._settings.refresh_interval_seconds)

    def handle_command(self, command: str) -> None:
        normalized = (command or "").strip().lower()
        if normalized not in COMMANDS:
            raise UnknownCommandError(command)
        logger.debug(f"Remote command {normalized}")
        self.show_controls()
        if normalized == COMMAND_NEXT:
            self._controller.next()
        elif normalized == COMMAND_PREVIOUS:
            self._controller.previous()
        elif normalized == COMMAND_TOGGLE:
            self._controller.toggle()

    def show_controls(self) -> None:
        if self._controls_handle is not None:
            self._controls_handle.cancel()
        self._controls_handle = self._scheduler.call_later(CONTROLS_VISIBLE_SECONDS, self._hide_controls)
        if not self._controls_visible:
            self._controls_visible = True
            self._publish("controls_changed", {"visible": True})

    def _hide_controls(self) -> None:
        self._controls_handle = None
        self._controls_visible = False
        self._publish("controls_changed", {"visible": False})

    def close(self) -> None:
        if self._controls_handle is not None:
            self._controls_handle.cancel()
            self._controls_handle = None
        self._controller.stop()

    def state(self) -> DisplayState:
        controller = self._controller
        current = controller.current_screen
        holding = current is None and self._held_screen is not None
        return DisplayState(
            location_name=self._settings.location_name,
            state=controller.state.value,
            current_screen=current if current is not None else self._held_screen,
            current_index=controller.current_index,
            screen_count=len(controller.screens),
            progress=controller.progress,
            duration_seconds=controller.current_duration,
            remaining_seconds=controller.remaining_seconds,
            is_playing=controller.state == RotationState.PLAYING,
            is_holding=holding,
            is_fallback=self._fallback_active,
            controls_visible=self._controls_visible,
            serving=self.serving_report(),
            last_refresh_at=self._last_refresh_at,
            last_refresh_error=self._last_refresh_error,
        )

    def serving_report(self) -> ServingOut | None:
        if self._serving is None:
            return None
        return serving_out(self._serving, self._resolved_at)

    def _on_rotation_changed(self, controller: RotationController) -> None:
        screen = controller.current_screen
        screen_id = screen.id if screen is not None else None
        if screen_id != self._published_screen_id:
            self._published_screen_id = screen_id
            self._publish(
                "screen_changed",
                {
                    "screen_id": screen_id,
                    "index": controller.current_index,
                    "duration_seconds": controller.current_duration,
                },
            )
        if controller.state != self._published_state:
            self._published_state = controller.state
            self._publish("playback_changed", {"state": controller.state.value})

    def _publish(self, event_type: str, payload: dict) -> None:
        if self._hub is not None:
            self._hub.publish_soon(event_type, payload)


def serving_out(resolution: Resolution, resolved_at: datetime | None = None) -> ServingOut:
    return ServingOut(
        playlist_id=resolution.playlist_id,
        playlist_name=resolution.playlist_name,
        reason=resolution.reason,
        screen_ids=[screen.id for screen in resolution.screens],
        resolved_at=resolved_at,
    )
