import logging
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from fakes import FakeCatalog, FixedClock, make_playlist, make_screen
from loungetv.schemas.screen import ScreenType
from loungetv.schemas.settings import FallbackMode, SettingsOut
from loungetv.services.display import CONTROLS_VISIBLE_SECONDS, DisplaySession, UnknownCommandError
from loungetv.services.resolver import REASON_DEFAULT, REASON_SCHEDULED
from loungetv.services.rotation import RotationState

VENUE = ZoneInfo("America/Los_Angeles")
TUESDAY_10AM = datetime(2025, 1, 7, 10, 0, tzinfo=VENUE)
EVENING_SLOT = [{"timeStart": "17:00", "timeEnd": "19:00"}]


class RecordingHub:
    def __init__(self) -> None:
        self.events = []

    def publish_soon(self, event_type, payload=None):
        self.events.append((event_type, payload or {}))

    def types(self):
        return [event_type for event_type, _ in self.events]


@pytest.fixture
def clock():
    return FixedClock(TUESDAY_10AM)


@pytest.fixture
def catalog():
    return FakeCatalog(
        screens=[make_screen(i) for i in range(1, 6)],
        playlists=[
            make_playlist(1, name="Everyday", is_default=True),
            make_playlist(2, name="Happy Hour", scheduling_enabled=True, time_slots=EVENING_SLOT),
        ],
        memberships={1: [1, 2, 3], 2: [4, 5]},
    )


@pytest.fixture
def session(catalog, clock, scheduler, rng):
    return DisplaySession(catalog, clock, scheduler, rng=rng)


def test_first_refresh_configures_rotation(session):
    resolution = session.refresh()

    assert resolution.reason == REASON_DEFAULT
    assert session.controller.state == RotationState.PLAYING
    assert [s.id for s in session.controller.screens] == [1, 2, 3]
    assert session.controller.current_screen.id == 1


def test_refresh_switches_playlist_when_window_opens(session, clock):
    session.refresh()
    clock.current = TUESDAY_10AM.replace(hour=17, minute=30)
    resolution = session.refresh()

    assert resolution.reason == REASON_SCHEDULED
    assert resolution.playlist_name == "Happy Hour"
    assert session.controller.current_screen.id == 4


def test_refresh_keeps_current_screen_and_timer(session, scheduler, catalog):
    session.refresh()
    scheduler.advance(4)
    catalog.memberships[1] = [1, 3]
    session.refresh()

    assert session.controller.current_screen.id == 1
    assert session.controller.remaining_seconds == pytest.approx(6)


def test_refresh_failure_keeps_rotating(session, catalog, scheduler, caplog):
    session.refresh()
    catalog.error = RuntimeError("database is locked")

    with caplog.at_level(logging.ERROR, logger="loungetv.services.display"):
        assert session.refresh() is None
    assert "Catalog refresh failed" in caplog.text
    assert session.state().last_refresh_error == "RuntimeError: database is locked"

    scheduler.advance(10)
    assert session.controller.current_screen.id == 2
    assert session.controller.state == RotationState.PLAYING

    catalog.error = None
    session.refresh()
    assert session.state().last_refresh_error is None


def test_loop_default_falls_back_to_default_playlist(catalog, clock, scheduler, rng):
    # Default members are all outside their own windows at 10am.
    catalog.screens = [
        make_screen(1, scheduling_enabled=True, time_start="18:00", time_end="20:00"),
        make_screen(2, scheduling_enabled=True, days_of_week="6"),
        make_screen(3, is_active=False),
    ]
    session = DisplaySession(catalog, clock, scheduler, rng=rng)
    session.refresh()

    assert session.is_fallback
    assert [s.id for s in session.controller.screens] == [1, 2]
    assert session.state().is_fallback


def test_loop_default_with_empty_default_goes_idle(catalog, clock, scheduler, rng):
    catalog.screens = [make_screen(1, is_active=False)]
    session = DisplaySession(catalog, clock, scheduler, rng=rng)
    session.refresh()

    assert session.controller.state == RotationState.IDLE
    assert session.state().current_screen is None


def test_ambient_holds_last_screen(session, catalog, scheduler):
    session.refresh()
    scheduler.advance(10)
    assert session.controller.current_screen.id == 2

    catalog.settings = SettingsOut(fallback_mode=FallbackMode.AMBIENT)
    catalog.memberships[1] = []
    session.refresh()

    state = session.state()
    assert session.controller.state == RotationState.IDLE
    assert state.is_holding
    assert state.current_screen.id == 2
    assert scheduler.pending == []

    catalog.memberships[1] = [1, 3]
    session.refresh()
    assert session.controller.state == RotationState.PLAYING
    assert session.held_screen is None
    assert session.controller.current_screen.id == 1


def test_commands_drive_the_controller(session):
    session.refresh()
    session.handle_command("next")
    assert session.controller.current_screen.id == 2
    session.handle_command("previous")
    assert session.controller.current_screen.id == 1
    session.handle_command("toggle-play-pause")
    assert session.controller.state == RotationState.PAUSED
    session.handle_command("TOGGLE-PLAY-PAUSE")
    assert session.controller.state == RotationState.PLAYING


def test_unknown_command_raises(session):
    session.refresh()
    with pytest.raises(UnknownCommandError):
        session.handle_command("rewind")
    assert not session.controls_visible


def test_controls_hide_after_timeout(session, scheduler):
    session.refresh()
    session.handle_command("show-controls")
    assert session.controls_visible

    scheduler.advance(CONTROLS_VISIBLE_SECONDS - 1)
    session.handle_command("show-controls")
    scheduler.advance(CONTROLS_VISIBLE_SECONDS - 1)
    assert session.controls_visible

    scheduler.advance(1)
    assert not session.controls_visible


def test_state_projection(session, scheduler):
    session.refresh()
    scheduler.advance(5)
    state = session.state()

    assert state.location_name == "Catfé"
    assert state.state == "playing"
    assert state.is_playing
    assert state.current_screen.id == 1
    assert state.screen_count == 3
    assert state.progress == pytest.approx(0.5)
    assert state.remaining_seconds == pytest.approx(5)
    assert state.serving.playlist_id == 1
    assert state.serving.reason == REASON_DEFAULT
    assert state.serving.screen_ids == [1, 2, 3]
    assert state.last_refresh_at == TUESDAY_10AM


def test_preview_does_not_touch_playback(session):
    session.refresh()
    preview = session.preview(datetime(2025, 1, 7, 18, 0))

    assert preview.playlist_id == 2
    assert session.serving.playlist_id == 1
    assert session.controller.current_screen.id == 1


def test_preview_converts_to_venue_time(session):
    # 02:00 UTC on Wednesday is 18:00 Tuesday at the venue.
    preview = session.preview(datetime(2025, 1, 8, 2, 0, tzinfo=ZoneInfo("UTC")))
    assert preview.playlist_id == 2


def test_events_published_to_hub(catalog, clock, scheduler, rng):
    hub = RecordingHub()
    session = DisplaySession(catalog, clock, scheduler, rng=rng, hub=hub)
    session.refresh()
    session.handle_command("next")

    types = hub.types()
    assert types[:2] == ["screen_changed", "playback_changed"]
    assert "catalog_refreshed" in types
    assert ("controls_changed", {"visible": True}) in hub.events
    assert types.count("screen_changed") == 2


def test_interstitial_cadence_through_session(catalog, clock, scheduler, rng):
    catalog.screens.append(make_screen(9, ScreenType.SNAP_AND_PURR))
    catalog.memberships[1] = [1, 2, 3, 9]
    catalog.settings = SettingsOut(snap_and_purr_frequency=3, default_duration_seconds=5)
    session = DisplaySession(catalog, clock, scheduler, rng=rng)
    session.refresh()

    shown = [session.controller.current_screen.id]
    for _ in range(4):
        scheduler.advance(5)
        shown.append(session.controller.current_screen.id)
    assert shown == [1, 2, 3, 9, 1]
