import json
from datetime import datetime
from typing import Iterator
from zoneinfo import ZoneInfo

import pytest
from fastapi.testclient import TestClient

from fakes import FakeScheduler, FixedClock, NoShuffle
from loungetv import main
from loungetv.api.playlist import get_db
from loungetv.models.playlist import Playlist, PlaylistScreen
from loungetv.models.screen import Screen
from loungetv.services.catalog import SqlCatalogProvider
from loungetv.services.display import DisplaySession

VENUE = ZoneInfo("America/Los_Angeles")
TUESDAY_10AM = datetime(2025, 1, 7, 10, 0, tzinfo=VENUE)


def seed_catalog(session_factory) -> None:
    db = session_factory()
    try:
        db.add_all(
            [
                Screen(id=1, type="ADOPTION", title="Meet Biscuit"),
                Screen(id=2, type="MEMBERSHIP", title="Join us"),
                Screen(id=3, type="EVENT", title="Kitten Yoga", scheduling_enabled=True, days_of_week="6"),
                Screen(id=4, type="THANK_YOU", title="Thanks"),
                Playlist(id=1, name="Everyday", is_default=True),
                Playlist(
                    id=2,
                    name="Evenings",
                    scheduling_enabled=True,
                    time_slots=json.dumps([{"timeStart": "17:00", "timeEnd": "19:00"}]),
                ),
                Playlist(id=3, name="Closing", sort_order=5),
            ]
        )
        db.add_all(
            [
                PlaylistScreen(playlist_id=1, screen_id=1, sort_order=0),
                PlaylistScreen(playlist_id=1, screen_id=2, sort_order=1),
                PlaylistScreen(playlist_id=1, screen_id=3, sort_order=2),
                PlaylistScreen(playlist_id=2, screen_id=2, sort_order=0),
                PlaylistScreen(playlist_id=3, screen_id=4, sort_order=0),
            ]
        )
        db.commit()
    finally:
        db.close()


@pytest.fixture
def display(session_factory) -> DisplaySession:
    seed_catalog(session_factory)
    return DisplaySession(
        SqlCatalogProvider(session_factory),
        FixedClock(TUESDAY_10AM),
        FakeScheduler(),
        rng=NoShuffle(),
    )


@pytest.fixture
def client(session_factory, display) -> Iterator[TestClient]:
    def _override_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    previous = main.app.state.display
    main.app.state.display = display
    main.app.dependency_overrides[get_db] = _override_db
    try:
        yield TestClient(main.app)
    finally:
        main.app.dependency_overrides.clear()
        main.app.state.display = previous


def test_root_and_health(client):
    assert client.get("/").json()["ok"] is True
    health = client.get("/healthz").json()
    assert health["ok"] is True
    assert health["state"] == "idle"


def test_state_after_refresh(client):
    response = client.post("/display/refresh")
    assert response.status_code == 200
    state = response.json()
    assert state["state"] == "playing"
    assert state["current_screen"]["id"] == 1
    assert state["screen_count"] == 2
    assert state["serving"]["reason"] == "default"
    assert state["serving"]["playlist_name"] == "Everyday"

    assert client.get("/display/state").json()["current_screen"]["id"] == 1


def test_commands(client):
    client.post("/display/refresh")
    state = client.post("/display/commands/next").json()
    assert state["current_screen"]["id"] == 2
    assert state["controls_visible"] is True

    state = client.post("/display/commands/toggle-play-pause").json()
    assert state["state"] == "paused"
    assert state["is_playing"] is False


def test_unknown_command_is_rejected(client):
    response = client.post("/display/commands/self-destruct")
    assert response.status_code == 400
    assert "self-destruct" in response.json()["detail"]


def test_serving_resolves_on_demand(client):
    serving = client.get("/display/serving").json()
    assert serving["playlist_id"] == 1
    assert serving["screen_ids"] == [1, 2]


def test_preview_at_instant(client):
    serving = client.get("/display/preview", params={"at": "2025-01-07T18:00:00"}).json()
    assert serving["playlist_id"] == 2
    assert serving["reason"] == "scheduled"
    assert serving["screen_ids"] == [2]


def test_list_playlists(client):
    playlists = client.get("/playlists").json()
    assert [p["name"] for p in playlists] == ["Everyday", "Evenings", "Closing"]
    assert playlists[0]["screen_count"] == 3


def test_playlist_screens_report_eligibility(client):
    screens = client.get("/playlists/1/screens").json()
    assert [(s["id"], s["eligible_now"]) for s in screens] == [(1, True), (2, True), (3, False)]
    assert screens[0]["type"] == "ADOPTION"


def test_playlist_screens_put_higher_priority_first(client, session_factory):
    db = session_factory()
    try:
        db.add_all(
            [
                Screen(id=5, type="REMINDER", title="Wash hands", priority=1),
                Screen(id=6, type="POLL", title="Best nap spot", priority=7),
                Playlist(id=4, name="Lobby"),
            ]
        )
        db.add_all(
            [
                PlaylistScreen(playlist_id=4, screen_id=4, sort_order=1),
                PlaylistScreen(playlist_id=4, screen_id=5, sort_order=0),
                PlaylistScreen(playlist_id=4, screen_id=6, sort_order=0),
            ]
        )
        db.commit()
    finally:
        db.close()

    screens = client.get("/playlists/4/screens").json()
    assert [(s["id"], s["priority"]) for s in screens] == [(6, 7), (5, 1), (4, 1)]


def test_missing_playlist_is_404(client):
    assert client.get("/playlists/99/screens").status_code == 404
    assert client.post("/playlists/99/activate").status_code == 404


def test_activate_overrides_and_refreshes(client, display):
    client.post("/display/refresh")
    response = client.post("/playlists/3/activate")
    assert response.status_code == 200
    assert response.json()["is_active"] is True

    assert display.serving.reason == "manual"
    assert display.controller.current_screen.id == 4

    client.post("/playlists/1/activate")
    active = [p["id"] for p in client.get("/playlists").json() if p["is_active"]]
    assert active == [1]


def test_clear_override(client, display):
    client.post("/playlists/3/activate")
    response = client.delete("/playlists/active")
    assert response.json() == {"ok": True, "cleared": 1}
    assert display.serving.reason == "default"
