import logging
from collections import defaultdict
from typing import Callable, Protocol

from pydantic import ValidationError
from sqlalchemy.orm import Session

from loungetv.models.playlist import Playlist, PlaylistScreen
from loungetv.models.screen import Screen
from loungetv.models.settings import AppSettings
from loungetv.schemas.playlist import PlaylistOut
from loungetv.schemas.screen import ScreenOut
from loungetv.schemas.settings import SettingsOut

logger = logging.getLogger(__name__)


class CatalogProvider(Protocol):
    def fetch_screens(self) -> list[ScreenOut]: ...

    def fetch_playlists(self) -> list[PlaylistOut]: ...

    def fetch_settings(self) -> SettingsOut: ...

    def fetch_memberships(self) -> dict[int, list[int]]: ...


class SqlCatalogProvider:
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def fetch_screens(self) -> list[ScreenOut]:
        db = self._session_factory()
        try:
            rows = db.query(Screen).order_by(Screen.id.asc()).all()
            return [ScreenOut.model_validate(row) for row in rows]
        finally:
            db.close()

    def fetch_playlists(self) -> list[PlaylistOut]:
        db = self._session_factory()
        try:
            rows = db.query(Playlist).order_by(Playlist.id.asc()).all()
            playlists: list[PlaylistOut] = []
            for row in rows:
                try:
                    playlists.append(PlaylistOut.model_validate(row))
                except ValidationError as exc:
                    logger.warning(f"Skipping playlist {row.id}: {exc.error_count()} invalid field(s)")
            return playlists
        finally:
            db.close()

    def fetch_settings(self) -> SettingsOut:
        db = self._session_factory()
        try:
            row = db.query(AppSettings).order_by(AppSettings.id.asc()).first()
            if row is None:
                logger.debug("No app settings row, using defaults")
                return SettingsOut()
            return SettingsOut.model_validate(row)
        finally:
            db.close()

    def fetch_memberships(self) -> dict[int, list[int]]:
        db = self._session_factory()
        try:
            rows = (
                db.query(PlaylistScreen.playlist_id, PlaylistScreen.screen_id)
                .order_by(PlaylistScreen.playlist_id.asc(), PlaylistScreen.sort_order.asc(), PlaylistScreen.id.asc())
                .all()
            )
            memberships: dict[int, list[int]] = defaultdict(list)
            for playlist_id, screen_id in rows:
                memberships[playlist_id].append(screen_id)
            return dict(memberships)
        finally:
            db.close()
