from datetime import datetime

from pydantic import BaseModel

from loungetv.schemas.screen import ScreenOut


class ServingOut(BaseModel):
    playlist_id: int | None = None
    playlist_name: str | None = None
    reason: str
    screen_ids: list[int]
    resolved_at: datetime | None = None


class DisplayState(BaseModel):
    location_name: str
    state: str
    current_screen: ScreenOut | None = None
    current_index: int = 0
    screen_count: int = 0
    progress: float = 0.0
    duration_seconds: float = 0.0
    remaining_seconds: float | None = None
    is_playing: bool = False
    is_holding: bool = False
    is_fallback: bool = False
    controls_visible: bool = False
    serving: ServingOut | None = None
    last_refresh_at: datetime | None = None
    last_refresh_error: str | None = None
