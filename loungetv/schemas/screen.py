from datetime import datetime
from enum import Enum

from pydantic import BaseModel, field_validator


class ScreenType(str, Enum):
    SNAP_AND_PURR = "SNAP_AND_PURR"
    EVENT = "EVENT"
    TODAY_AT_CATFE = "TODAY_AT_CATFE"
    MEMBERSHIP = "MEMBERSHIP"
    REMINDER = "REMINDER"
    ADOPTION = "ADOPTION"
    ADOPTION_SHOWCASE = "ADOPTION_SHOWCASE"
    ADOPTION_COUNTER = "ADOPTION_COUNTER"
    THANK_YOU = "THANK_YOU"
    LIVESTREAM = "LIVESTREAM"
    HAPPY_TAILS = "HAPPY_TAILS"
    SNAP_PURR_GALLERY = "SNAP_PURR_GALLERY"
    HAPPY_TAILS_QR = "HAPPY_TAILS_QR"
    SNAP_PURR_QR = "SNAP_PURR_QR"
    POLL = "POLL"
    POLL_QR = "POLL_QR"
    CHECK_IN = "CHECK_IN"
    GUEST_STATUS_BOARD = "GUEST_STATUS_BOARD"
    LIVE_AVAILABILITY = "LIVE_AVAILABILITY"
    CUSTOM = "CUSTOM"


def split_days(value):
    """Accept the stored "1,2,3" form as well as a plain list."""
    if value is None:
        return None
    if isinstance(value, str):
        return [item.strip() for item in value.split(",") if item.strip()]
    return value


class ScreenOut(BaseModel):
    id: int
    type: ScreenType = ScreenType.EVENT
    title: str
    subtitle: str | None = None
    body: str | None = None
    image_path: str | None = None
    qr_url: str | None = None
    hide_overlay: bool = False
    duration_seconds: int = 0
    priority: int = 1
    sort_order: int = 0
    scheduling_enabled: bool = False
    start_at: datetime | None = None
    end_at: datetime | None = None
    days_of_week: tuple[int | str, ...] | None = None
    time_start: str | None = None
    time_end: str | None = None
    is_active: bool = True
    is_protected: bool = False

    class Config:
        from_attributes = True
        frozen = True

    @field_validator("type", mode="before")
    @classmethod
    def _known_type(cls, value):
        if isinstance(value, ScreenType):
            return value
        try:
            return ScreenType(str(value or "").strip().upper())
        except ValueError:
            return ScreenType.CUSTOM

    @field_validator("duration_seconds", mode="before")
    @classmethod
    def _duration_or_zero(cls, value):
        return value or 0

    @field_validator("days_of_week", mode="before")
    @classmethod
    def _days(cls, value):
        return split_days(value)
