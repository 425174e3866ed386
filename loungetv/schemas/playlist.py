import json
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from loungetv.schemas.screen import split_days


class TimeSlotOut(BaseModel):
    time_start: str | None = Field(default=None, alias="timeStart")
    time_end: str | None = Field(default=None, alias="timeEnd")

    class Config:
        populate_by_name = True
        frozen = True


class PlaylistOut(BaseModel):
    id: int
    name: str
    description: str | None = None
    scheduling_enabled: bool = False
    start_at: datetime | None = None
    end_at: datetime | None = None
    days_of_week: tuple[int | str, ...] | None = None
    time_slots: tuple[TimeSlotOut, ...] | None = None
    time_start: str | None = None
    time_end: str | None = None
    is_active: bool = False
    is_default: bool = False
    sort_order: int = 0
    color: str | None = None

    class Config:
        from_attributes = True
        frozen = True

    @field_validator("days_of_week", mode="before")
    @classmethod
    def _days(cls, value):
        return split_days(value)

    @field_validator("time_slots", mode="before")
    @classmethod
    def _slots(cls, value):
        if value is None:
            return None
        if isinstance(value, str):
            raw = value.strip()
            if not raw:
                return None
            try:
                value = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise ValueError(f"time_slots is not valid JSON: {exc.msg}") from exc
            if value is None:
                return None
            if not isinstance(value, list):
                raise ValueError("time_slots must be a JSON array")
        return value


class PlaylistScreenOut(BaseModel):
    id: int
    type: str
    title: str
    is_active: bool
    priority: int = 1
    eligible_now: bool
