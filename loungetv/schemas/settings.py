from enum import Enum

from pydantic import BaseModel, field_validator


class FallbackMode(str, Enum):
    LOOP_DEFAULT = "LOOP_DEFAULT"
    AMBIENT = "AMBIENT"


class SettingsOut(BaseModel):
    location_name: str = "Catfé"
    default_duration_seconds: int = 10
    snap_and_purr_frequency: int = 5
    refresh_interval_seconds: int = 60
    fallback_mode: FallbackMode = FallbackMode.LOOP_DEFAULT

    class Config:
        from_attributes = True
        frozen = True

    @field_validator("default_duration_seconds", "refresh_interval_seconds", mode="before")
    @classmethod
    def _positive(cls, value, info):
        if value is None or int(value) <= 0:
            return cls.model_fields[info.field_name].default
        return value

    @field_validator("fallback_mode", mode="before")
    @classmethod
    def _mode(cls, value):
        try:
            return FallbackMode(str(value or "").strip().upper())
        except ValueError:
            return FallbackMode.LOOP_DEFAULT
