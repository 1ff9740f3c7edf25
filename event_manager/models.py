from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
    model_validator,
)

from event_manager.utils.time import ensure_utc, get_zone, now_utc

NonEmptyStr = Annotated[str, Field(min_length=1)]


class StrictModel(BaseModel):
    """Base class enforcing consistent validation rules."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


def _check_zone(value: Optional[str]) -> Optional[str]:
    if value is not None:
        get_zone(value)  # InvalidZoneError is a ValueError -> ValidationError
    return value


def _check_instant(value: Optional[datetime]) -> Optional[datetime]:
    return ensure_utc(value) if value is not None else None


def _as_instant(value: Any) -> Any:
    if value is None:
        return None
    return ensure_utc(_INSTANT.validate_python(value))


_INSTANT = TypeAdapter(datetime)


# ---------------------------------------------------------------------- audit
class TrackedField(str, Enum):
    TITLE = "title"
    TIMEZONE = "timezone"
    START = "start"
    END = "end"
    PROFILES = "profiles"


class FieldChange(StrictModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    from_: Any = Field(alias="from")
    to: Any


class ChangeLogEntry(StrictModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    timestamp: datetime
    changes: dict[TrackedField, FieldChange]

    @field_validator("timestamp")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _check_instant(value)

    @field_validator("changes")
    @classmethod
    def _instants_as_datetimes(
        cls, value: dict[TrackedField, FieldChange]
    ) -> dict[TrackedField, FieldChange]:
        # start/end values come back from JSON storage as strings
        for field in (TrackedField.START, TrackedField.END):
            change = value.get(field)
            if change is not None:
                value[field] = FieldChange(
                    from_=_as_instant(change.from_), to=_as_instant(change.to)
                )
        return value


# ------------------------------------------------------------------- entities
class Profile(StrictModel):
    id: str
    name: str
    timezone: str = "UTC"
    created_at: datetime = Field(default_factory=now_utc)
    updated_at: datetime = Field(default_factory=now_utc)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _check_instant(value)


class Event(StrictModel):
    id: str
    title: str = ""
    timezone: str
    start: datetime
    end: datetime
    profiles: list[str]
    logs: list[ChangeLogEntry] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=now_utc)
    updated_at: datetime = Field(default_factory=now_utc)

    @field_validator("start", "end", "created_at", "updated_at")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _check_instant(value)


# --------------------------------------------------------------------- inputs
class ProfileCreate(StrictModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, str_strip_whitespace=True)

    name: NonEmptyStr
    timezone: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def _known_zone(cls, value: Optional[str]) -> Optional[str]:
        return _check_zone(value)


class ProfileUpdate(StrictModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, str_strip_whitespace=True)

    name: Optional[NonEmptyStr] = None
    timezone: Optional[str] = None

    @field_validator("timezone")
    @classmethod
    def _known_zone(cls, value: Optional[str]) -> Optional[str]:
        return _check_zone(value)

    @model_validator(mode="after")
    def _at_least_one_field(self) -> "ProfileUpdate":
        if self.name is None and self.timezone is None:
            raise ValueError("at least one of name, timezone is required")
        return self


class EventCreate(StrictModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True, str_strip_whitespace=True)

    title: str = ""
    timezone: NonEmptyStr
    start: datetime
    end: datetime
    profiles: Annotated[list[NonEmptyStr], Field(min_length=1)]

    @field_validator("timezone")
    @classmethod
    def _known_zone(cls, value: Optional[str]) -> Optional[str]:
        return _check_zone(value)

    @field_validator("start", "end")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _check_instant(value)

    @model_validator(mode="after")
    def _end_not_before_start(self) -> "EventCreate":
        if self.end < self.start:
            raise ValueError("end must not be before start")
        return self


class EventUpdate(StrictModel):
    """Partial event fields; ``None`` means the field is left alone."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True, str_strip_whitespace=True)

    title: Optional[str] = None
    timezone: Optional[NonEmptyStr] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    profiles: Optional[Annotated[list[NonEmptyStr], Field(min_length=1)]] = None

    @field_validator("timezone")
    @classmethod
    def _known_zone(cls, value: Optional[str]) -> Optional[str]:
        return _check_zone(value)

    @field_validator("start", "end")
    @classmethod
    def _as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _check_instant(value)

    @model_validator(mode="after")
    def _end_not_before_start(self) -> "EventUpdate":
        if self.start is not None and self.end is not None and self.end < self.start:
            raise ValueError("end must not be before start")
        return self


# ---------------------------------------------------------------------- views
class WallClockView(StrictModel):
    date: str
    time: str


class ChangeLogEntryView(StrictModel):
    timestamp: datetime
    changes: dict[TrackedField, FieldChange]


class EventView(StrictModel):
    """An event re-expressed in a viewer's display timezone."""

    id: str
    title: str
    timezone: str
    display_timezone: str
    start: datetime
    end: datetime
    start_local: WallClockView
    end_local: WallClockView
    profiles: list[str]
    participants: Optional[list[Profile]] = None
    logs: list[ChangeLogEntryView] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
