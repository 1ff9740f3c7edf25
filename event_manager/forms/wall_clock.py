"""Start/end wall-clock form state for composing events.

The form keeps separate date and time strings for each endpoint plus one
timezone. Every edit goes through :func:`reduce`, which applies the
cascading rules that keep the range from silently becoming invalid:

* moving the start date past the end date clears the end date;
* on a single-day range, moving the start time past the end time drags the
  end time along;
* on a single-day range, an end time before the start time is clamped up to
  the start time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, time
from typing import Optional, Union

from event_manager.config import settings
from event_manager.errors import InvalidDateTimeError, InvalidZoneError
from event_manager.models import Event
from event_manager.utils.time import (
    DATE_FORMAT,
    TIME_FORMAT,
    TIME_FORMAT_SECONDS,
    to_absolute,
    to_display,
)

logger = logging.getLogger(__name__)

DEFAULT_TIME = "09:00"


@dataclass(frozen=True, slots=True)
class WallClockState:
    timezone: str
    start_date: str = ""
    start_time: str = DEFAULT_TIME
    end_date: str = ""
    end_time: str = DEFAULT_TIME

    @property
    def same_day(self) -> bool:
        return bool(self.start_date and self.end_date and self.start_date == self.end_date)


@dataclass(frozen=True, slots=True)
class StartDateChanged:
    value: str


@dataclass(frozen=True, slots=True)
class StartTimeChanged:
    value: str


@dataclass(frozen=True, slots=True)
class EndDateChanged:
    value: str


@dataclass(frozen=True, slots=True)
class EndTimeChanged:
    value: str


@dataclass(frozen=True, slots=True)
class TimezoneChanged:
    value: str


@dataclass(frozen=True, slots=True)
class FormReset:
    pass


FormChange = Union[
    StartDateChanged,
    StartTimeChanged,
    EndDateChanged,
    EndTimeChanged,
    TimezoneChanged,
    FormReset,
]


def reduce(state: WallClockState, change: FormChange) -> WallClockState:
    if isinstance(change, StartDateChanged):
        start_day = _parse_date(change.value)
        end_day = _parse_date(state.end_date)
        if start_day and end_day and start_day > end_day:
            return replace(state, start_date=change.value, end_date="")
        return replace(state, start_date=change.value)

    if isinstance(change, StartTimeChanged):
        if state.same_day and _time_before(state.end_time, change.value):
            return replace(state, start_time=change.value, end_time=change.value)
        return replace(state, start_time=change.value)

    if isinstance(change, EndTimeChanged):
        if state.same_day and _time_before(change.value, state.start_time):
            return replace(state, end_time=state.start_time)
        return replace(state, end_time=change.value)

    if isinstance(change, EndDateChanged):
        return replace(state, end_date=change.value)

    if isinstance(change, TimezoneChanged):
        return replace(state, timezone=change.value)

    if isinstance(change, FormReset):
        return WallClockState(timezone=state.timezone)

    raise TypeError(f"Unsupported form change: {change!r}")


def from_event(event: Event) -> WallClockState:
    """Decompose a stored event in its own authoring timezone."""

    start = to_display(event.start, event.timezone)
    end = to_display(event.end, event.timezone)
    return WallClockState(
        timezone=event.timezone,
        start_date=start.date,
        start_time=start.time,
        end_date=end.date,
        end_time=end.time,
    )


def compose_to_absolute(state: WallClockState) -> tuple[datetime, datetime]:
    start = to_absolute(state.start_date, state.start_time, state.timezone)
    end = to_absolute(state.end_date, state.end_time, state.timezone)
    return start, end


def is_valid(state: WallClockState) -> bool:
    if not state.start_date or not state.end_date:
        return False
    try:
        start, end = compose_to_absolute(state)
    except (InvalidDateTimeError, InvalidZoneError) as exc:
        logger.debug("Form state does not compose: %s", exc)
        return False
    return end >= start


def to_payload(state: WallClockState) -> dict[str, str]:
    start, end = compose_to_absolute(state)
    return {
        "timezone": state.timezone,
        "start": start.isoformat(),
        "end": end.isoformat(),
    }


class WallClockForm:
    """Holds the current form state and applies edits through the reducer."""

    def __init__(self, initial: Optional[Event] = None, *, timezone: Optional[str] = None) -> None:
        self.state = WallClockState(timezone=timezone or settings.form_default_timezone)
        if initial is not None:
            self.load(initial)

    def dispatch(self, change: FormChange) -> WallClockState:
        self.state = reduce(self.state, change)
        return self.state

    def load(self, event: Event) -> WallClockState:
        self.state = from_event(event)
        return self.state

    def set_start_date(self, value: str) -> WallClockState:
        return self.dispatch(StartDateChanged(value))

    def set_start_time(self, value: str) -> WallClockState:
        return self.dispatch(StartTimeChanged(value))

    def set_end_date(self, value: str) -> WallClockState:
        return self.dispatch(EndDateChanged(value))

    def set_end_time(self, value: str) -> WallClockState:
        return self.dispatch(EndTimeChanged(value))

    def set_timezone(self, value: str) -> WallClockState:
        return self.dispatch(TimezoneChanged(value))

    def reset(self) -> WallClockState:
        return self.dispatch(FormReset())

    def compose_to_absolute(self) -> tuple[datetime, datetime]:
        return compose_to_absolute(self.state)

    def is_valid(self) -> bool:
        return is_valid(self.state)

    def to_payload(self) -> dict[str, str]:
        return to_payload(self.state)


def _parse_date(value: str) -> Optional[date]:
    if not value:
        return None
    try:
        return datetime.strptime(value, DATE_FORMAT).date()
    except ValueError:
        return None


def _parse_time(value: str) -> Optional[time]:
    for time_format in (TIME_FORMAT, TIME_FORMAT_SECONDS):
        try:
            return datetime.strptime(value, time_format).time()
        except ValueError:
            continue
    return None


def _time_before(candidate: str, reference: str) -> bool:
    candidate_time = _parse_time(candidate)
    reference_time = _parse_time(reference)
    if candidate_time is None or reference_time is None:
        return False
    return candidate_time < reference_time
