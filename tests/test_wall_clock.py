from __future__ import annotations

from datetime import datetime, timezone

import pytest

from event_manager.errors import InvalidDateTimeError
from event_manager.forms.wall_clock import (
    EndTimeChanged,
    StartDateChanged,
    WallClockForm,
    WallClockState,
    compose_to_absolute,
    from_event,
    is_valid,
    reduce,
)
from event_manager.models import Event, EventCreate

UTC = timezone.utc


def _same_day(**overrides) -> WallClockState:
    data = dict(
        timezone="UTC",
        start_date="2025-03-01",
        start_time="09:00",
        end_date="2025-03-01",
        end_time="10:00",
    )
    data.update(overrides)
    return WallClockState(**data)


def test_end_time_before_start_is_clamped() -> None:
    state = reduce(_same_day(), EndTimeChanged("08:00"))
    assert state.end_time == "09:00"


def test_end_time_after_start_is_kept() -> None:
    state = reduce(_same_day(), EndTimeChanged("11:15"))
    assert state.end_time == "11:15"


def test_end_time_not_clamped_across_days() -> None:
    state = reduce(_same_day(end_date="2025-03-02"), EndTimeChanged("08:00"))
    assert state.end_time == "08:00"


def test_start_date_past_end_clears_end() -> None:
    form = WallClockForm(timezone="UTC")
    form.set_start_date("2025-03-01")
    form.set_end_date("2025-03-03")

    state = form.set_start_date("2025-03-05")

    assert state.start_date == "2025-03-05"
    assert state.end_date == ""


def test_start_date_equal_to_end_keeps_end() -> None:
    state = reduce(_same_day(end_date="2025-03-03"), StartDateChanged("2025-03-03"))
    assert state.end_date == "2025-03-03"


def test_later_start_time_drags_end_time() -> None:
    form = WallClockForm(timezone="UTC")
    form.state = _same_day()

    state = form.set_start_time("10:30")

    assert state.start_time == "10:30"
    assert state.end_time == "10:30"


def test_start_time_on_multi_day_range_leaves_end() -> None:
    form = WallClockForm(timezone="UTC")
    form.state = _same_day(end_date="2025-03-02")
    state = form.set_start_time("11:00")
    assert state.end_time == "10:00"


def test_compose_uses_form_timezone() -> None:
    state = _same_day(timezone="America/New_York", end_time="10:30")
    start, end = compose_to_absolute(state)
    assert start == datetime(2025, 3, 1, 14, 0, tzinfo=UTC)
    assert end == datetime(2025, 3, 1, 15, 30, tzinfo=UTC)


def test_validity() -> None:
    assert is_valid(_same_day()) is True
    assert is_valid(_same_day(end_date="")) is False
    assert is_valid(_same_day(start_date="")) is False
    assert is_valid(_same_day(end_date="2025-02-28")) is False
    assert is_valid(_same_day(timezone="Not/AZone")) is False
    assert is_valid(_same_day(end_time="10:00", start_time="10:00")) is True


def test_compose_with_missing_date_fails() -> None:
    with pytest.raises(InvalidDateTimeError):
        compose_to_absolute(_same_day(end_date=""))


def test_loading_event_uses_authoring_timezone() -> None:
    event = Event(
        id="evt-1",
        timezone="Asia/Tokyo",
        start=datetime(2025, 1, 10, 14, 0, tzinfo=UTC),
        end=datetime(2025, 1, 10, 15, 30, tzinfo=UTC),
        profiles=["p1"],
    )

    form = WallClockForm(event)

    assert form.state == from_event(event)
    assert form.state.timezone == "Asia/Tokyo"
    assert (form.state.start_date, form.state.start_time) == ("2025-01-10", "23:00")
    assert (form.state.end_date, form.state.end_time) == ("2025-01-11", "00:30")
    assert form.compose_to_absolute() == (event.start, event.end)


def test_reset_keeps_timezone() -> None:
    form = WallClockForm(timezone="Europe/Riga")
    form.state = _same_day(timezone="Europe/Riga", start_time="13:00", end_time="14:00")

    state = form.reset()

    assert state == WallClockState(timezone="Europe/Riga")
    assert state.start_time == state.end_time == "09:00"


def test_payload_is_accepted_by_event_input() -> None:
    form = WallClockForm(timezone="UTC")
    form.set_timezone("America/New_York")
    form.set_start_date("2025-03-01")
    form.set_end_date("2025-03-01")
    form.set_start_time("09:00")
    form.set_end_time("09:45")
    assert form.is_valid()

    payload = form.to_payload()
    created = EventCreate(**payload, profiles=["p1"])

    assert created.timezone == "America/New_York"
    assert created.start == datetime(2025, 3, 1, 14, 0, tzinfo=UTC)
    assert created.end == datetime(2025, 3, 1, 14, 45, tzinfo=UTC)


def test_unknown_change_rejected() -> None:
    with pytest.raises(TypeError):
        reduce(_same_day(), "09:00")
