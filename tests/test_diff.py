from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Iterable

import pytest

from event_manager.errors import InvalidRangeError, ProfileNotFoundError
from event_manager.models import Event, EventUpdate, TrackedField
from event_manager.services.diff import (
    INSTANT_TOLERANCE,
    apply_update,
    id_set_changed,
    instant_changed,
    text_changed,
)

UTC = timezone.utc
P1 = "a" * 24
P2 = "b" * 24
NOW = datetime(2025, 1, 11, 8, 0, tzinfo=UTC)


class StubProfileCheck:
    def __init__(self, known: Iterable[str] = (P1, P2)) -> None:
        self.known = set(known)
        self.calls: list[list[str]] = []

    def __call__(self, ids: Iterable[str]) -> None:
        ids = list(ids)
        self.calls.append(ids)
        missing = [profile_id for profile_id in ids if profile_id not in self.known]
        if missing:
            raise ProfileNotFoundError(missing)


def _sample_event(**overrides) -> Event:
    data = dict(
        id="evt-1",
        timezone="UTC",
        start=datetime(2025, 1, 10, 14, 0, tzinfo=UTC),
        end=datetime(2025, 1, 10, 15, 0, tzinfo=UTC),
        profiles=[P1],
    )
    data.update(overrides)
    return Event(**data)


def test_end_within_tolerance_is_not_a_change() -> None:
    event = _sample_event()
    patch = EventUpdate(end="2025-01-10T15:00:00.400Z")

    result = apply_update(event, patch, profile_check=StubProfileCheck(), now=NOW)

    assert result.changed is False
    assert result.entry is None
    assert result.updated.logs == []
    assert result.updated.end == event.end


def test_duplicate_profiles_are_collapsed_and_logged() -> None:
    event = _sample_event()
    check = StubProfileCheck()

    result = apply_update(
        event, EventUpdate(profiles=[P1, P2, P1]), profile_check=check, now=NOW
    )

    assert result.changed is True
    assert result.updated.profiles == [P1, P2]
    assert check.calls == [[P1, P2]]
    assert len(result.updated.logs) == 1
    entry = result.updated.logs[0]
    assert entry is result.entry
    assert entry.timestamp == NOW
    assert list(entry.changes) == [TrackedField.PROFILES]
    assert entry.changes[TrackedField.PROFILES].from_ == [P1]
    assert entry.changes[TrackedField.PROFILES].to == [P1, P2]


def test_start_past_stored_end_is_rejected() -> None:
    event = _sample_event()

    with pytest.raises(InvalidRangeError):
        apply_update(
            event,
            EventUpdate(start="2025-01-10T16:00:00Z"),
            profile_check=StubProfileCheck(),
            now=NOW,
        )

    assert event.start == datetime(2025, 1, 10, 14, 0, tzinfo=UTC)
    assert event.logs == []


def test_range_check_uses_exact_comparison() -> None:
    # start lands half a second after the stored end: inside the tolerance of
    # end, but the resulting range is still inverted
    event = _sample_event()
    with pytest.raises(InvalidRangeError):
        apply_update(
            event,
            EventUpdate(start="2025-01-10T15:00:00.500Z"),
            profile_check=StubProfileCheck(),
        )


def test_empty_patch_changes_nothing() -> None:
    event = _sample_event()
    result = apply_update(event, EventUpdate(), profile_check=StubProfileCheck())
    assert result.changed is False
    assert result.updated.logs == []
    assert result.updated == event


def test_identical_values_change_nothing() -> None:
    event = _sample_event(profiles=[P1, P2])
    check = StubProfileCheck()
    patch = EventUpdate(
        timezone="UTC",
        start=event.start,
        end=event.end,
        profiles=[P2, P1],
    )

    result = apply_update(event, patch, profile_check=check)

    assert result.changed is False
    assert check.calls == []
    assert result.updated.updated_at == event.updated_at


def test_tolerance_boundary() -> None:
    event = _sample_event()
    at_boundary = event.end + INSTANT_TOLERANCE
    past_boundary = at_boundary + timedelta(milliseconds=1)

    assert apply_update(
        event, EventUpdate(end=at_boundary), profile_check=StubProfileCheck()
    ).changed is False

    result = apply_update(
        event, EventUpdate(end=past_boundary), profile_check=StubProfileCheck(), now=NOW
    )
    assert result.changed is True
    change = result.entry.changes[TrackedField.END]
    assert change.from_ == event.end
    assert change.to == past_boundary


def test_scalar_fields_use_string_comparison() -> None:
    event = _sample_event(title="Standup")
    result = apply_update(
        event,
        EventUpdate(title="Standup", timezone="Europe/Riga"),
        profile_check=StubProfileCheck(),
        now=NOW,
    )
    assert list(result.entry.changes) == [TrackedField.TIMEZONE]
    assert result.entry.changes[TrackedField.TIMEZONE].from_ == "UTC"
    assert result.updated.timezone == "Europe/Riga"


def test_unknown_profile_aborts_update() -> None:
    event = _sample_event()
    with pytest.raises(ProfileNotFoundError) as excinfo:
        apply_update(
            event,
            EventUpdate(profiles=[P1, "c" * 24]),
            profile_check=StubProfileCheck(),
        )
    assert excinfo.value.missing == ["c" * 24]
    assert event.profiles == [P1]
    assert event.logs == []


def test_moving_both_endpoints_records_one_entry() -> None:
    event = _sample_event()
    patch = EventUpdate(start="2025-01-10T16:00:00Z", end="2025-01-10T17:30:00Z")

    result = apply_update(event, patch, profile_check=StubProfileCheck(), now=NOW)

    assert len(result.updated.logs) == 1
    assert set(result.entry.changes) == {TrackedField.START, TrackedField.END}
    assert result.updated.start == datetime(2025, 1, 10, 16, 0, tzinfo=UTC)
    assert result.updated.end == datetime(2025, 1, 10, 17, 30, tzinfo=UTC)
    assert result.updated.updated_at == NOW
    # the caller's copy is left alone
    assert event.logs == []
    assert event.start == datetime(2025, 1, 10, 14, 0, tzinfo=UTC)


def test_successive_updates_append_in_order() -> None:
    check = StubProfileCheck()
    first = apply_update(
        _sample_event(), EventUpdate(title="Planning"), profile_check=check, now=NOW
    )
    later = NOW + timedelta(hours=1)
    second = apply_update(
        first.updated, EventUpdate(profiles=[P2]), profile_check=check, now=later
    )

    logs = second.updated.logs
    assert [entry.timestamp for entry in logs] == [NOW, later]
    assert list(logs[0].changes) == [TrackedField.TITLE]
    assert list(logs[1].changes) == [TrackedField.PROFILES]
    assert len(first.updated.logs) == 1


def test_comparison_functions() -> None:
    base = datetime(2025, 1, 10, 14, 0, tzinfo=UTC)
    assert instant_changed(base, base + timedelta(seconds=2)) is True
    assert instant_changed(base, base - timedelta(milliseconds=999)) is False
    assert id_set_changed([P1, P2], [P2, P1]) is False
    assert id_set_changed([P1], [P1, P2]) is True
    assert text_changed("UTC", "UTC") is False
    assert text_changed(1, "1") is False
