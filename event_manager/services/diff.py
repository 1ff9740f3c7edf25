"""Field-level diffing and mutation of stored events.

Each tracked field has exactly one comparison function. An update only
produces a change log entry when at least one field differs under its
comparison; the caller's event is never modified in place.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Optional

from event_manager.errors import InvalidRangeError
from event_manager.models import ChangeLogEntry, Event, EventUpdate, FieldChange, TrackedField
from event_manager.utils.time import ensure_utc, now_utc

logger = logging.getLogger(__name__)

# Stored instants may lose sub-second precision on a client round trip, so
# start/end moves of up to one second are not treated as edits. Applies to
# start and end only.
INSTANT_TOLERANCE = timedelta(milliseconds=1000)

ProfileCheck = Callable[[Iterable[str]], Any]


def instant_changed(old: datetime, new: datetime) -> bool:
    return abs(ensure_utc(old) - ensure_utc(new)) > INSTANT_TOLERANCE


def id_set_changed(old: Iterable[str], new: Iterable[str]) -> bool:
    return sorted(str(item) for item in old or ()) != sorted(str(item) for item in new or ())


def text_changed(old: Any, new: Any) -> bool:
    return str(old) != str(new)


COMPARISON_POLICY: dict[TrackedField, Callable[[Any, Any], bool]] = {
    TrackedField.TITLE: text_changed,
    TrackedField.TIMEZONE: text_changed,
    TrackedField.START: instant_changed,
    TrackedField.END: instant_changed,
    TrackedField.PROFILES: id_set_changed,
}


@dataclass(slots=True)
class UpdateResult:
    updated: Event
    changed: bool
    entry: Optional[ChangeLogEntry] = None


def dedupe_ids(ids: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(ids))


def diff_fields(existing: Event, patch: EventUpdate) -> dict[TrackedField, FieldChange]:
    """Return the changes ``patch`` would make, keyed in policy order."""

    changes: dict[TrackedField, FieldChange] = {}
    for field, changed in COMPARISON_POLICY.items():
        proposed = getattr(patch, field.value)
        if proposed is None:
            continue
        proposed = _normalise(field, proposed)
        current = getattr(existing, field.value)
        if changed(current, proposed):
            if isinstance(current, list):
                current = list(current)
            changes[field] = FieldChange(from_=current, to=proposed)
    return changes


def apply_update(
    existing: Event,
    patch: EventUpdate,
    *,
    profile_check: ProfileCheck,
    now: Optional[datetime] = None,
) -> UpdateResult:
    """Diff ``patch`` against ``existing`` and build the mutated event.

    ``profile_check`` is called with the new participant ids when the profile
    set changed and must raise if any of them is unknown. Raises
    :class:`InvalidRangeError` if the resulting event would end before it
    starts. Nothing is appended to the log when no field changed.
    """

    changes = diff_fields(existing, patch)
    updated = existing.model_copy(deep=True)
    for field, change in changes.items():
        value = list(change.to) if isinstance(change.to, list) else change.to
        setattr(updated, field.value, value)

    if updated.end < updated.start:
        logger.warning(
            "Rejected update of event %s: end %s before start %s",
            existing.id,
            updated.end.isoformat(),
            updated.start.isoformat(),
        )
        raise InvalidRangeError(
            details={"start": updated.start.isoformat(), "end": updated.end.isoformat()}
        )

    if TrackedField.PROFILES in changes:
        profile_check(updated.profiles)

    if not changes:
        logger.info("Update of event %s changed nothing", existing.id)
        return UpdateResult(updated=updated, changed=False)

    entry = ChangeLogEntry(timestamp=now or now_utc(), changes=changes)
    updated.logs.append(entry)
    updated.updated_at = entry.timestamp
    logger.info(
        "Event %s updated: %s",
        existing.id,
        ", ".join(field.value for field in changes),
    )
    return UpdateResult(updated=updated, changed=True, entry=entry)


def _normalise(field: TrackedField, value: Any) -> Any:
    if field is TrackedField.PROFILES:
        return dedupe_ids(value)
    if field in (TrackedField.START, TrackedField.END):
        return ensure_utc(value)
    return value
