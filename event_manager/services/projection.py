from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional

from event_manager.models import (
    ChangeLogEntry,
    ChangeLogEntryView,
    Event,
    EventView,
    FieldChange,
    Profile,
    WallClockView,
)
from event_manager.utils.time import ensure_utc, get_zone, to_display


def _in_zone(instant: datetime, zone_name: str) -> datetime:
    return ensure_utc(instant).astimezone(get_zone(zone_name))


def _project_value(value: Any, zone_name: str) -> Any:
    if isinstance(value, datetime):
        return _in_zone(value, zone_name)
    return value


def project_logs(entries: Iterable[ChangeLogEntry], zone_name: str) -> list[ChangeLogEntryView]:
    get_zone(zone_name)  # unknown zones fail even for an empty log
    return [
        ChangeLogEntryView(
            timestamp=_in_zone(entry.timestamp, zone_name),
            changes={
                field: FieldChange(
                    from_=_project_value(change.from_, zone_name),
                    to=_project_value(change.to, zone_name),
                )
                for field, change in entry.changes.items()
            },
        )
        for entry in entries
    ]


def project_event(
    event: Event, zone_name: str, profiles: Optional[list[Profile]] = None
) -> EventView:
    """Re-express ``event`` in ``zone_name``; ``profiles`` are embedded as participants."""

    start_local = to_display(event.start, zone_name)
    end_local = to_display(event.end, zone_name)
    return EventView(
        id=event.id,
        title=event.title,
        timezone=event.timezone,
        display_timezone=zone_name,
        start=_in_zone(event.start, zone_name),
        end=_in_zone(event.end, zone_name),
        start_local=WallClockView(date=start_local.date, time=start_local.time),
        end_local=WallClockView(date=end_local.date, time=end_local.time),
        profiles=list(event.profiles),
        participants=profiles,
        logs=project_logs(event.logs, zone_name),
        created_at=_in_zone(event.created_at, zone_name),
        updated_at=_in_zone(event.updated_at, zone_name),
    )
