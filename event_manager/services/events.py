from __future__ import annotations

import logging
from typing import Optional
from uuid import uuid4

from event_manager.errors import NotFoundError
from event_manager.models import ChangeLogEntry, Event, EventCreate, EventUpdate
from event_manager.services.diff import UpdateResult, apply_update, dedupe_ids
from event_manager.services.guard import ProfileGuard
from event_manager.services.store import EventRepository

logger = logging.getLogger(__name__)


class EventService:
    """Request-level event operations on top of the store and diff engine."""

    def __init__(self, events: EventRepository, guard: ProfileGuard) -> None:
        self._events = events
        self.guard = guard

    def create_event(self, data: EventCreate) -> Event:
        # the same id sent twice is one participant
        profiles = dedupe_ids(data.profiles)
        self.guard.ensure_profiles_exist(profiles)

        event = Event(
            id=uuid4().hex,
            title=data.title,
            timezone=data.timezone,
            start=data.start,
            end=data.end,
            profiles=profiles,
            logs=[],
        )
        created = self._events.create(event)
        logger.info("Created event %s for %d profile(s)", created.id, len(profiles))
        return created

    def list_events(self, profile_id: Optional[str] = None) -> list[Event]:
        return self._events.find_many(profile_id=profile_id)

    def get_event(self, event_id: str) -> Event:
        event = self._events.find_by_id(event_id)
        if event is None:
            raise NotFoundError("Event not found", details={"id": event_id})
        return event

    def update_event(self, event_id: str, patch: EventUpdate) -> UpdateResult:
        existing = self.get_event(event_id)
        result = apply_update(
            existing, patch, profile_check=self.guard.ensure_profiles_exist
        )
        if result.changed:
            # entity and its new log entry go out in one write
            result.updated = self._events.save(result.updated)
        return result

    def get_logs(self, event_id: str) -> list[ChangeLogEntry]:
        return list(self.get_event(event_id).logs)
