from __future__ import annotations

from typing import Iterable, Optional, Protocol

from event_manager.models import Event, Profile


class ProfileRepository(Protocol):
    """Persistence operations the core needs for profiles."""

    def find_by_id(self, profile_id: str) -> Optional[Profile]: ...

    def find_by_name(self, name: str) -> Optional[Profile]: ...

    def find_many(self, ids: Optional[Iterable[str]] = None) -> list[Profile]: ...

    def create(self, profile: Profile) -> Profile: ...

    def save(self, profile: Profile) -> Profile: ...


class EventRepository(Protocol):
    """Persistence operations the core needs for events.

    ``save`` writes the entity together with its change log; implementations
    must commit both or neither.
    """

    def find_by_id(self, event_id: str) -> Optional[Event]: ...

    def find_many(self, *, profile_id: Optional[str] = None) -> list[Event]: ...

    def create(self, event: Event) -> Event: ...

    def save(self, event: Event) -> Event: ...
