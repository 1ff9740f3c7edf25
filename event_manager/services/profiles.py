from __future__ import annotations

import logging
from typing import Iterable
from uuid import uuid4

from event_manager.config import settings
from event_manager.errors import NotFoundError
from event_manager.models import Profile, ProfileCreate, ProfileUpdate
from event_manager.services.guard import ProfileGuard
from event_manager.services.store import ProfileRepository
from event_manager.utils.time import now_utc

logger = logging.getLogger(__name__)


class ProfileService:
    def __init__(self, profiles: ProfileRepository, guard: ProfileGuard | None = None) -> None:
        self._profiles = profiles
        self.guard = guard or ProfileGuard(profiles)

    def create_profile(self, data: ProfileCreate) -> Profile:
        self.guard.ensure_unique_name(data.name)
        profile = Profile(
            id=uuid4().hex,
            name=data.name,
            timezone=data.timezone or settings.default_timezone,
        )
        created = self._profiles.create(profile)
        logger.info("Created profile %s (%s)", created.id, created.name)
        return created

    def list_profiles(self) -> list[Profile]:
        return self._profiles.find_many()

    def get_many(self, ids: Iterable[str]) -> list[Profile]:
        """Resolve ``ids`` in the order given; unknown ids are skipped."""

        wanted = list(dict.fromkeys(ids))
        by_id = {profile.id: profile for profile in self._profiles.find_many(wanted)}
        return [by_id[profile_id] for profile_id in wanted if profile_id in by_id]

    def get_profile(self, profile_id: str) -> Profile:
        profile = self._profiles.find_by_id(profile_id)
        if profile is None:
            raise NotFoundError("Profile not found", details={"id": profile_id})
        return profile

    def update_profile(self, profile_id: str, data: ProfileUpdate) -> Profile:
        profile = self.get_profile(profile_id)
        if data.name is not None and data.name != profile.name:
            self.guard.ensure_unique_name(data.name, exclude_id=profile.id)

        changes = data.model_dump(exclude_none=True)
        updated = profile.model_copy(update={**changes, "updated_at": now_utc()})
        saved = self._profiles.save(updated)
        logger.info("Updated profile %s: %s", saved.id, ", ".join(sorted(changes)))
        return saved
