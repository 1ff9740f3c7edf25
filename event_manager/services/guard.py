from __future__ import annotations

import logging
from typing import Iterable, Optional

from event_manager.errors import ConflictError, ProfileNotFoundError
from event_manager.models import Profile
from event_manager.services.store import ProfileRepository

logger = logging.getLogger(__name__)


class ProfileGuard:
    """Uniqueness and existence checks for profiles."""

    def __init__(self, profiles: ProfileRepository) -> None:
        self._profiles = profiles

    def ensure_unique_name(self, name: str, exclude_id: Optional[str] = None) -> None:
        """Fail if another profile already uses ``name`` (exact, case-sensitive).

        ``exclude_id`` lets a profile keep its own name during an update.
        """

        existing = self._profiles.find_by_name(name)
        if existing is not None and existing.id != exclude_id:
            logger.warning("Profile name %r already taken by %s", name, existing.id)
            raise ConflictError("Profile name already exists", details={"name": name})

    def ensure_profiles_exist(self, ids: Iterable[str]) -> list[Profile]:
        requested = list(dict.fromkeys(ids))
        found = self._profiles.find_many(requested)
        if len(found) != len(requested):
            known = {profile.id for profile in found}
            missing = [profile_id for profile_id in requested if profile_id not in known]
            logger.warning("Unknown profile ids referenced: %s", missing)
            raise ProfileNotFoundError(missing)
        return found
