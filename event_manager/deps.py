from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from event_manager.config import settings
from event_manager.services.events import EventService
from event_manager.services.guard import ProfileGuard
from event_manager.services.profiles import ProfileService
from event_manager.services.sqlite_store import SQLiteStore


@lru_cache(maxsize=1)
def get_store() -> SQLiteStore:
    return SQLiteStore(settings.sqlite_db_path)


def get_guard(store: SQLiteStore = Depends(get_store)) -> ProfileGuard:
    return ProfileGuard(store.profiles)


def get_profile_service(
    store: SQLiteStore = Depends(get_store),
    guard: ProfileGuard = Depends(get_guard),
) -> ProfileService:
    return ProfileService(store.profiles, guard)


def get_event_service(
    store: SQLiteStore = Depends(get_store),
    guard: ProfileGuard = Depends(get_guard),
) -> EventService:
    return EventService(store.events, guard)
