from __future__ import annotations

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Iterable, Optional

from event_manager.errors import ConflictError, NotFoundError
from event_manager.models import Event, Profile

logger = logging.getLogger(__name__)

MEMORY = ":memory:"


def _ensure_parent(path: Path) -> None:
    if not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)


class SQLiteStore:
    """SQLite persistence for profiles and events.

    Documents are kept as JSON payloads; the scalar columns next to them only
    exist for lookups, ordering and uniqueness.

    The connection is shared across request threads, so every statement and
    transaction runs under one store-wide lock.
    """

    def __init__(self, db_path: str) -> None:
        if db_path != MEMORY:
            _ensure_parent(Path(db_path))
        self.path = db_path
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        self._conn.execute("PRAGMA foreign_keys = ON")
        self._ensure_schema()
        self.profiles = SQLiteProfileRepository(self._conn, self._lock)
        self.events = SQLiteEventRepository(self._conn, self._lock)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def _ensure_schema(self) -> None:
        with self._conn:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS profiles (
                    id TEXT PRIMARY KEY,
                    name TEXT NOT NULL UNIQUE,
                    created_ts REAL NOT NULL,
                    payload_json TEXT NOT NULL
                )
                """
            )
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS events (
                    id TEXT PRIMARY KEY,
                    start_ts REAL NOT NULL,
                    end_ts REAL NOT NULL,
                    payload_json TEXT NOT NULL
                )
                """
            )
            self._conn.execute(
                "CREATE INDEX IF NOT EXISTS ix_events_start_ts ON events(start_ts)"
            )
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS event_profiles (
                    event_id TEXT NOT NULL REFERENCES events(id) ON DELETE CASCADE,
                    profile_id TEXT NOT NULL,
                    PRIMARY KEY (event_id, profile_id)
                )
                """
            )
            self._conn.execute(
                "CREATE INDEX IF NOT EXISTS ix_event_profiles_profile_id "
                "ON event_profiles(profile_id)"
            )


class _Repository:
    def __init__(self, conn: sqlite3.Connection, lock: threading.RLock) -> None:
        self._conn = conn
        self._lock = lock

    def _rows(self, sql: str, params: Iterable = ()) -> list[sqlite3.Row]:
        with self._lock:
            return self._conn.execute(sql, params).fetchall()


class SQLiteProfileRepository(_Repository):
    def find_by_id(self, profile_id: str) -> Optional[Profile]:
        rows = self._rows(
            "SELECT payload_json FROM profiles WHERE id = ?", (profile_id,)
        )
        return Profile.model_validate_json(rows[0]["payload_json"]) if rows else None

    def find_by_name(self, name: str) -> Optional[Profile]:
        rows = self._rows(
            "SELECT payload_json FROM profiles WHERE name = ?", (name,)
        )
        return Profile.model_validate_json(rows[0]["payload_json"]) if rows else None

    def find_many(self, ids: Optional[Iterable[str]] = None) -> list[Profile]:
        if ids is None:
            rows = self._rows(
                "SELECT payload_json FROM profiles ORDER BY created_ts DESC, rowid DESC"
            )
        else:
            wanted = list(dict.fromkeys(ids))
            if not wanted:
                return []
            placeholders = ", ".join("?" for _ in wanted)
            rows = self._rows(
                f"SELECT payload_json FROM profiles WHERE id IN ({placeholders})",
                wanted,
            )
        return [Profile.model_validate_json(row["payload_json"]) for row in rows]

    def create(self, profile: Profile) -> Profile:
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    "INSERT INTO profiles(id, name, created_ts, payload_json) VALUES(?, ?, ?, ?)",
                    (
                        profile.id,
                        profile.name,
                        profile.created_at.timestamp(),
                        profile.model_dump_json(),
                    ),
                )
        except sqlite3.IntegrityError as exc:
            raise ConflictError("Profile name already exists") from exc
        return profile

    def save(self, profile: Profile) -> Profile:
        try:
            with self._lock, self._conn:
                cur = self._conn.execute(
                    "UPDATE profiles SET name = ?, payload_json = ? WHERE id = ?",
                    (profile.name, profile.model_dump_json(), profile.id),
                )
        except sqlite3.IntegrityError as exc:
            raise ConflictError("Profile name already exists") from exc
        if cur.rowcount == 0:
            raise NotFoundError("Profile not found")
        return profile


class SQLiteEventRepository(_Repository):
    def find_by_id(self, event_id: str) -> Optional[Event]:
        rows = self._rows(
            "SELECT payload_json FROM events WHERE id = ?", (event_id,)
        )
        return Event.model_validate_json(rows[0]["payload_json"]) if rows else None

    def find_many(self, *, profile_id: Optional[str] = None) -> list[Event]:
        if profile_id is None:
            rows = self._rows(
                "SELECT payload_json FROM events ORDER BY start_ts, rowid"
            )
        else:
            rows = self._rows(
                (
                    "SELECT e.payload_json FROM events e "
                    "JOIN event_profiles ep ON ep.event_id = e.id "
                    "WHERE ep.profile_id = ? "
                    "ORDER BY e.start_ts, e.rowid"
                ),
                (profile_id,),
            )
        return [Event.model_validate_json(row["payload_json"]) for row in rows]

    def create(self, event: Event) -> Event:
        try:
            with self._lock, self._conn:
                self._conn.execute(
                    "INSERT INTO events(id, start_ts, end_ts, payload_json) VALUES(?, ?, ?, ?)",
                    (
                        event.id,
                        event.start.timestamp(),
                        event.end.timestamp(),
                        event.model_dump_json(by_alias=True),
                    ),
                )
                self._write_participants(event)
        except sqlite3.IntegrityError as exc:
            raise ConflictError(f"Event {event.id} already exists") from exc
        return event

    def save(self, event: Event) -> Event:
        with self._lock, self._conn:
            cur = self._conn.execute(
                "UPDATE events SET start_ts = ?, end_ts = ?, payload_json = ? WHERE id = ?",
                (
                    event.start.timestamp(),
                    event.end.timestamp(),
                    event.model_dump_json(by_alias=True),
                    event.id,
                ),
            )
            if cur.rowcount == 0:
                raise NotFoundError("Event not found")
            self._conn.execute(
                "DELETE FROM event_profiles WHERE event_id = ?", (event.id,)
            )
            self._write_participants(event)
        logger.debug("Saved event %s with %d log entries", event.id, len(event.logs))
        return event

    def _write_participants(self, event: Event) -> None:
        self._conn.executemany(
            "INSERT OR IGNORE INTO event_profiles(event_id, profile_id) VALUES(?, ?)",
            [(event.id, profile_id) for profile_id in event.profiles],
        )
