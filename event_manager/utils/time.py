"""Conversions between instants and zone-local wall-clock fields.

Instants are always handled as UTC-aware ``datetime`` objects. Wall-clock
fields are plain ``YYYY-MM-DD`` / ``HH:MM`` strings that only mean something
together with an IANA zone name.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import NamedTuple
import zoneinfo
from zoneinfo import ZoneInfoNotFoundError

from event_manager.errors import InvalidDateTimeError, InvalidZoneError

DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M"
TIME_FORMAT_SECONDS = "%H:%M:%S"


class WallClock(NamedTuple):
    date: str
    time: str


def get_zone(name: str) -> zoneinfo.ZoneInfo:
    if not isinstance(name, str) or not name.strip():
        raise InvalidZoneError(f"Unknown timezone: {name!r}")
    try:
        return zoneinfo.ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise InvalidZoneError(f"Unknown timezone: {name!r}") from exc


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Normalise ``dt`` to UTC; naive values are taken to already be UTC."""

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_display(instant: datetime, zone_name: str, *, seconds: bool = False) -> WallClock:
    """Express ``instant`` as date and time strings in ``zone_name``.

    Times are ``HH:MM`` unless ``seconds`` is set, so only whole-minute
    instants survive a round trip through :func:`to_absolute` by default.
    """

    local = ensure_utc(instant).astimezone(get_zone(zone_name))
    time_format = TIME_FORMAT_SECONDS if seconds else TIME_FORMAT
    return WallClock(local.strftime(DATE_FORMAT), local.strftime(time_format))


def to_absolute(date_string: str, time_string: str, zone_name: str) -> datetime:
    """Interpret ``date_string time_string`` as wall-clock time in ``zone_name``.

    The result is a UTC instant. Local times skipped by a DST transition are
    read with the offset in force before the transition, which moves them
    forward; repeated local times resolve to their first occurrence.
    """

    zone = get_zone(zone_name)
    naive = _parse_wall_clock(date_string, time_string)
    return naive.replace(tzinfo=zone).astimezone(timezone.utc)


def to_zone_iso(instant: datetime, zone_name: str) -> str:
    return ensure_utc(instant).astimezone(get_zone(zone_name)).isoformat()


def _parse_wall_clock(date_string: str, time_string: str) -> datetime:
    if not isinstance(date_string, str) or not isinstance(time_string, str):
        raise InvalidDateTimeError(
            f"Invalid date/time: {date_string!r} {time_string!r}"
        )
    raw = f"{date_string.strip()} {time_string.strip()}"
    for time_format in (TIME_FORMAT, TIME_FORMAT_SECONDS):
        try:
            return datetime.strptime(raw, f"{DATE_FORMAT} {time_format}")
        except ValueError:
            continue
    raise InvalidDateTimeError(f"Invalid date/time: {date_string!r} {time_string!r}")
