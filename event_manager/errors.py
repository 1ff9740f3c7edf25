"""Error taxonomy shared by the core and the HTTP boundary.

Every error carries the HTTP status the boundary should answer with, so the
FastAPI exception handler can render any of them without a lookup table.
"""

from __future__ import annotations

from typing import Any, Optional


class EventManagerError(Exception):
    """Base class for all core failures."""

    status_code: int = 500

    def __init__(self, message: str, *, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(EventManagerError):
    """Raised when a referenced entity does not exist."""

    status_code = 404


class ProfileNotFoundError(NotFoundError):
    """Raised when one or more referenced profile ids do not resolve."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__("One or more profiles not found", details={"missing": missing})
        self.missing = missing


class ConflictError(EventManagerError):
    """Raised on a uniqueness violation."""

    status_code = 409


class InvalidRangeError(EventManagerError):
    """Raised when an event would end before it starts."""

    status_code = 400

    def __init__(self, message: str = "End date cannot be before start date", **kwargs: Any) -> None:
        super().__init__(message, **kwargs)


class InvalidZoneError(EventManagerError, ValueError):
    """Raised for names that are not IANA timezone identifiers."""

    status_code = 400


class InvalidDateTimeError(EventManagerError, ValueError):
    """Raised for malformed or nonexistent wall-clock date/time strings."""

    status_code = 400
