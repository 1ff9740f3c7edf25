from __future__ import annotations

import logging
import os

from pydantic import BaseModel, ConfigDict

from event_manager.errors import InvalidZoneError
from event_manager.utils.time import get_zone


class Settings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    api_title: str = os.getenv("API_TITLE", "Event Manager")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    sqlite_db_path: str = os.getenv("SQLITE_DB_PATH", "event_manager.db")

    # zone given to new profiles that do not name one
    default_timezone: str = os.getenv("DEFAULT_TIMEZONE", "UTC")
    form_default_timezone: str = os.getenv(
        "FORM_DEFAULT_TIMEZONE", "America/New_York"
    )

    def model_post_init(self, __context: dict[str, object]) -> None:
        logger = logging.getLogger(__name__)
        for label, zone in (
            ("DEFAULT_TIMEZONE", self.default_timezone),
            ("FORM_DEFAULT_TIMEZONE", self.form_default_timezone),
        ):
            try:
                get_zone(zone)
            except InvalidZoneError:
                logger.warning(
                    "%s=%r is not a recognised IANA zone; requests relying on it will fail.",
                    label,
                    zone,
                )


settings = Settings()
