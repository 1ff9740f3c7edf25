from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from event_manager.config import settings
from event_manager.deps import get_event_service, get_profile_service
from event_manager.errors import EventManagerError
from event_manager.logging_conf import setup_logging
from event_manager.models import (
    ChangeLogEntry,
    ChangeLogEntryView,
    Event,
    EventCreate,
    EventUpdate,
    EventView,
    Profile,
    ProfileCreate,
    ProfileUpdate,
)
from event_manager.services.events import EventService
from event_manager.services.profiles import ProfileService
from event_manager.services.projection import project_event, project_logs
from event_manager.utils.time import get_zone

setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.api_title, version="0.1.0")
router = APIRouter(prefix="/api")


@app.exception_handler(EventManagerError)
async def core_error_handler(request: Request, exc: EventManagerError) -> JSONResponse:
    logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=jsonable_encoder({"message": exc.message, "details": exc.details}),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Rejected %s %s: invalid input", request.method, request.url.path)
    return JSONResponse(
        status_code=400,
        content={"message": "Validation failed", "details": jsonable_encoder(exc.errors())},
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"message": "Internal Server Error", "details": None},
    )


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


# ------------------------------------------------------------------- profiles
@router.post("/profiles", response_model=Profile, status_code=201)
def create_profile(data: ProfileCreate, svc: ProfileService = Depends(get_profile_service)):
    return svc.create_profile(data)


@router.get("/profiles", response_model=list[Profile])
def list_profiles(svc: ProfileService = Depends(get_profile_service)):
    return svc.list_profiles()


@router.patch("/profiles/{profile_id}", response_model=Profile)
def update_profile(
    profile_id: str,
    data: ProfileUpdate,
    svc: ProfileService = Depends(get_profile_service),
):
    return svc.update_profile(profile_id, data)


# --------------------------------------------------------------------- events
@router.post("/events", response_model=Event, status_code=201)
def create_event(data: EventCreate, svc: EventService = Depends(get_event_service)):
    return svc.create_event(data)


@router.get("/events", response_model=None)
def list_events(
    profile_id: Optional[str] = Query(default=None, alias="profileId"),
    timezone: Optional[str] = None,
    svc: EventService = Depends(get_event_service),
    profile_svc: ProfileService = Depends(get_profile_service),
) -> list[Event] | list[EventView]:
    if timezone:
        get_zone(timezone)
    events = svc.list_events(profile_id)
    if not timezone:
        return events

    participants = {
        profile.id: profile
        for profile in profile_svc.get_many(pid for event in events for pid in event.profiles)
    }
    return [
        project_event(
            event,
            timezone,
            [participants[pid] for pid in event.profiles if pid in participants],
        )
        for event in events
    ]


@router.get("/events/{event_id}", response_model=None)
def get_event(
    event_id: str,
    timezone: Optional[str] = None,
    svc: EventService = Depends(get_event_service),
    profile_svc: ProfileService = Depends(get_profile_service),
) -> Event | EventView:
    event = svc.get_event(event_id)
    if timezone:
        return project_event(event, timezone, profile_svc.get_many(event.profiles))
    return event


@router.patch("/events/{event_id}", response_model=Event)
def update_event(
    event_id: str,
    patch: EventUpdate,
    svc: EventService = Depends(get_event_service),
):
    return svc.update_event(event_id, patch).updated


@router.get("/events/{event_id}/logs", response_model=None)
def get_event_logs(
    event_id: str,
    timezone: Optional[str] = None,
    svc: EventService = Depends(get_event_service),
) -> list[ChangeLogEntry] | list[ChangeLogEntryView]:
    logs = svc.get_logs(event_id)
    if timezone:
        return project_logs(logs, timezone)
    return logs


app.include_router(router)
