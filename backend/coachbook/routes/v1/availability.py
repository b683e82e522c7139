# backend/coachbook/routes/v1/availability.py
"""
Coach availability routes - API v1

Versioned availability endpoints under /api/v1/coaches/{coach_id}/availability.
All business logic delegated to AvailabilityService.

Endpoints:
    GET /                      → Full availability profile (created on first access)
    PUT /recurring             → Replace the weekly schedule
    POST /overrides            → Add or replace a date override
    DELETE /overrides/{date}   → Remove a date override
    GET /settings              → Buffer, duration, window and approval settings
    PATCH /settings            → Partial settings update
    GET /slots                 → Slots for a date range with conflict reasons
    POST /check-slot           → Check one specific slot
    GET /status                → Live availability status
"""

from datetime import date
import logging
from typing import Annotated, NoReturn, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, status

from ...api.dependencies.services import get_availability_service
from ...core.exceptions import DomainException
from ...schemas.availability import (
    AddOverrideRequest,
    AvailabilityProfileResponse,
    AvailabilitySettingsResponse,
    AvailabilityStatusResponse,
    CheckSlotRequest,
    ReplaceRecurringRequest,
    SlotCheckResponse,
    SlotListResponse,
    UpdateSettingsRequest,
)
from ...services.availability_service import AvailabilityService

logger = logging.getLogger(__name__)

# V1 router - no prefix here, will be added when mounting in main.py
router = APIRouter(tags=["availability-v1"])

COACH_ID_PATTERN = r"^[A-Za-z0-9_-]{1,64}$"

CoachId = Annotated[str, Path(pattern=COACH_ID_PATTERN, description="Coach identifier")]


def handle_domain_exception(exc: DomainException) -> NoReturn:
    """Convert domain exceptions to HTTP exceptions."""
    if hasattr(exc, "to_http_exception"):
        raise exc.to_http_exception()
    raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.get("", response_model=AvailabilityProfileResponse)
def get_availability_profile(
    coach_id: CoachId,
    service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityProfileResponse:
    """Get the coach's availability profile, seeding defaults on first access."""
    try:
        profile = service.get_or_create_profile(coach_id)
    except DomainException as e:
        handle_domain_exception(e)
    return AvailabilityProfileResponse.from_domain(profile)


@router.put("/recurring", response_model=AvailabilityProfileResponse)
def replace_recurring_availability(
    coach_id: CoachId,
    payload: ReplaceRecurringRequest = Body(...),
    service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityProfileResponse:
    """
    Replace the weekly recurring schedule.

    The whole set is replaced; entries on the same day must not overlap.
    """
    try:
        profile = service.replace_recurring(
            coach_id,
            [entry.to_domain() for entry in payload.recurring_availability],
            payload.expected_version,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return AvailabilityProfileResponse.from_domain(profile)


@router.post("/overrides", response_model=AvailabilityProfileResponse)
def add_date_override(
    coach_id: CoachId,
    payload: AddOverrideRequest = Body(...),
    service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityProfileResponse:
    """Add an override for a date, replacing any existing one for the same date."""
    try:
        profile = service.add_override(coach_id, payload.to_domain(), payload.expected_version)
    except DomainException as e:
        handle_domain_exception(e)
    return AvailabilityProfileResponse.from_domain(profile)


@router.delete("/overrides/{override_date}", response_model=AvailabilityProfileResponse)
def remove_date_override(
    coach_id: CoachId,
    override_date: date,
    expected_version: Optional[int] = Query(None, ge=1),
    service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityProfileResponse:
    try:
        profile = service.remove_override(coach_id, override_date, expected_version)
    except DomainException as e:
        handle_domain_exception(e)
    return AvailabilityProfileResponse.from_domain(profile)


@router.get("/settings", response_model=AvailabilitySettingsResponse)
def get_availability_settings(
    coach_id: CoachId,
    service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilitySettingsResponse:
    try:
        profile = service.get_or_create_profile(coach_id)
    except DomainException as e:
        handle_domain_exception(e)
    return AvailabilitySettingsResponse.from_domain(profile)


@router.patch("/settings", response_model=AvailabilitySettingsResponse)
def update_availability_settings(
    coach_id: CoachId,
    payload: UpdateSettingsRequest = Body(...),
    service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilitySettingsResponse:
    """Update buffers, durations, the booking window or approval settings."""
    try:
        profile = service.update_settings(coach_id, payload.changes(), payload.expected_version)
    except DomainException as e:
        handle_domain_exception(e)
    return AvailabilitySettingsResponse.from_domain(profile)


@router.get("/slots", response_model=SlotListResponse)
async def get_available_slots(
    coach_id: CoachId,
    start_date: date = Query(..., description="First local day"),
    end_date: date = Query(..., description="Exclusive end day"),
    duration: Optional[int] = Query(None, gt=0, description="Session length in minutes"),
    exclude_session_id: Optional[str] = Query(None, description="Session being rescheduled"),
    include_unavailable: bool = Query(True, description="Keep unavailable slots with reasons"),
    service: AvailabilityService = Depends(get_availability_service),
) -> SlotListResponse:
    """
    Get slots for a date range.

    Unavailable slots are returned with a conflict reason unless
    include_unavailable is false. An empty list is a valid answer.
    """
    try:
        listing = await service.get_available_slots(
            coach_id,
            start_date,
            end_date,
            duration,
            exclude_session_id=exclude_session_id,
            include_unavailable=include_unavailable,
        )
    except DomainException as e:
        handle_domain_exception(e)
    return SlotListResponse.from_listing(listing)


@router.post("/check-slot", response_model=SlotCheckResponse)
async def check_slot(
    coach_id: CoachId,
    payload: CheckSlotRequest = Body(...),
    service: AvailabilityService = Depends(get_availability_service),
) -> SlotCheckResponse:
    try:
        check = await service.check_slot(
            coach_id, payload.start, payload.duration, payload.exclude_session_id
        )
    except DomainException as e:
        handle_domain_exception(e)
    return SlotCheckResponse.from_check(check)


@router.get("/status", response_model=AvailabilityStatusResponse)
async def get_availability_status(
    coach_id: CoachId,
    service: AvailabilityService = Depends(get_availability_service),
) -> AvailabilityStatusResponse:
    """Is the coach available right now, and when next."""
    try:
        current = await service.get_status(coach_id)
    except DomainException as e:
        handle_domain_exception(e)
    return AvailabilityStatusResponse.from_domain(current)
