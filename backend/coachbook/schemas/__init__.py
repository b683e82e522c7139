# backend/coachbook/schemas/__init__.py
"""
Pydantic schemas for the availability API.

Request models check shape only; business rules live in the domain
validation layer.
"""

from .availability import (
    AddOverrideRequest,
    AvailabilityProfileResponse,
    AvailabilitySettingsResponse,
    AvailabilityStatusResponse,
    BufferSettingsSchema,
    CheckSlotRequest,
    DateOverrideSchema,
    RecurringAvailabilitySchema,
    ReplaceRecurringRequest,
    SlotCheckResponse,
    SlotListResponse,
    SlotResponse,
    TimeWindowSchema,
    UpdateSettingsRequest,
)

__all__ = [
    # Profile pieces
    "TimeWindowSchema",
    "RecurringAvailabilitySchema",
    "DateOverrideSchema",
    "BufferSettingsSchema",
    # Requests
    "ReplaceRecurringRequest",
    "AddOverrideRequest",
    "UpdateSettingsRequest",
    "CheckSlotRequest",
    # Responses
    "AvailabilitySettingsResponse",
    "AvailabilityProfileResponse",
    "SlotResponse",
    "SlotListResponse",
    "SlotCheckResponse",
    "AvailabilityStatusResponse",
]
