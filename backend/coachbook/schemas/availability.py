# backend/coachbook/schemas/availability.py
"""
Availability schemas for the coaching platform.

Request models only check shape and wall-clock format; business rules
(overlaps, duration lists, timezone names) are enforced by the domain
validation layer so that every write path applies the same checks.

Wire conventions:
- instants are ISO-8601 UTC
- wall-clock times are "HH:mm" in the coach's timezone
- writes carry the profile version the caller last read
"""

import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from ..core.enums import BookingApprovalMode, OverrideReason, SlotConflictReason
from ..domain.availability import (
    AvailabilityStatus,
    AvailableSlot,
    BufferSettings,
    CoachAvailability,
    DateOverride,
    RecurringAvailability,
    TimeWindow,
)
from ..services.availability_service import SlotCheck, SlotListing
from ._strict_base import StrictModel, StrictRequestModel, WallClock

# Type aliases for clarity
DateType = datetime.date
DateTimeType = datetime.datetime


class TimeWindowSchema(StrictRequestModel):
    """A wall-clock window inside one local day."""

    start_time: WallClock
    end_time: WallClock

    def to_domain(self) -> TimeWindow:
        return TimeWindow(self.start_time, self.end_time)

    @classmethod
    def from_domain(cls, window: TimeWindow) -> "TimeWindowSchema":
        return cls(start_time=window.start_time, end_time=window.end_time)


class RecurringAvailabilitySchema(StrictRequestModel):
    day_of_week: int = Field(..., ge=0, le=6, description="0 = Sunday ... 6 = Saturday")
    start_time: WallClock
    end_time: WallClock
    is_active: bool = True

    def to_domain(self) -> RecurringAvailability:
        return RecurringAvailability(
            day_of_week=self.day_of_week,
            start_time=self.start_time,
            end_time=self.end_time,
            is_active=self.is_active,
        )

    @classmethod
    def from_domain(cls, entry: RecurringAvailability) -> "RecurringAvailabilitySchema":
        return cls(
            day_of_week=entry.day_of_week,
            start_time=entry.start_time,
            end_time=entry.end_time,
            is_active=entry.is_active,
        )


class DateOverrideSchema(StrictRequestModel):
    date: DateType
    is_available: bool
    reason: Optional[OverrideReason] = None
    time_slots: List[TimeWindowSchema] = Field(default_factory=list)

    def to_domain(self) -> DateOverride:
        return DateOverride(
            date=self.date,
            is_available=self.is_available,
            reason=self.reason,
            time_slots=tuple(window.to_domain() for window in self.time_slots),
        )

    @classmethod
    def from_domain(cls, override: DateOverride) -> "DateOverrideSchema":
        return cls(
            date=override.date,
            is_available=override.is_available,
            reason=override.reason,
            time_slots=[TimeWindowSchema.from_domain(w) for w in override.time_slots],
        )


class BufferSettingsSchema(StrictRequestModel):
    before_session: int = Field(0, ge=0)
    after_session: int = Field(0, ge=0)
    between_sessions: int = Field(0, ge=0)

    def to_domain(self) -> BufferSettings:
        return BufferSettings(
            before_session=self.before_session,
            after_session=self.after_session,
            between_sessions=self.between_sessions,
        )


# ----- requests -----


class ReplaceRecurringRequest(StrictRequestModel):
    recurring_availability: List[RecurringAvailabilitySchema]
    expected_version: int = Field(..., ge=1)


class AddOverrideRequest(DateOverrideSchema):
    """Add or replace the override for a date."""

    expected_version: Optional[int] = Field(None, ge=1)


class UpdateSettingsRequest(StrictRequestModel):
    """Partial settings update; omitted fields keep their stored value."""

    expected_version: int = Field(..., ge=1)
    timezone: Optional[str] = None
    buffer_settings: Optional[BufferSettingsSchema] = None
    default_session_duration: Optional[int] = None
    allowed_durations: Optional[List[int]] = None
    advance_booking_days: Optional[int] = None
    last_minute_booking_hours: Optional[int] = None
    auto_accept_bookings: Optional[bool] = None
    require_approval: Optional[bool] = None

    def changes(self) -> Dict[str, Any]:
        """Fields the caller actually sent, in domain form."""
        changes = self.model_dump(exclude_unset=True, exclude={"expected_version", "buffer_settings"})
        if "buffer_settings" in self.model_fields_set and self.buffer_settings is not None:
            changes["buffer_settings"] = self.buffer_settings.to_domain()
        return {key: value for key, value in changes.items() if value is not None}


class CheckSlotRequest(StrictRequestModel):
    start: DateTimeType
    duration: Optional[int] = Field(None, gt=0)
    exclude_session_id: Optional[str] = None

    @field_validator("start")
    @classmethod
    def require_timezone(cls, v: DateTimeType) -> DateTimeType:
        """Slot starts are instants; a naive value is ambiguous."""
        if v.tzinfo is None:
            raise ValueError("start must include a UTC offset")
        return v


# ----- responses -----


class AvailabilitySettingsResponse(StrictModel):
    coach_id: str
    timezone: str
    buffer_settings: BufferSettingsSchema
    default_session_duration: int
    allowed_durations: List[int]
    advance_booking_days: int
    last_minute_booking_hours: int
    auto_accept_bookings: bool
    require_approval: bool
    approval_mode: BookingApprovalMode
    version: int

    @classmethod
    def from_domain(cls, profile: CoachAvailability) -> "AvailabilitySettingsResponse":
        buffers = profile.buffer_settings
        return cls(
            coach_id=profile.coach_id,
            timezone=profile.timezone,
            buffer_settings=BufferSettingsSchema(
                before_session=buffers.before_session,
                after_session=buffers.after_session,
                between_sessions=buffers.between_sessions,
            ),
            default_session_duration=profile.default_session_duration,
            allowed_durations=list(profile.allowed_durations),
            advance_booking_days=profile.advance_booking_days,
            last_minute_booking_hours=profile.last_minute_booking_hours,
            auto_accept_bookings=profile.auto_accept_bookings,
            require_approval=profile.require_approval,
            approval_mode=profile.approval_mode,
            version=profile.version,
        )


class AvailabilityProfileResponse(AvailabilitySettingsResponse):
    recurring_availability: List[RecurringAvailabilitySchema]
    date_overrides: List[DateOverrideSchema]
    updated_at: Optional[DateTimeType] = None

    @classmethod
    def from_domain(cls, profile: CoachAvailability) -> "AvailabilityProfileResponse":
        base = AvailabilitySettingsResponse.from_domain(profile)
        return cls(
            **base.model_dump(),
            recurring_availability=[
                RecurringAvailabilitySchema.from_domain(entry)
                for entry in profile.recurring_availability
            ],
            date_overrides=[DateOverrideSchema.from_domain(o) for o in profile.date_overrides],
            updated_at=profile.updated_at,
        )


class SlotResponse(StrictModel):
    start: DateTimeType
    end: DateTimeType
    duration: int
    is_available: bool
    conflict_reason: Optional[SlotConflictReason] = None

    @classmethod
    def from_domain(cls, slot: AvailableSlot) -> "SlotResponse":
        return cls(
            start=slot.start,
            end=slot.end,
            duration=slot.duration,
            is_available=slot.is_available,
            conflict_reason=slot.conflict_reason,
        )


class SlotListResponse(StrictModel):
    coach_id: str
    timezone: str
    duration: int
    total_slots: int
    available_slots: int
    slots: List[SlotResponse]

    @classmethod
    def from_listing(cls, listing: SlotListing) -> "SlotListResponse":
        return cls(
            coach_id=listing.coach_id,
            timezone=listing.timezone,
            duration=listing.duration,
            total_slots=listing.total_slots,
            available_slots=listing.available_slots,
            slots=[SlotResponse.from_domain(slot) for slot in listing.slots],
        )


class SlotCheckResponse(StrictModel):
    is_available: bool
    reason: Optional[str] = None

    @classmethod
    def from_check(cls, check: SlotCheck) -> "SlotCheckResponse":
        return cls(is_available=check.is_available, reason=check.reason)


class AvailabilityStatusResponse(StrictModel):
    is_currently_available: bool
    current_session_end: Optional[DateTimeType] = None
    next_available_slot: Optional[DateTimeType] = None

    @classmethod
    def from_domain(cls, status: AvailabilityStatus) -> "AvailabilityStatusResponse":
        return cls(
            is_currently_available=status.is_currently_available,
            current_session_end=status.current_session_end,
            next_available_slot=status.next_available_slot,
        )
