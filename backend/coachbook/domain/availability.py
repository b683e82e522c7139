"""
Immutable availability snapshots consumed by the slot engine.

These types have no dependency on the database or the web layer: the
repositories build them from rows and the routes build them from request
schemas, and every engine stage treats them as read-only values.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, timedelta
from typing import Dict, Optional, Tuple

from ..core.enums import BookingApprovalMode, OverrideReason, SessionStatus, SlotConflictReason
from ..utils.time_helpers import wall_clock_to_minutes

DEFAULT_WORKDAY_START = "09:00"
DEFAULT_WORKDAY_END = "17:00"
DEFAULT_SESSION_DURATION = 60
DEFAULT_ALLOWED_DURATIONS = (30, 45, 60, 90, 120)
DEFAULT_ADVANCE_BOOKING_DAYS = 30
DEFAULT_LAST_MINUTE_BOOKING_HOURS = 24


@dataclass(frozen=True)
class TimeWindow:
    """A wall-clock window within one local day, end exclusive."""

    start_time: str
    end_time: str

    @property
    def start_minutes(self) -> int:
        return wall_clock_to_minutes(self.start_time)

    @property
    def end_minutes(self) -> int:
        return wall_clock_to_minutes(self.end_time)

    def overlaps(self, other: "TimeWindow") -> bool:
        # touching edges (10:00-11:00, 11:00-12:00) do not overlap
        return self.start_minutes < other.end_minutes and other.start_minutes < self.end_minutes

    def __str__(self) -> str:
        return f"{self.start_time}-{self.end_time}"


@dataclass(frozen=True)
class RecurringAvailability:
    """A weekly bookable window. day_of_week: 0 = Sunday ... 6 = Saturday."""

    day_of_week: int
    start_time: str
    end_time: str
    is_active: bool = True

    @property
    def window(self) -> TimeWindow:
        return TimeWindow(self.start_time, self.end_time)


@dataclass(frozen=True)
class DateOverride:
    """A one-off block or custom-hours exception for a single date."""

    date: date
    is_available: bool
    reason: Optional[OverrideReason] = None
    time_slots: Tuple[TimeWindow, ...] = ()


@dataclass(frozen=True)
class BufferSettings:
    before_session: int = 0
    after_session: int = 0
    between_sessions: int = 0


@dataclass(frozen=True)
class CoachAvailability:
    """Aggregate root: everything that decides when a coach can be booked."""

    coach_id: str
    timezone: str
    recurring_availability: Tuple[RecurringAvailability, ...] = ()
    date_overrides: Tuple[DateOverride, ...] = ()
    buffer_settings: BufferSettings = field(default_factory=BufferSettings)
    default_session_duration: int = DEFAULT_SESSION_DURATION
    allowed_durations: Tuple[int, ...] = DEFAULT_ALLOWED_DURATIONS
    advance_booking_days: int = DEFAULT_ADVANCE_BOOKING_DAYS
    last_minute_booking_hours: int = DEFAULT_LAST_MINUTE_BOOKING_HOURS
    auto_accept_bookings: bool = False
    require_approval: bool = True
    version: int = 1
    updated_at: Optional[datetime] = None

    @classmethod
    def default(cls, coach_id: str, timezone: str) -> "CoachAvailability":
        """Seed profile for a coach seen for the first time: Mon-Fri 09:00-17:00."""
        weekdays = tuple(
            RecurringAvailability(day, DEFAULT_WORKDAY_START, DEFAULT_WORKDAY_END)
            for day in range(1, 6)
        )
        return cls(coach_id=coach_id, timezone=timezone, recurring_availability=weekdays)

    @property
    def approval_mode(self) -> BookingApprovalMode:
        return BookingApprovalMode.MANUAL if self.require_approval else BookingApprovalMode.AUTO

    @property
    def overrides_by_date(self) -> Dict[date, DateOverride]:
        # later entries win, matching "last write wins" on update
        return {override.date: override for override in self.date_overrides}

    def override_for(self, day: date) -> Optional[DateOverride]:
        return self.overrides_by_date.get(day)

    def recurring_for(self, day: date) -> Tuple[RecurringAvailability, ...]:
        """Active recurring entries whose weekday matches the date."""
        weekday = (day.weekday() + 1) % 7  # date.weekday(): Monday = 0
        return tuple(
            entry
            for entry in self.recurring_availability
            if entry.is_active and entry.day_of_week == weekday
        )

    def with_changes(self, **changes: object) -> "CoachAvailability":
        return replace(self, **changes)

    def with_override(self, override: DateOverride) -> "CoachAvailability":
        """Add an override, replacing any existing one for the same date."""
        kept = tuple(o for o in self.date_overrides if o.date != override.date)
        return replace(self, date_overrides=tuple(sorted(kept + (override,), key=lambda o: o.date)))

    def without_override(self, day: date) -> "CoachAvailability":
        return replace(self, date_overrides=tuple(o for o in self.date_overrides if o.date != day))


@dataclass(frozen=True)
class BusyInterval:
    """A session taken from the session store; never mutated by the engine."""

    start: datetime
    end: datetime
    status: SessionStatus
    session_id: Optional[str] = None


@dataclass(frozen=True)
class AvailableSlot:
    start: datetime
    end: datetime
    is_available: bool = True
    conflict_reason: Optional[SlotConflictReason] = None

    @property
    def duration(self) -> int:
        return int((self.end - self.start) / timedelta(minutes=1))

    def mark_unavailable(self, reason: SlotConflictReason) -> "AvailableSlot":
        """Return a copy flagged with reason; an existing reason is kept."""
        if not self.is_available:
            return self
        return replace(self, is_available=False, conflict_reason=reason)


@dataclass(frozen=True)
class AvailabilityStatus:
    is_currently_available: bool
    current_session_end: Optional[datetime] = None
    next_available_slot: Optional[datetime] = None
