# backend/coachbook/core/enums.py
"""
Core enums for the coaching availability engine.

Values are the lowercase strings used on the wire and in stored JSON.
"""

from enum import Enum


class OverrideReason(str, Enum):
    """Why a coach overrode their regular hours on a date."""

    VACATION = "vacation"
    SICK = "sick"
    PERSONAL = "personal"
    TRAINING = "training"
    OTHER = "other"


class SlotConflictReason(str, Enum):
    """
    Why a generated slot is not bookable.

    Preview callers use these to explain an empty schedule.
    """

    BOOKED = "booked"
    OUTSIDE_WINDOW = "outside_window"
    OVERRIDE_BLOCKED = "override_blocked"


class SessionStatus(str, Enum):
    """Lifecycle states of a coaching session record."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


class BookingApprovalMode(str, Enum):
    """Whether new bookings are confirmed immediately or wait for the coach."""

    AUTO = "auto"
    MANUAL = "manual"
