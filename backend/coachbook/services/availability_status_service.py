# backend/coachbook/services/availability_status_service.py
"""
Availability Status Service for the availability engine

Derives the live status shown next to a coach's name from the same
primitives as slot listing:

- is the coach bookable at this instant
- when does the session they are in (or buffering around) end
- when is the next bookable slot
"""

from datetime import datetime, timedelta
import logging
import threading
from typing import List, Optional, Sequence

from ..core.timezone_utils import ensure_utc, get_zone, local_date_of
from ..domain.availability import AvailabilityStatus, AvailableSlot, BusyInterval, CoachAvailability
from .base import BaseService
from .booking_conflict_filter import BookingConflictFilter
from .booking_window_validator import BookingWindowValidator
from .slot_generator import SlotGenerator

logger = logging.getLogger(__name__)


class AvailabilityStatusService(BaseService):
    """Computes "available now" and "next available slot" for a coach."""

    def __init__(self, slot_generator: Optional[SlotGenerator] = None) -> None:
        super().__init__()
        self.slot_generator = slot_generator or SlotGenerator()

    @BaseService.measure_operation("compute_status")
    def compute_status(
        self,
        profile: CoachAvailability,
        busy_intervals: Sequence[BusyInterval],
        now: datetime,
        *,
        cancel_event: Optional[threading.Event] = None,
    ) -> AvailabilityStatus:
        """
        Compute the live availability status.

        Args:
            profile: Coach availability snapshot
            busy_intervals: Sessions covering now .. now + advance_booking_days
            now: Reference instant
            cancel_event: Forwarded to slot generation

        Returns:
            AvailabilityStatus; next_available_slot is None when nothing is
            bookable within the advance booking horizon
        """
        now = ensure_utc(now)
        conflict_filter = BookingConflictFilter(profile)

        active = conflict_filter.conflicts_at(busy_intervals, now)
        current_session_end = max((busy.end for busy in active), default=None)

        is_currently_available = not active and self._inside_generated_slot(
            profile, now, cancel_event
        )

        next_slot = self.find_next_available(
            profile, busy_intervals, now, conflict_filter=conflict_filter, cancel_event=cancel_event
        )
        return AvailabilityStatus(
            is_currently_available=is_currently_available,
            current_session_end=current_session_end,
            next_available_slot=next_slot.start if next_slot else None,
        )

    def find_next_available(
        self,
        profile: CoachAvailability,
        busy_intervals: Sequence[BusyInterval],
        now: datetime,
        *,
        conflict_filter: Optional[BookingConflictFilter] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> Optional[AvailableSlot]:
        """
        Earliest bookable slot starting strictly after now.

        Scans forward in pages no wider than the generator's range cap and
        stops at the advance booking horizon.
        """
        now = ensure_utc(now)
        conflict_filter = conflict_filter or BookingConflictFilter(profile)
        window_validator = BookingWindowValidator(profile)
        tz = get_zone(profile.timezone)

        cursor = local_date_of(now, tz)
        horizon = local_date_of(now + timedelta(days=profile.advance_booking_days), tz) + timedelta(days=1)
        page_days = timedelta(days=self.slot_generator.max_range_days)

        with self.measure_operation_context("scan_horizon"):
            while cursor < horizon:
                page_end = min(cursor + page_days, horizon)
                slots = self.slot_generator.generate(
                    profile,
                    cursor,
                    page_end,
                    profile.default_session_duration,
                    cancel_event=cancel_event,
                )
                slots = conflict_filter.filter(slots, busy_intervals)
                slots = window_validator.validate(slots, now)
                slots = conflict_filter.buffer_resolver.enforce_spacing(slots)
                for slot in slots:
                    if slot.is_available and slot.start > now:
                        return slot
                cursor = page_end
        return None

    def _inside_generated_slot(
        self,
        profile: CoachAvailability,
        now: datetime,
        cancel_event: Optional[threading.Event],
    ) -> bool:
        tz = get_zone(profile.timezone)
        today = local_date_of(now, tz)
        slots: List[AvailableSlot] = self.slot_generator.generate(
            profile,
            today,
            today + timedelta(days=1),
            profile.default_session_duration,
            cancel_event=cancel_event,
        )
        return any(slot.start <= now < slot.end for slot in slots)
