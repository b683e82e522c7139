# backend/coachbook/services/booking_window_validator.py
"""
Booking Window Validator for the availability engine

A slot is bookable only between the last-minute cutoff and the advance
booking limit:

    now + last_minute_booking_hours <= slot.start <= now + advance_booking_days

Slots outside that range are kept and flagged outside_window so preview
callers can explain an empty schedule.
"""

from datetime import datetime, timedelta
import logging
from typing import List, Sequence, Tuple

from ..core.enums import SlotConflictReason
from ..core.timezone_utils import ensure_utc
from ..domain.availability import AvailableSlot, CoachAvailability
from .base import BaseService

logger = logging.getLogger(__name__)


class BookingWindowValidator(BaseService):
    def __init__(self, profile: CoachAvailability) -> None:
        super().__init__()
        self.profile = profile

    def bounds(self, now: datetime) -> Tuple[datetime, datetime]:
        """Earliest and latest bookable slot start for the given instant."""
        now = ensure_utc(now)
        earliest = now + timedelta(hours=self.profile.last_minute_booking_hours)
        latest = now + timedelta(days=self.profile.advance_booking_days)
        return earliest, latest

    def is_within_window(self, slot: AvailableSlot, now: datetime) -> bool:
        earliest, latest = self.bounds(now)
        return earliest <= slot.start <= latest

    @BaseService.measure_operation("validate_booking_window")
    def validate(self, candidates: Sequence[AvailableSlot], now: datetime) -> List[AvailableSlot]:
        earliest, latest = self.bounds(now)
        return [
            slot
            if earliest <= slot.start <= latest
            else slot.mark_unavailable(SlotConflictReason.OUTSIDE_WINDOW)
            for slot in candidates
        ]
