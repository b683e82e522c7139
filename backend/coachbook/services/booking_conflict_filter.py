# backend/coachbook/services/booking_conflict_filter.py
"""
Booking Conflict Filter for the availability engine

Decides which session records block a coach's time and marks the
candidate slots that collide with them (after buffers) as booked.

Blocking statuses:
- confirmed and in-progress sessions always block
- pending sessions block only when the coach reviews bookings manually
"""

from datetime import datetime
import logging
from typing import FrozenSet, Iterable, List, Optional, Sequence

from ..core.enums import BookingApprovalMode, SessionStatus
from ..domain.availability import AvailableSlot, BusyInterval, CoachAvailability
from .base import BaseService
from .buffer_resolver import BufferResolver, ExclusionZone

logger = logging.getLogger(__name__)

ALWAYS_BLOCKING: FrozenSet[SessionStatus] = frozenset(
    {SessionStatus.CONFIRMED, SessionStatus.IN_PROGRESS}
)


def blocking_statuses(profile: CoachAvailability) -> FrozenSet[SessionStatus]:
    """Session statuses that occupy the coach's time under this profile."""
    if profile.approval_mode is BookingApprovalMode.MANUAL:
        return ALWAYS_BLOCKING | {SessionStatus.PENDING}
    return ALWAYS_BLOCKING


class BookingConflictFilter(BaseService):
    """Filters candidate slots against a coach's existing sessions."""

    def __init__(
        self,
        profile: CoachAvailability,
        buffer_resolver: Optional[BufferResolver] = None,
    ) -> None:
        super().__init__()
        self.profile = profile
        self.buffer_resolver = buffer_resolver or BufferResolver(profile.buffer_settings)
        self.statuses = blocking_statuses(profile)

    def blocking_intervals(
        self,
        busy_intervals: Iterable[BusyInterval],
        *,
        exclude_session_id: Optional[str] = None,
    ) -> List[BusyInterval]:
        """
        Busy intervals that block time, ignoring one session when rescheduling.

        Args:
            busy_intervals: Intervals from the session store
            exclude_session_id: Session being moved; its own slot must not conflict
        """
        blocking = [
            busy
            for busy in busy_intervals
            if busy.status in self.statuses
            and (exclude_session_id is None or busy.session_id != exclude_session_id)
        ]
        return sorted(blocking, key=lambda busy: busy.start)

    def exclusion_zones(
        self,
        busy_intervals: Iterable[BusyInterval],
        *,
        exclude_session_id: Optional[str] = None,
    ) -> List[ExclusionZone]:
        return self.buffer_resolver.exclusion_zones(
            self.blocking_intervals(busy_intervals, exclude_session_id=exclude_session_id)
        )

    @BaseService.measure_operation("filter_booking_conflicts")
    def filter(
        self,
        candidates: Sequence[AvailableSlot],
        busy_intervals: Iterable[BusyInterval],
        *,
        exclude_session_id: Optional[str] = None,
    ) -> List[AvailableSlot]:
        """
        Mark candidates that intersect a blocking session's exclusion zone.

        Conflicting slots are kept, flagged booked, so previews can explain them.

        Returns:
            Candidates in start order
        """
        ordered = sorted(candidates, key=lambda slot: (slot.start, slot.end))
        zones = self.exclusion_zones(busy_intervals, exclude_session_id=exclude_session_id)
        filtered = self.buffer_resolver.apply_zones(ordered, zones)

        booked = sum(1 for before, after in zip(ordered, filtered) if before.is_available and not after.is_available)
        if booked:
            self.logger.debug(f"Marked {booked} slots booked for coach {self.profile.coach_id}")
        return filtered

    def conflicts_at(
        self,
        busy_intervals: Iterable[BusyInterval],
        instant: datetime,
    ) -> List[BusyInterval]:
        """Blocking sessions whose exclusion zone contains the instant."""
        return [
            busy
            for busy in self.blocking_intervals(busy_intervals)
            if self.buffer_resolver.exclusion_zone(busy).contains(instant)
        ]
