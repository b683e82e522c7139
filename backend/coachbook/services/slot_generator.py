# backend/coachbook/services/slot_generator.py
"""
Slot Generator for the availability engine

Turns a coach profile, a date range and a session duration into raw
candidate slots. Buffers, bookings and the booking window are applied by
later stages; this stage only answers "which fixed-length pieces of the
coach's declared hours exist on these dates".

Per local calendar day:
    1. An unavailable override blocks the whole day
    2. An available override replaces the recurring windows for the day
    3. Otherwise the active recurring windows for that weekday apply
    4. Each window is tiled from its start; a short remainder is dropped
    5. Every piece is converted to UTC with the offset of its own date
"""

from datetime import date, datetime, time, timedelta
import logging
import threading
from typing import List, Optional, Sequence, Tuple, Union

import pytz

from ..core.config import settings
from ..core.enums import SlotConflictReason
from ..core.exceptions import (
    GenerationCancelledException,
    RangeTooLargeException,
    ValidationException,
)
from ..core.timezone_utils import ensure_utc, get_zone, localize_wall_clock
from ..domain.availability import AvailableSlot, CoachAvailability, TimeWindow
from ..domain.validation import validate_profile
from .base import BaseService

logger = logging.getLogger(__name__)

RangeBound = Union[date, datetime]


class SlotGenerator(BaseService):
    """Generates candidate slots from a profile's declared hours."""

    def __init__(self, max_range_days: Optional[int] = None) -> None:
        super().__init__()
        self.max_range_days = max_range_days or settings.max_range_days

    @BaseService.measure_operation("generate_slots")
    def generate(
        self,
        profile: CoachAvailability,
        range_start: RangeBound,
        range_end: RangeBound,
        duration_minutes: int,
        *,
        cancel_event: Optional[threading.Event] = None,
        include_blocked: bool = False,
    ) -> List[AvailableSlot]:
        """
        Generate candidate slots for every local day in [range_start, range_end).

        Args:
            profile: Coach availability snapshot
            range_start: First day (date, or instant whose local date is used)
            range_end: Exclusive end (date, or instant; a non-midnight instant includes its day)
            duration_minutes: Session length, must be one of profile.allowed_durations
            cancel_event: Checked before each day; when set, generation stops
            include_blocked: Also emit the recurring slots of days blocked by an
                override, flagged override_blocked, for preview callers

        Returns:
            Slots sorted by start instant

        Raises:
            ValidationException: Unknown duration, invalid profile or empty range
            RangeTooLargeException: Range wider than max_range_days
            GenerationCancelledException: cancel_event was set mid-generation
        """
        validate_profile(profile)
        if duration_minutes not in profile.allowed_durations:
            raise ValidationException(
                f"Duration {duration_minutes} is not one of the allowed durations",
                field="duration",
                details={"allowed_durations": list(profile.allowed_durations)},
            )

        tz = get_zone(profile.timezone)
        days = self.days_in_range(tz, range_start, range_end)

        slots: List[AvailableSlot] = []
        for completed, day in enumerate(days):
            if cancel_event is not None and cancel_event.is_set():
                self.logger.info(
                    f"Slot generation for coach {profile.coach_id} cancelled after {completed} days"
                )
                raise GenerationCancelledException(completed_days=completed)
            slots.extend(
                self.generate_day(profile, tz, day, duration_minutes, include_blocked=include_blocked)
            )

        slots.sort(key=lambda slot: (slot.start, slot.end))
        return slots

    def days_in_range(
        self, tz: pytz.BaseTzInfo, range_start: RangeBound, range_end: RangeBound
    ) -> List[date]:
        """Local calendar days covered by the range, capped at max_range_days."""
        first = self._to_local_date(tz, range_start)
        last = self._to_local_date(tz, range_end)
        if isinstance(range_end, datetime) and self._to_local(tz, range_end).time() != time.min:
            last += timedelta(days=1)

        if last <= first:
            raise ValidationException("Range end must be after range start", field="range_end")

        span = (last - first).days
        if span > self.max_range_days:
            raise RangeTooLargeException(requested_days=span, max_days=self.max_range_days)
        return [first + timedelta(days=offset) for offset in range(span)]

    def windows_for_day(
        self, profile: CoachAvailability, day: date
    ) -> Tuple[Sequence[TimeWindow], bool]:
        """
        Resolve the windows that apply on a date.

        Returns:
            (windows, blocked) where blocked means an unavailable override
            applies and windows are the recurring ones it suppresses
        """
        override = profile.override_for(day)
        recurring = [entry.window for entry in profile.recurring_for(day)]
        if override is None:
            return recurring, False
        if not override.is_available:
            return recurring, True
        return list(override.time_slots), False

    def generate_day(
        self,
        profile: CoachAvailability,
        tz: pytz.BaseTzInfo,
        day: date,
        duration_minutes: int,
        *,
        include_blocked: bool = False,
    ) -> List[AvailableSlot]:
        """Slots for a single local day. Has no dependency on any other day."""
        windows, blocked = self.windows_for_day(profile, day)
        if blocked and not include_blocked:
            return []

        expected = timedelta(minutes=duration_minutes)
        slots: List[AvailableSlot] = []
        for window in windows:
            last_start = window.end_minutes - duration_minutes
            for start_minute in range(window.start_minutes, last_start + 1, duration_minutes):
                start = localize_wall_clock(tz, day, start_minute)
                end = localize_wall_clock(tz, day, start_minute + duration_minutes)
                # skipped wall-clock times and slots straddling a DST change
                if start is None or end is None or end - start != expected:
                    self.logger.debug(
                        f"Dropping slot at minute {start_minute} on {day} in {tz.zone}: "
                        "not representable across DST transition"
                    )
                    continue
                slot = AvailableSlot(start=start, end=end)
                if blocked:
                    slot = slot.mark_unavailable(SlotConflictReason.OVERRIDE_BLOCKED)
                slots.append(slot)
        return slots

    @staticmethod
    def _to_local(tz: pytz.BaseTzInfo, instant: datetime) -> datetime:
        return ensure_utc(instant).astimezone(tz)

    @classmethod
    def _to_local_date(cls, tz: pytz.BaseTzInfo, bound: RangeBound) -> date:
        if isinstance(bound, datetime):
            return cls._to_local(tz, bound).date()
        return bound
