# backend/coachbook/services/availability_service.py
"""
Availability Service for the coaching platform

Orchestrates the availability engine for one coach at a time:

- Profile lifecycle: created with defaults on first access, then changed
  only through versioned whole-field or single-override writes
- Slot listing: fetch profile and sessions, then
  generate -> booking conflicts -> booking window -> session spacing
- Single-slot checks and the live status probe

The pure stages never touch a store. This service is the only place that
reads stores, and the only place that retries a failed store read.
"""

import asyncio
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
import logging
import threading
import time as time_module
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, TypeVar

import pytz

from ..core.config import Settings, settings as default_settings
from ..core.enums import SessionStatus
from ..core.exceptions import ExternalStoreException, ValidationException
from ..core.timezone_utils import ensure_utc, get_zone, local_date_of, start_of_local_day
from ..domain.availability import (
    AvailabilityStatus,
    AvailableSlot,
    BufferSettings,
    BusyInterval,
    CoachAvailability,
    DateOverride,
    RecurringAvailability,
)
from ..domain.validation import validate_override, validate_profile
from ..monitoring.prometheus_metrics import prometheus_metrics
from ..repositories.base_repository import IProfileStore, ISessionStore
from .availability_status_service import AvailabilityStatusService
from .base import BaseService
from .booking_conflict_filter import BookingConflictFilter
from .booking_window_validator import BookingWindowValidator
from .slot_generator import RangeBound, SlotGenerator

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Statuses that can block under some approval mode; the filter narrows per profile
FETCH_STATUSES = (SessionStatus.CONFIRMED, SessionStatus.IN_PROGRESS, SessionStatus.PENDING)

# Session fetch margin while the profile timezone is still unknown
FETCH_MARGIN = timedelta(days=1)

NO_AVAILABILITY = "no_availability"

UPDATABLE_SETTINGS = frozenset(
    {
        "timezone",
        "buffer_settings",
        "default_session_duration",
        "allowed_durations",
        "advance_booking_days",
        "last_minute_booking_hours",
        "auto_accept_bookings",
        "require_approval",
    }
)


@dataclass(frozen=True)
class SlotListing:
    """Slots for a range plus the counts shown in the booking UI."""

    coach_id: str
    timezone: str
    duration: int
    slots: Tuple[AvailableSlot, ...]

    @property
    def total_slots(self) -> int:
        return len(self.slots)

    @property
    def available_slots(self) -> int:
        return sum(1 for slot in self.slots if slot.is_available)


@dataclass(frozen=True)
class SlotCheck:
    is_available: bool
    reason: Optional[str] = None


class AvailabilityService(BaseService):
    """
    Service layer for coach availability.

    Stores are injected; the engine stages are created per call from the
    profile snapshot so nothing coach-specific outlives a request.
    """

    def __init__(
        self,
        profile_store: IProfileStore,
        session_store: ISessionStore,
        config: Optional[Settings] = None,
        slot_generator: Optional[SlotGenerator] = None,
        status_service: Optional[AvailabilityStatusService] = None,
    ) -> None:
        super().__init__()
        self.profile_store = profile_store
        self.session_store = session_store
        self.config = config or default_settings
        self.slot_generator = slot_generator or SlotGenerator(self.config.max_range_days)
        self.status_service = status_service or AvailabilityStatusService(self.slot_generator)

    # ----- store access -----

    def _call_store(self, operation: str, func: Callable[..., T], *args: Any) -> T:
        """Run a store read, retrying ExternalStoreException a bounded number of times."""
        attempts = self.config.store_retry_attempts
        for attempt in range(1, attempts + 1):
            try:
                return func(*args)
            except ExternalStoreException:
                if attempt >= attempts:
                    self.logger.error(f"Store operation {operation} failed after {attempts} attempts")
                    raise
                prometheus_metrics.record_store_retry(operation)
                self.logger.warning(
                    f"Store operation {operation} failed (attempt {attempt}/{attempts}), retrying"
                )
                time_module.sleep(self.config.store_retry_backoff_seconds)
        raise ExternalStoreException(operation)

    def _load_profile(self, coach_id: str) -> CoachAvailability:
        profile = self._call_store("get_profile", self.profile_store.get_profile, coach_id)
        if profile is not None:
            return profile

        seeded = CoachAvailability.default(coach_id, self.config.default_timezone)
        self.logger.info(f"Seeding default availability profile for coach {coach_id}")
        return self.profile_store.create_profile(seeded)

    def _load_busy(
        self, coach_id: str, range_start: datetime, range_end: datetime
    ) -> List[BusyInterval]:
        return self._call_store(
            "list_busy_intervals",
            self.session_store.list_busy_intervals,
            coach_id,
            range_start,
            range_end,
            FETCH_STATUSES,
        )

    async def _fetch(
        self, coach_id: str, range_start: datetime, range_end: datetime
    ) -> Tuple[CoachAvailability, List[BusyInterval]]:
        """Profile and sessions, read concurrently. Either failure fails the fetch."""
        profile, busy = await asyncio.gather(
            asyncio.to_thread(self._load_profile, coach_id),
            asyncio.to_thread(self._load_busy, coach_id, range_start, range_end),
        )
        return profile, busy

    # ----- profile lifecycle -----

    @BaseService.measure_operation("get_or_create_profile")
    def get_or_create_profile(self, coach_id: str) -> CoachAvailability:
        """
        Get a coach's profile, creating the default one on first access.

        Returns:
            The stored profile snapshot
        """
        return self._load_profile(coach_id)

    @BaseService.measure_operation("replace_recurring")
    def replace_recurring(
        self,
        coach_id: str,
        entries: Sequence[RecurringAvailability],
        expected_version: int,
    ) -> CoachAvailability:
        """
        Replace the whole weekly schedule.

        Raises:
            ValidationException: Overlapping or malformed entries
            VersionConflictException: The profile changed since expected_version
        """
        current = self._load_profile(coach_id)
        updated = validate_profile(current.with_changes(recurring_availability=tuple(entries)))
        saved = self.profile_store.save_profile(coach_id, updated, expected_version)
        self.log_operation("replace_recurring", coach_id=coach_id, entries=len(entries))
        return saved

    @BaseService.measure_operation("add_override")
    def add_override(
        self,
        coach_id: str,
        override: DateOverride,
        expected_version: Optional[int] = None,
    ) -> CoachAvailability:
        """Add an override for a date, replacing any existing one for that date."""
        validate_override(override)
        current = self._load_profile(coach_id)
        validate_profile(current.with_override(override))
        saved = self.profile_store.add_override(coach_id, override, expected_version)
        self.log_operation("add_override", coach_id=coach_id, date=override.date.isoformat())
        return saved

    @BaseService.measure_operation("remove_override")
    def remove_override(
        self, coach_id: str, day: date, expected_version: Optional[int] = None
    ) -> CoachAvailability:
        self._load_profile(coach_id)
        saved = self.profile_store.remove_override(coach_id, day, expected_version)
        self.log_operation("remove_override", coach_id=coach_id, date=day.isoformat())
        return saved

    @BaseService.measure_operation("update_settings")
    def update_settings(
        self,
        coach_id: str,
        changes: Mapping[str, Any],
        expected_version: int,
    ) -> CoachAvailability:
        """
        Update scalar settings and buffers.

        Args:
            coach_id: Coach to update
            changes: Subset of UPDATABLE_SETTINGS; buffer_settings may be a mapping
            expected_version: Version the caller last read

        Raises:
            ValidationException: Unknown field or invalid value
            VersionConflictException: The profile changed since expected_version
        """
        unknown = sorted(set(changes) - UPDATABLE_SETTINGS)
        if unknown:
            raise ValidationException(
                f"Unknown settings: {', '.join(unknown)}",
                field="settings",
                details={"unknown_fields": unknown},
            )

        values: Dict[str, Any] = dict(changes)
        if isinstance(values.get("buffer_settings"), Mapping):
            values["buffer_settings"] = BufferSettings(**values["buffer_settings"])
        if "allowed_durations" in values:
            values["allowed_durations"] = tuple(values["allowed_durations"])

        current = self._load_profile(coach_id)
        updated = validate_profile(current.with_changes(**values))
        if updated.auto_accept_bookings and updated.require_approval:
            self.logger.warning(
                f"Coach {coach_id} has both auto_accept_bookings and require_approval set; "
                "manual approval takes precedence"
            )

        saved = self.profile_store.save_profile(coach_id, updated, expected_version)
        self.log_operation("update_settings", coach_id=coach_id, fields=sorted(values))
        return saved

    # ----- slot queries -----

    @BaseService.measure_operation("get_available_slots")
    async def get_available_slots(
        self,
        coach_id: str,
        range_start: RangeBound,
        range_end: RangeBound,
        duration: Optional[int] = None,
        *,
        now: Optional[datetime] = None,
        exclude_session_id: Optional[str] = None,
        include_unavailable: bool = True,
        cancel_event: Optional[threading.Event] = None,
    ) -> SlotListing:
        """
        Compute the bookable slots for a range.

        Args:
            coach_id: Coach whose slots to compute
            range_start: First local day (date or instant)
            range_end: Exclusive end (date or instant)
            duration: Session length; defaults to the profile's default duration
            now: Reference instant for the booking window (default: current time)
            exclude_session_id: Session being rescheduled, ignored as a conflict
            include_unavailable: Keep unavailable slots (with reasons) in the result,
                including the recurring slots of override-blocked days
            cancel_event: Stops generation between days when set

        Returns:
            SlotListing ordered by start
        """
        now = ensure_utc(now) if now else datetime.now(pytz.UTC)
        fetch_start, fetch_end = self._approximate_utc_span(range_start, range_end)
        profile, busy = await self._fetch(coach_id, fetch_start - FETCH_MARGIN, fetch_end + FETCH_MARGIN)

        needed_start, needed_end = self._required_busy_span(profile, range_start, range_end)
        if needed_start < fetch_start - FETCH_MARGIN or needed_end > fetch_end + FETCH_MARGIN:
            # buffers wider than the margin; read the exact span
            busy = await asyncio.to_thread(self._load_busy, coach_id, needed_start, needed_end)

        duration = duration or profile.default_session_duration
        slots = self._run_pipeline(
            profile,
            busy,
            range_start,
            range_end,
            duration,
            now,
            exclude_session_id=exclude_session_id,
            include_blocked=include_unavailable,
            cancel_event=cancel_event,
        )
        self._record_outcomes(slots)

        if not include_unavailable:
            slots = [slot for slot in slots if slot.is_available]
        return SlotListing(
            coach_id=coach_id, timezone=profile.timezone, duration=duration, slots=tuple(slots)
        )

    @BaseService.measure_operation("check_slot")
    async def check_slot(
        self,
        coach_id: str,
        start: datetime,
        duration: Optional[int] = None,
        exclude_session_id: Optional[str] = None,
        *,
        now: Optional[datetime] = None,
    ) -> SlotCheck:
        """
        Check whether one specific slot can be booked.

        A start that does not line up with a generated slot reports
        no_availability; otherwise the slot's conflict reason is returned.
        """
        start = ensure_utc(start)
        now = ensure_utc(now) if now else datetime.now(pytz.UTC)
        profile, busy = await self._fetch(coach_id, start - FETCH_MARGIN, start + 2 * FETCH_MARGIN)

        tz = get_zone(profile.timezone)
        day = local_date_of(start, tz)
        needed_start, needed_end = self._required_busy_span(profile, day, day + timedelta(days=1))
        if needed_start < start - FETCH_MARGIN or needed_end > start + 2 * FETCH_MARGIN:
            busy = await asyncio.to_thread(self._load_busy, coach_id, needed_start, needed_end)

        duration = duration or profile.default_session_duration
        slots = self._run_pipeline(
            profile,
            busy,
            day,
            day + timedelta(days=1),
            duration,
            now,
            exclude_session_id=exclude_session_id,
            include_blocked=True,
        )
        match = next((slot for slot in slots if slot.start == start), None)
        if match is None:
            return SlotCheck(is_available=False, reason=NO_AVAILABILITY)
        if match.is_available:
            return SlotCheck(is_available=True)
        return SlotCheck(is_available=False, reason=match.conflict_reason.value)

    @BaseService.measure_operation("get_status")
    async def get_status(self, coach_id: str, now: Optional[datetime] = None) -> AvailabilityStatus:
        """Live status: available now, current session end, next bookable slot."""
        now = ensure_utc(now) if now else datetime.now(pytz.UTC)
        profile = await asyncio.to_thread(self._load_profile, coach_id)

        padding = BookingConflictFilter(profile).buffer_resolver.padding
        busy = await asyncio.to_thread(
            self._load_busy,
            coach_id,
            now - padding - FETCH_MARGIN,
            now + timedelta(days=profile.advance_booking_days) + padding + 2 * FETCH_MARGIN,
        )
        return await asyncio.to_thread(self.status_service.compute_status, profile, busy, now)

    # ----- helpers -----

    def _run_pipeline(
        self,
        profile: CoachAvailability,
        busy: Sequence[BusyInterval],
        range_start: RangeBound,
        range_end: RangeBound,
        duration: int,
        now: datetime,
        *,
        exclude_session_id: Optional[str] = None,
        include_blocked: bool = False,
        cancel_event: Optional[threading.Event] = None,
    ) -> List[AvailableSlot]:
        conflict_filter = BookingConflictFilter(profile)
        slots = self.slot_generator.generate(
            profile,
            range_start,
            range_end,
            duration,
            cancel_event=cancel_event,
            include_blocked=include_blocked,
        )
        slots = conflict_filter.filter(slots, busy, exclude_session_id=exclude_session_id)
        slots = BookingWindowValidator(profile).validate(slots, now)
        return conflict_filter.buffer_resolver.enforce_spacing(slots)

    @staticmethod
    def _approximate_utc_span(range_start: RangeBound, range_end: RangeBound) -> Tuple[datetime, datetime]:
        def as_utc(bound: RangeBound) -> datetime:
            if isinstance(bound, datetime):
                return ensure_utc(bound)
            return datetime.combine(bound, time.min, tzinfo=pytz.UTC)

        start, end = as_utc(range_start), as_utc(range_end)
        if isinstance(range_end, datetime):
            # a non-midnight end includes its whole local day
            end += timedelta(days=1)
        return start, end

    def _required_busy_span(
        self, profile: CoachAvailability, range_start: RangeBound, range_end: RangeBound
    ) -> Tuple[datetime, datetime]:
        """UTC span whose sessions can affect slots on the range's local days."""
        tz = get_zone(profile.timezone)
        days = self.slot_generator.days_in_range(tz, range_start, range_end)
        padding = BookingConflictFilter(profile).buffer_resolver.padding
        return (
            start_of_local_day(tz, days[0]) - padding,
            start_of_local_day(tz, days[-1] + timedelta(days=1)) + padding,
        )

    @staticmethod
    def _record_outcomes(slots: Sequence[AvailableSlot]) -> None:
        counts: Dict[str, int] = {}
        for slot in slots:
            outcome = "available" if slot.is_available else slot.conflict_reason.value
            counts[outcome] = counts.get(outcome, 0) + 1
        for outcome, count in counts.items():
            prometheus_metrics.record_slot_outcome(outcome, count)
