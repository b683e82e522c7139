# backend/coachbook/repositories/availability_profile_repository.py
"""
Availability profile repository.

Maps the coach_availability row to the immutable CoachAvailability snapshot
and back. Writes use optimistic concurrency: every update is a conditional
``UPDATE ... WHERE version = :expected`` that bumps the version, so two
editors can never silently overwrite each other.
"""

from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from ..core.enums import OverrideReason
from ..core.exceptions import ProfileNotFoundException, VersionConflictException
from ..core.timezone_utils import ensure_utc
from ..domain.availability import (
    BufferSettings,
    CoachAvailability,
    DateOverride,
    RecurringAvailability,
    TimeWindow,
)
from ..models.coach_availability import CoachAvailabilityRecord
from .base_repository import BaseRepository, IProfileStore, SessionFactory

# read-modify-write attempts for override deltas without an expected version
OVERRIDE_WRITE_ATTEMPTS = 5


def _recurring_to_json(entries) -> List[Dict[str, Any]]:
    return [
        {
            "day_of_week": entry.day_of_week,
            "start_time": entry.start_time,
            "end_time": entry.end_time,
            "is_active": entry.is_active,
        }
        for entry in entries
    ]


def _override_to_json(override: DateOverride) -> Dict[str, Any]:
    return {
        "date": override.date.isoformat(),
        "is_available": override.is_available,
        "reason": override.reason.value if override.reason else None,
        "time_slots": [
            {"start_time": window.start_time, "end_time": window.end_time}
            for window in override.time_slots
        ],
    }


def _override_from_json(raw: Dict[str, Any]) -> DateOverride:
    reason = raw.get("reason")
    return DateOverride(
        date=date.fromisoformat(raw["date"]),
        is_available=bool(raw["is_available"]),
        reason=OverrideReason(reason) if reason else None,
        time_slots=tuple(
            TimeWindow(window["start_time"], window["end_time"])
            for window in raw.get("time_slots") or []
        ),
    )


def record_to_profile(record: CoachAvailabilityRecord) -> CoachAvailability:
    """Build a snapshot from a stored row."""
    buffers = record.buffer_settings or {}
    return CoachAvailability(
        coach_id=record.coach_id,
        timezone=record.timezone,
        recurring_availability=tuple(
            RecurringAvailability(
                day_of_week=int(raw["day_of_week"]),
                start_time=raw["start_time"],
                end_time=raw["end_time"],
                is_active=bool(raw.get("is_active", True)),
            )
            for raw in record.recurring_availability or []
        ),
        date_overrides=tuple(_override_from_json(raw) for raw in record.date_overrides or []),
        buffer_settings=BufferSettings(
            before_session=int(buffers.get("before_session", 0)),
            after_session=int(buffers.get("after_session", 0)),
            between_sessions=int(buffers.get("between_sessions", 0)),
        ),
        default_session_duration=record.default_session_duration,
        allowed_durations=tuple(record.allowed_durations or ()),
        advance_booking_days=record.advance_booking_days,
        last_minute_booking_hours=record.last_minute_booking_hours,
        auto_accept_bookings=record.auto_accept_bookings,
        require_approval=record.require_approval,
        version=record.version,
        updated_at=ensure_utc(record.updated_at) if record.updated_at else None,
    )


def profile_to_values(profile: CoachAvailability) -> Dict[str, Any]:
    """Column values for a snapshot, excluding the key and version."""
    return {
        "timezone": profile.timezone,
        "recurring_availability": _recurring_to_json(profile.recurring_availability),
        "date_overrides": [_override_to_json(o) for o in profile.date_overrides],
        "buffer_settings": {
            "before_session": profile.buffer_settings.before_session,
            "after_session": profile.buffer_settings.after_session,
            "between_sessions": profile.buffer_settings.between_sessions,
        },
        "default_session_duration": profile.default_session_duration,
        "allowed_durations": list(profile.allowed_durations),
        "advance_booking_days": profile.advance_booking_days,
        "last_minute_booking_hours": profile.last_minute_booking_hours,
        "auto_accept_bookings": profile.auto_accept_bookings,
        "require_approval": profile.require_approval,
    }


class AvailabilityProfileRepository(BaseRepository, IProfileStore):
    """SQLAlchemy implementation of the profile store."""

    def __init__(self, session_factory: SessionFactory):
        super().__init__(session_factory)

    def get_profile(self, coach_id: str) -> Optional[CoachAvailability]:
        with self.session_scope("get_profile") as db:
            record = db.get(CoachAvailabilityRecord, coach_id)
            return record_to_profile(record) if record else None

    def create_profile(self, profile: CoachAvailability) -> CoachAvailability:
        with self.session_scope("create_profile") as db:
            record = CoachAvailabilityRecord(
                coach_id=profile.coach_id,
                version=1,
                updated_at=datetime.now(timezone.utc),
                **profile_to_values(profile),
            )
            db.add(record)
            try:
                db.flush()
            except IntegrityError:
                # lost the race to another first-time reader
                db.rollback()
                existing = db.get(CoachAvailabilityRecord, profile.coach_id)
                if existing is None:
                    raise
                self.logger.debug(f"Profile for coach {profile.coach_id} created concurrently")
                return record_to_profile(existing)
            created = record_to_profile(record)
        self.logger.info(f"Created availability profile for coach {profile.coach_id}")
        return created

    def save_profile(
        self, coach_id: str, profile: CoachAvailability, expected_version: int
    ) -> CoachAvailability:
        with self.session_scope("save_profile") as db:
            stmt = (
                update(CoachAvailabilityRecord)
                .where(
                    CoachAvailabilityRecord.coach_id == coach_id,
                    CoachAvailabilityRecord.version == expected_version,
                )
                .values(
                    version=expected_version + 1,
                    updated_at=datetime.now(timezone.utc),
                    **profile_to_values(profile),
                )
                .execution_options(synchronize_session=False)
            )
            result = db.execute(stmt)
            if result.rowcount == 0:
                current = db.execute(
                    select(CoachAvailabilityRecord.version).where(
                        CoachAvailabilityRecord.coach_id == coach_id
                    )
                ).scalar_one_or_none()
                if current is None:
                    raise ProfileNotFoundException(coach_id)
                self.logger.info(
                    f"Version conflict saving coach {coach_id}: expected {expected_version}, found {current}"
                )
                raise VersionConflictException(coach_id, expected_version, current)

            db.expire_all()
            record = db.get(CoachAvailabilityRecord, coach_id)
            return record_to_profile(record)

    def add_override(
        self, coach_id: str, override: DateOverride, expected_version: Optional[int] = None
    ) -> CoachAvailability:
        return self._apply_delta(
            coach_id, lambda profile: profile.with_override(override), expected_version
        )

    def remove_override(
        self, coach_id: str, day: date, expected_version: Optional[int] = None
    ) -> CoachAvailability:
        return self._apply_delta(
            coach_id, lambda profile: profile.without_override(day), expected_version
        )

    def _apply_delta(self, coach_id, change, expected_version: Optional[int]) -> CoachAvailability:
        """
        Read, change and conditionally write a profile.

        With an explicit expected_version a mismatch is reported to the
        caller. Without one the write is retried against the fresh version,
        since an override delta does not depend on the rest of the profile.
        """
        attempts = 1 if expected_version is not None else OVERRIDE_WRITE_ATTEMPTS
        for attempt in range(1, attempts + 1):
            current = self.get_profile(coach_id)
            if current is None:
                raise ProfileNotFoundException(coach_id)
            version = expected_version if expected_version is not None else current.version
            try:
                return self.save_profile(coach_id, change(current), version)
            except VersionConflictException:
                if attempt == attempts:
                    raise
                self.logger.debug(f"Retrying override write for coach {coach_id} (attempt {attempt})")
        raise VersionConflictException(coach_id, expected_version or 0, None)
