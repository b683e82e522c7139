# backend/coachbook/models/coach_availability.py
"""
Coach availability model.

One row per coach. Recurring windows, date overrides and buffer settings
are stored as JSON documents on the row so that every profile change is a
single-row write guarded by the ``version`` column.
"""

from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String
from sqlalchemy.sql import func

from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class CoachAvailabilityRecord(Base):
    __tablename__ = "coach_availability"

    coach_id = Column(String(64), primary_key=True)
    timezone = Column(String(64), nullable=False, default="UTC")

    # [{"day_of_week": 1, "start_time": "09:00", "end_time": "17:00", "is_active": true}, ...]
    recurring_availability = Column(JSON, nullable=False, default=list)
    # [{"date": "2026-10-19", "is_available": false, "reason": "vacation", "time_slots": []}, ...]
    date_overrides = Column(JSON, nullable=False, default=list)
    # {"before_session": 0, "after_session": 0, "between_sessions": 0}
    buffer_settings = Column(JSON, nullable=False, default=dict)

    default_session_duration = Column(Integer, nullable=False, default=60)
    allowed_durations = Column(JSON, nullable=False, default=list)
    advance_booking_days = Column(Integer, nullable=False, default=30)
    last_minute_booking_hours = Column(Integer, nullable=False, default=24)
    auto_accept_bookings = Column(Boolean, nullable=False, default=False)
    require_approval = Column(Boolean, nullable=False, default=True)

    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc, onupdate=_now_utc)

    def __repr__(self) -> str:
        return f"<CoachAvailabilityRecord coach={self.coach_id} version={self.version}>"
