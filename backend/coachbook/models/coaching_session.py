# backend/coachbook/models/coaching_session.py
"""
Coaching session model.

Sessions are owned by the booking side of the platform; the availability
engine only reads their time span and status.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, String
import ulid

from ..core.enums import SessionStatus
from ..database import Base


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class CoachingSession(Base):
    __tablename__ = "coaching_sessions"

    id = Column(String(26), primary_key=True, default=lambda: str(ulid.ULID()))
    coach_id = Column(String(64), nullable=False)
    client_id = Column(String(64), nullable=True)
    start_at = Column(DateTime(timezone=True), nullable=False)
    end_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(String(20), nullable=False, default=SessionStatus.PENDING.value)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now_utc)

    __table_args__ = (Index("ix_coaching_sessions_coach_start", "coach_id", "start_at"),)

    def __repr__(self) -> str:
        return f"<CoachingSession {self.id} coach={self.coach_id} {self.status}>"
