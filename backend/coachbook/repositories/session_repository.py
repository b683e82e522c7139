# backend/coachbook/repositories/session_repository.py
"""
Session Repository

Read-only access to coaching sessions for conflict checking. Only the time
span and status of each session leave this module.
"""

from datetime import datetime
from typing import Collection, List

from ..core.enums import SessionStatus
from ..core.timezone_utils import ensure_utc
from ..domain.availability import BusyInterval
from ..models.coaching_session import CoachingSession
from .base_repository import BaseRepository, ISessionStore, SessionFactory


class SessionRepository(BaseRepository, ISessionStore):
    def __init__(self, session_factory: SessionFactory):
        super().__init__(session_factory)

    def list_busy_intervals(
        self,
        coach_id: str,
        range_start: datetime,
        range_end: datetime,
        statuses: Collection[SessionStatus],
    ) -> List[BusyInterval]:
        """
        Get the sessions that overlap a UTC range.

        Args:
            coach_id: The coach whose sessions to read
            range_start: Inclusive start of the range
            range_end: Exclusive end of the range
            statuses: Only sessions in one of these statuses are returned

        Returns:
            Busy intervals ordered by start time
        """
        if not statuses:
            return []

        start_utc = ensure_utc(range_start)
        end_utc = ensure_utc(range_end)
        status_values = [SessionStatus(status).value for status in statuses]

        with self.session_scope("list_busy_intervals") as db:
            rows = (
                db.query(CoachingSession)
                .filter(
                    CoachingSession.coach_id == coach_id,
                    CoachingSession.start_at < end_utc,
                    CoachingSession.end_at > start_utc,
                    CoachingSession.status.in_(status_values),
                )
                .order_by(CoachingSession.start_at)
                .all()
            )
            intervals = [
                BusyInterval(
                    start=ensure_utc(row.start_at),
                    end=ensure_utc(row.end_at),
                    status=SessionStatus(row.status),
                    session_id=row.id,
                )
                for row in rows
            ]

        self.logger.debug(f"Found {len(intervals)} busy intervals for coach {coach_id}")
        return intervals
