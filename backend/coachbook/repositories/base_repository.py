# backend/coachbook/repositories/base_repository.py
"""
Base Repository Pattern for the availability engine

Defines the two store interfaces the engine consumes and a SQLAlchemy base
class for implementing them. The engine only sees the interfaces, so the
persistence technology can change without touching slot computation.

Each repository call opens its own session from the injected factory, which
lets the service read the profile and the busy intervals concurrently.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import date, datetime
import logging
from typing import Callable, Collection, Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.enums import SessionStatus
from ..core.exceptions import ExternalStoreException
from ..domain.availability import BusyInterval, CoachAvailability, DateOverride

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], Session]


class IProfileStore(ABC):
    """Storage for coach availability profiles."""

    @abstractmethod
    def get_profile(self, coach_id: str) -> Optional[CoachAvailability]:
        """
        Retrieve a coach's profile.

        Returns:
            The profile snapshot, or None if the coach has none yet
        """

    @abstractmethod
    def create_profile(self, profile: CoachAvailability) -> CoachAvailability:
        """
        Insert a new profile at version 1.

        If another writer created the profile first, the stored one is returned.
        """

    @abstractmethod
    def save_profile(
        self, coach_id: str, profile: CoachAvailability, expected_version: int
    ) -> CoachAvailability:
        """
        Replace a profile if it is still at expected_version.

        Raises:
            ProfileNotFoundException: No profile for the coach
            VersionConflictException: The stored version moved on
        """

    @abstractmethod
    def add_override(
        self, coach_id: str, override: DateOverride, expected_version: Optional[int] = None
    ) -> CoachAvailability:
        """Atomically add or replace the override for override.date."""

    @abstractmethod
    def remove_override(
        self, coach_id: str, day: date, expected_version: Optional[int] = None
    ) -> CoachAvailability:
        """Atomically remove the override for a date (no-op if absent)."""


class ISessionStore(ABC):
    """Read access to the coach's booked sessions."""

    @abstractmethod
    def list_busy_intervals(
        self,
        coach_id: str,
        range_start: datetime,
        range_end: datetime,
        statuses: Collection[SessionStatus],
    ) -> List[BusyInterval]:
        """Sessions with one of the statuses that overlap [range_start, range_end)."""


class BaseRepository:
    """
    Concrete base for SQLAlchemy-backed stores.

    Attributes:
        session_factory: Callable returning a new SQLAlchemy session
    """

    def __init__(self, session_factory: SessionFactory):
        self.session_factory = session_factory
        self.logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def session_scope(self, operation: str) -> Iterator[Session]:
        """
        Open a session for one store operation.

        Commits on success and rolls back on any error. Database errors are
        reported as ExternalStoreException; domain exceptions pass through.
        """
        db = self.session_factory()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            self.logger.error(f"Store operation {operation} failed: {str(e)}")
            raise ExternalStoreException(operation) from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()
