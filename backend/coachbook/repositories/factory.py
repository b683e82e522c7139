# backend/coachbook/repositories/factory.py
"""
Repository Factory

Provides centralized creation of repository instances so services and
route dependencies never construct stores directly.
"""

from typing import TYPE_CHECKING

from .base_repository import SessionFactory

# Avoid circular imports
if TYPE_CHECKING:
    from .availability_profile_repository import AvailabilityProfileRepository
    from .session_repository import SessionRepository


class RepositoryFactory:
    """Factory class for creating repository instances."""

    @staticmethod
    def create_profile_repository(session_factory: SessionFactory) -> "AvailabilityProfileRepository":
        """Create repository for availability profiles."""
        from .availability_profile_repository import AvailabilityProfileRepository

        return AvailabilityProfileRepository(session_factory)

    @staticmethod
    def create_session_repository(session_factory: SessionFactory) -> "SessionRepository":
        """Create repository for coaching session lookups."""
        from .session_repository import SessionRepository

        return SessionRepository(session_factory)
