# backend/coachbook/repositories/__init__.py
"""
Repository layer for the availability engine.

Key Components:
- IProfileStore / ISessionStore: Interfaces the services depend on
- AvailabilityProfileRepository: Versioned profile storage
- SessionRepository: Busy interval lookups
- RepositoryFactory: Factory for creating repository instances

Usage:
    from coachbook.repositories import RepositoryFactory

    profiles = RepositoryFactory.create_profile_repository(SessionLocal)
    profile = profiles.get_profile(coach_id)
"""

from .availability_profile_repository import AvailabilityProfileRepository
from .base_repository import BaseRepository, IProfileStore, ISessionStore
from .factory import RepositoryFactory
from .session_repository import SessionRepository

__all__ = [
    "AvailabilityProfileRepository",
    "BaseRepository",
    "IProfileStore",
    "ISessionStore",
    "RepositoryFactory",
    "SessionRepository",
]
