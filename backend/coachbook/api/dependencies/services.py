# backend/coachbook/api/dependencies/services.py
"""
Service layer dependencies for dependency injection.

This module provides factory functions that create service instances
with their required dependencies properly injected.
"""

import logging

from fastapi import Depends

from ...core.config import settings
from ...repositories.base_repository import SessionFactory
from ...repositories.factory import RepositoryFactory
from ...services.availability_service import AvailabilityService
from .database import get_session_factory

logger = logging.getLogger(__name__)


def get_availability_service(
    session_factory: SessionFactory = Depends(get_session_factory),
) -> AvailabilityService:
    """Get AvailabilityService backed by the SQL profile and session stores."""
    return AvailabilityService(
        profile_store=RepositoryFactory.create_profile_repository(session_factory),
        session_store=RepositoryFactory.create_session_repository(session_factory),
        config=settings,
    )
