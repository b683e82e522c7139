# backend/coachbook/api/dependencies/__init__.py
"""
Central export point for all dependencies.
"""

from .database import get_session_factory
from .services import get_availability_service

__all__ = [
    # Database
    "get_session_factory",
    # Services
    "get_availability_service",
]
