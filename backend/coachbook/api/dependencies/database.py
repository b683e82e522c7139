# backend/coachbook/api/dependencies/database.py
"""
Database-related dependencies.
"""

from ...database import SessionLocal
from ...repositories.base_repository import SessionFactory


def get_session_factory() -> SessionFactory:
    """
    Get the session factory repositories open their sessions from.

    Repositories open one session per store call so that profile and
    session reads can run on separate threads.
    """
    return SessionLocal
