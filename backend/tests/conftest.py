"""
Shared fixtures for the availability engine tests.

Repository and route tests run against a temporary SQLite file, so the
service can read profiles and sessions from separate threads;
service tests use the in-memory stores in tests.utils.fake_stores.
"""

from datetime import datetime, timedelta
import os
from typing import Callable, Iterator, Optional

os.environ.setdefault("ENVIRONMENT", "test")

from fastapi.testclient import TestClient  # noqa: E402
import pytest  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.engine import Engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from coachbook.api.dependencies.database import get_session_factory  # noqa: E402
from coachbook.core.enums import SessionStatus  # noqa: E402
from coachbook.database import Base  # noqa: E402
from coachbook.main import app  # noqa: E402

# Import models so Base.metadata is populated for create_all.
import coachbook.models  # noqa: E402,F401
from coachbook.models.coaching_session import CoachingSession  # noqa: E402
from coachbook.repositories.availability_profile_repository import (  # noqa: E402
    AvailabilityProfileRepository,
)
from coachbook.repositories.session_repository import SessionRepository  # noqa: E402
from tests.utils.fake_stores import InMemoryProfileStore, InMemorySessionStore  # noqa: E402


@pytest.fixture
def db_engine(tmp_path) -> Iterator[Engine]:
    engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'coachbook.db'}",
        future=True,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(db_engine: Engine) -> sessionmaker:
    return sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False, future=True)


@pytest.fixture
def profile_repository(session_factory: sessionmaker) -> AvailabilityProfileRepository:
    return AvailabilityProfileRepository(session_factory)


@pytest.fixture
def session_repository(session_factory: sessionmaker) -> SessionRepository:
    return SessionRepository(session_factory)


@pytest.fixture
def add_session(session_factory: sessionmaker) -> Callable[..., str]:
    """Insert a coaching session row and return its id."""

    def _add(
        coach_id: str,
        start: datetime,
        minutes: int = 60,
        status: SessionStatus = SessionStatus.CONFIRMED,
        client_id: Optional[str] = "client-1",
    ) -> str:
        db = session_factory()
        try:
            row = CoachingSession(
                coach_id=coach_id,
                client_id=client_id,
                start_at=start,
                end_at=start + timedelta(minutes=minutes),
                status=status.value,
            )
            db.add(row)
            db.commit()
            return row.id
        finally:
            db.close()

    return _add


@pytest.fixture
def profile_store() -> InMemoryProfileStore:
    return InMemoryProfileStore()


@pytest.fixture
def session_store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def client(session_factory: sessionmaker) -> Iterator[TestClient]:
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
