from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Optional

import pytz

from coachbook.core.enums import SessionStatus
from coachbook.domain.availability import (
    BusyInterval,
    CoachAvailability,
    DateOverride,
    RecurringAvailability,
    TimeWindow,
)

# Mondays used by the fixed-date tests
MONDAY = date(2026, 10, 19)
# Asia/Jerusalem leaves DST at 02:00 on Sunday 2026-10-25
JERUSALEM_WINTER_MONDAY = date(2026, 10, 26)
JERUSALEM_SUMMER_MONDAY = date(2026, 10, 19)


def next_monday(today: date | None = None) -> date:
    """Return the next Monday strictly after today (or the provided date)."""
    current = today or date.today()
    days_ahead = (7 - current.weekday()) % 7
    if days_ahead == 0:
        days_ahead = 7
    return current + timedelta(days=days_ahead)


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=pytz.UTC)


def weekday_profile(coach_id: str = "coach-1", timezone: str = "UTC", **changes) -> CoachAvailability:
    """The seeded Mon-Fri 09:00-17:00 profile, with optional changes."""
    profile = CoachAvailability.default(coach_id, timezone)
    return profile.with_changes(**changes) if changes else profile


def monday_profile(
    timezone: str = "Asia/Jerusalem",
    start: str = "09:00",
    end: str = "12:00",
    coach_id: str = "coach-1",
    **changes,
) -> CoachAvailability:
    """A profile with a single Monday window."""
    return CoachAvailability(
        coach_id=coach_id,
        timezone=timezone,
        recurring_availability=(RecurringAvailability(1, start, end),),
        **changes,
    )


def blocked(day: date) -> DateOverride:
    return DateOverride(date=day, is_available=False)


def custom_hours(day: date, *windows: tuple[str, str]) -> DateOverride:
    return DateOverride(
        date=day,
        is_available=True,
        time_slots=tuple(TimeWindow(start, end) for start, end in windows),
    )


def busy(
    start: datetime,
    minutes: int = 60,
    status: SessionStatus = SessionStatus.CONFIRMED,
    session_id: Optional[str] = None,
) -> BusyInterval:
    return BusyInterval(start=start, end=start + timedelta(minutes=minutes), status=status, session_id=session_id)
