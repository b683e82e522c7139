"""
Timezone utilities for the availability engine.

Profiles store wall-clock times in the coach's IANA timezone; everything
leaving the engine is an aware UTC datetime. All conversions go through
pytz so each instant gets the UTC offset in effect on its own date.
"""

from datetime import date, datetime, time, timedelta
import logging
from typing import Optional

import pytz

from .exceptions import ValidationException

logger = logging.getLogger(__name__)


def get_zone(name: str) -> pytz.BaseTzInfo:
    """
    Resolve an IANA timezone name.

    Raises:
        ValidationException: If the name is not a known timezone
    """
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise ValidationException(f"Unknown timezone: {name}", field="timezone")


def ensure_utc(dt: datetime) -> datetime:
    """Convert an aware datetime to UTC, assuming UTC for naive input."""
    if dt.tzinfo is None:
        return pytz.UTC.localize(dt)
    return dt.astimezone(pytz.UTC)


def localize_wall_clock(
    tz: pytz.BaseTzInfo, day: date, minutes: int
) -> Optional[datetime]:
    """
    Convert a wall-clock minute offset on a local date to a UTC instant.

    Ambiguous times (DST fall-back) resolve to the first occurrence.
    Times skipped by a DST spring-forward do not exist and return None.
    """
    days, minutes = divmod(minutes, 24 * 60)
    naive = datetime.combine(day + timedelta(days=days), time(minutes // 60, minutes % 60))
    try:
        local = tz.localize(naive, is_dst=None)
    except pytz.AmbiguousTimeError:
        local = tz.localize(naive, is_dst=True)
    except pytz.NonExistentTimeError:
        logger.debug(f"Wall-clock time {naive} does not exist in {tz.zone}")
        return None
    return local.astimezone(pytz.UTC)


def local_date_of(instant: datetime, tz: pytz.BaseTzInfo) -> date:
    """Return the calendar date an instant falls on in the given timezone."""
    return ensure_utc(instant).astimezone(tz).date()


def start_of_local_day(tz: pytz.BaseTzInfo, day: date) -> datetime:
    """First instant of a local date, in UTC."""
    local = tz.normalize(tz.localize(datetime.combine(day, time.min), is_dst=False))
    return local.astimezone(pytz.UTC)
