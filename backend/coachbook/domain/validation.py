"""
Write-time validation for availability profiles.

Every error is collected with the path of the offending field so callers
get the full list in one response. Nothing is silently corrected:
overlapping windows are rejected rather than merged.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any, Dict, List, Sequence

import pytz

from ..core.exceptions import ValidationException
from ..utils.time_helpers import is_wall_clock
from .availability import BufferSettings, CoachAvailability, DateOverride, TimeWindow


class _ErrorCollector:
    def __init__(self) -> None:
        self.errors: List[Dict[str, Any]] = []

    def add(self, field: str, message: str, code: str = "invalid") -> None:
        self.errors.append({"field": field, "message": message, "code": code})

    def raise_if_any(self, message: str) -> None:
        if self.errors:
            raise ValidationException(message, errors=self.errors)


def _check_window(window: TimeWindow, field: str, errors: _ErrorCollector) -> bool:
    ok = True
    if not is_wall_clock(window.start_time):
        errors.add(f"{field}.start_time", f"Invalid time {window.start_time!r}, expected HH:mm", "time_format")
        ok = False
    if not is_wall_clock(window.end_time, allow_end_of_day=True):
        errors.add(f"{field}.end_time", f"Invalid time {window.end_time!r}, expected HH:mm", "time_format")
        ok = False
    if ok and window.end_minutes <= window.start_minutes:
        errors.add(f"{field}.end_time", "End time must be after start time", "time_order")
        ok = False
    return ok


def _check_no_overlap(
    windows: Sequence[tuple[str, TimeWindow]], scope: str, errors: _ErrorCollector
) -> None:
    ordered = sorted(windows, key=lambda item: item[1].start_minutes)
    for (_, previous), (field, current) in zip(ordered, ordered[1:]):
        if previous.overlaps(current):
            errors.add(
                field,
                f"Overlapping windows on {scope}: {current} conflicts with {previous}",
                "overlap",
            )


def check_recurring(profile: CoachAvailability, errors: _ErrorCollector) -> None:
    by_day: Dict[int, List[tuple[str, TimeWindow]]] = defaultdict(list)
    for index, entry in enumerate(profile.recurring_availability):
        field = f"recurring_availability[{index}]"
        if not isinstance(entry.day_of_week, int) or not 0 <= entry.day_of_week <= 6:
            errors.add(f"{field}.day_of_week", "Day of week must be 0-6", "day_of_week")
            continue
        if _check_window(entry.window, field, errors) and entry.is_active:
            by_day[entry.day_of_week].append((field, entry.window))
    for day, windows in by_day.items():
        _check_no_overlap(windows, f"day {day}", errors)


def check_override(override: DateOverride, field: str, errors: _ErrorCollector) -> None:
    if not override.is_available:
        if override.time_slots:
            errors.add(
                f"{field}.time_slots",
                "Time slots are only allowed when the date is marked available",
                "time_slots_not_allowed",
            )
        return
    valid: List[tuple[str, TimeWindow]] = []
    for index, window in enumerate(override.time_slots):
        slot_field = f"{field}.time_slots[{index}]"
        if _check_window(window, slot_field, errors):
            valid.append((slot_field, window))
    _check_no_overlap(valid, override.date.isoformat(), errors)


def check_buffers(buffers: BufferSettings, errors: _ErrorCollector) -> None:
    for name in ("before_session", "after_session", "between_sessions"):
        value = getattr(buffers, name)
        if not isinstance(value, int) or value < 0:
            errors.add(f"buffer_settings.{name}", "Buffer must be a whole number of minutes >= 0", "buffer")


def check_settings(profile: CoachAvailability, errors: _ErrorCollector) -> None:
    if profile.timezone not in pytz.all_timezones_set:
        errors.add("timezone", f"Unknown timezone: {profile.timezone}", "timezone")

    check_buffers(profile.buffer_settings, errors)

    if not profile.allowed_durations:
        errors.add("allowed_durations", "At least one session duration is required", "durations_empty")
    for index, duration in enumerate(profile.allowed_durations):
        if not isinstance(duration, int) or duration <= 0:
            errors.add(f"allowed_durations[{index}]", "Durations must be positive minutes", "duration")
    if profile.default_session_duration not in profile.allowed_durations:
        errors.add(
            "default_session_duration",
            "Default session duration must be one of the allowed durations",
            "duration_not_allowed",
        )

    if profile.advance_booking_days < 1:
        errors.add("advance_booking_days", "Advance booking window must be at least 1 day", "booking_window")
    if profile.last_minute_booking_hours < 0:
        errors.add("last_minute_booking_hours", "Last-minute cutoff cannot be negative", "booking_window")


def validate_profile(profile: CoachAvailability) -> CoachAvailability:
    """
    Validate a whole profile before it is written.

    Returns:
        The same profile, for chaining

    Raises:
        ValidationException: With one ``errors`` entry per invalid field
    """
    errors = _ErrorCollector()
    check_settings(profile, errors)
    check_recurring(profile, errors)

    seen_dates = set()
    for index, override in enumerate(profile.date_overrides):
        field = f"date_overrides[{index}]"
        if override.date in seen_dates:
            errors.add(f"{field}.date", f"Duplicate override for {override.date.isoformat()}", "duplicate_date")
        seen_dates.add(override.date)
        check_override(override, field, errors)

    errors.raise_if_any("Invalid availability profile")
    return profile


def validate_override(override: DateOverride) -> DateOverride:
    """Validate a single override delta before it is added."""
    errors = _ErrorCollector()
    check_override(override, "override", errors)
    errors.raise_if_any("Invalid date override")
    return override
