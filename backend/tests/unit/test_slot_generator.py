# backend/tests/unit/test_slot_generator.py
"""
Unit tests for SlotGenerator.

Covers tiling, override precedence, DST handling, range limits and
cancellation. All dates are fixed so offsets are deterministic.
"""

from datetime import date, datetime, timedelta
import threading

import pytest
import pytz

from coachbook.core.enums import SlotConflictReason
from coachbook.core.exceptions import (
    GenerationCancelledException,
    RangeTooLargeException,
    ValidationException,
)
from coachbook.domain.availability import RecurringAvailability
from coachbook.services.slot_generator import SlotGenerator
from tests.utils.availability_builders import (
    JERUSALEM_SUMMER_MONDAY,
    JERUSALEM_WINTER_MONDAY,
    MONDAY,
    blocked,
    custom_hours,
    monday_profile,
    utc,
    weekday_profile,
)


@pytest.fixture
def generator() -> SlotGenerator:
    return SlotGenerator(max_range_days=90)


class TestWeeklyTiling:
    """Recurring windows are cut into fixed-length slots."""

    def test_weekday_yields_eight_hour_slots(self, generator):
        slots = generator.generate(weekday_profile(), MONDAY, MONDAY + timedelta(days=1), 60)

        assert len(slots) == 8
        assert slots[0].start == utc(2026, 10, 19, 9)
        assert slots[-1].end == utc(2026, 10, 19, 17)
        assert all(slot.duration == 60 for slot in slots)
        assert all(slot.is_available for slot in slots)

    def test_full_week_only_covers_weekdays(self, generator):
        slots = generator.generate(weekday_profile(), MONDAY, MONDAY + timedelta(days=7), 60)

        assert len(slots) == 40
        assert {slot.start.weekday() for slot in slots} == {0, 1, 2, 3, 4}

    def test_remainder_shorter_than_duration_is_dropped(self, generator):
        profile = monday_profile(timezone="UTC", start="09:00", end="10:30")

        slots = generator.generate(profile, MONDAY, MONDAY + timedelta(days=1), 60)

        assert [(s.start, s.end) for s in slots] == [(utc(2026, 10, 19, 9), utc(2026, 10, 19, 10))]

    def test_end_of_day_window(self, generator):
        profile = monday_profile(timezone="UTC", start="22:00", end="24:00")

        slots = generator.generate(profile, MONDAY, MONDAY + timedelta(days=1), 60)

        assert len(slots) == 2
        assert slots[-1].end == utc(2026, 10, 20, 0)

    def test_inactive_entries_are_ignored(self, generator):
        profile = weekday_profile(
            recurring_availability=(RecurringAvailability(1, "09:00", "17:00", is_active=False),)
        )

        assert generator.generate(profile, MONDAY, MONDAY + timedelta(days=1), 60) == []

    def test_output_is_sorted_across_windows(self, generator):
        profile = weekday_profile(
            recurring_availability=(
                RecurringAvailability(1, "14:00", "16:00"),
                RecurringAvailability(1, "08:00", "10:00"),
            )
        )

        slots = generator.generate(profile, MONDAY, MONDAY + timedelta(days=1), 60)

        assert [slot.start.hour for slot in slots] == [8, 9, 14, 15]

    def test_generation_is_repeatable(self, generator):
        profile = weekday_profile(timezone="Europe/London")

        first = generator.generate(profile, MONDAY, MONDAY + timedelta(days=14), 45)
        second = generator.generate(profile, MONDAY, MONDAY + timedelta(days=14), 45)

        assert first == second


class TestOverrides:
    def test_unavailable_override_blocks_the_day(self, generator):
        profile = weekday_profile(date_overrides=(blocked(MONDAY),))

        slots = generator.generate(profile, MONDAY, MONDAY + timedelta(days=2), 60)

        assert len(slots) == 8
        assert all(slot.start.date() == MONDAY + timedelta(days=1) for slot in slots)

    def test_blocked_day_preview_marks_slots(self, generator):
        profile = weekday_profile(date_overrides=(blocked(MONDAY),))

        slots = generator.generate(
            profile, MONDAY, MONDAY + timedelta(days=1), 60, include_blocked=True
        )

        assert len(slots) == 8
        assert all(not slot.is_available for slot in slots)
        assert {slot.conflict_reason for slot in slots} == {SlotConflictReason.OVERRIDE_BLOCKED}

    def test_custom_hours_replace_recurring_windows(self, generator):
        profile = weekday_profile(date_overrides=(custom_hours(MONDAY, ("13:00", "14:00")),))

        slots = generator.generate(profile, MONDAY, MONDAY + timedelta(days=1), 60)

        assert [(s.start, s.end) for s in slots] == [(utc(2026, 10, 19, 13), utc(2026, 10, 19, 14))]

    def test_custom_hours_on_a_day_without_recurring_rule(self, generator):
        sunday = MONDAY - timedelta(days=1)
        profile = weekday_profile(date_overrides=(custom_hours(sunday, ("10:00", "12:00")),))

        slots = generator.generate(profile, sunday, MONDAY, 30)

        assert len(slots) == 4


class TestTimezones:
    def test_scenario_monday_morning_in_jerusalem(self, generator):
        profile = monday_profile(last_minute_booking_hours=1)

        slots = generator.generate(
            profile, JERUSALEM_SUMMER_MONDAY, JERUSALEM_SUMMER_MONDAY + timedelta(days=1), 60
        )

        # IDT, UTC+3
        assert [s.start for s in slots] == [
            utc(2026, 10, 19, 6),
            utc(2026, 10, 19, 7),
            utc(2026, 10, 19, 8),
        ]

    def test_offset_changes_after_dst_ends(self, generator):
        profile = monday_profile()

        slots = generator.generate(
            profile, JERUSALEM_SUMMER_MONDAY, JERUSALEM_WINTER_MONDAY + timedelta(days=1), 60
        )

        winter = [s for s in slots if s.start.date() == JERUSALEM_WINTER_MONDAY]
        # IST, UTC+2
        assert [s.start for s in winter] == [
            utc(2026, 10, 26, 7),
            utc(2026, 10, 26, 8),
            utc(2026, 10, 26, 9),
        ]

    def test_scenario_override_replaces_jerusalem_window(self, generator):
        profile = monday_profile(
            date_overrides=(custom_hours(JERUSALEM_SUMMER_MONDAY, ("13:00", "14:00")),)
        )

        slots = generator.generate(
            profile, JERUSALEM_SUMMER_MONDAY, JERUSALEM_SUMMER_MONDAY + timedelta(days=1), 60
        )

        assert [(s.start, s.end) for s in slots] == [(utc(2026, 10, 19, 10), utc(2026, 10, 19, 11))]

    def test_spring_forward_gap_drops_missing_slots(self, generator):
        # Clocks jump 02:00 -> 03:00 on Friday 2026-03-27
        friday = date(2026, 3, 27)
        profile = weekday_profile(
            timezone="Asia/Jerusalem",
            recurring_availability=(RecurringAvailability(5, "01:00", "04:00"),),
        )

        slots = generator.generate(profile, friday, friday + timedelta(days=1), 60)

        assert [(s.start, s.end) for s in slots] == [(utc(2026, 3, 27, 0), utc(2026, 3, 27, 1))]

    def test_fall_back_drops_straddling_slot(self, generator):
        # 01:00-02:00 happens twice on Sunday 2026-10-25
        sunday = date(2026, 10, 25)
        profile = weekday_profile(
            timezone="Asia/Jerusalem",
            recurring_availability=(RecurringAvailability(0, "00:00", "03:00"),),
        )

        slots = generator.generate(profile, sunday, sunday + timedelta(days=1), 60)

        assert [s.start for s in slots] == [utc(2026, 10, 24, 21), utc(2026, 10, 25, 0)]
        assert all(s.end - s.start == timedelta(minutes=60) for s in slots)

    def test_datetime_bounds_use_the_local_day(self, generator):
        profile = weekday_profile(timezone="America/New_York")
        # 02:00 UTC on Tuesday is still Monday evening in New York
        start = utc(2026, 10, 20, 2)
        end = utc(2026, 10, 20, 3)

        slots = generator.generate(profile, start, end, 60)

        local_days = {s.start.astimezone(pytz.timezone("America/New_York")).date() for s in slots}
        assert local_days == {MONDAY}
        assert len(slots) == 8


class TestRangeAndInputValidation:
    def test_duration_must_be_allowed(self, generator):
        with pytest.raises(ValidationException) as exc_info:
            generator.generate(weekday_profile(), MONDAY, MONDAY + timedelta(days=1), 25)

        assert exc_info.value.details["field"] == "duration"

    def test_empty_range_is_rejected(self, generator):
        with pytest.raises(ValidationException):
            generator.generate(weekday_profile(), MONDAY, MONDAY, 60)

    def test_range_wider_than_cap_is_rejected(self):
        generator = SlotGenerator(max_range_days=7)

        with pytest.raises(RangeTooLargeException) as exc_info:
            generator.generate(weekday_profile(), MONDAY, MONDAY + timedelta(days=8), 60)

        assert exc_info.value.details["max_days"] == 7
        assert exc_info.value.details["requested_days"] == 8

    def test_range_at_cap_is_allowed(self):
        generator = SlotGenerator(max_range_days=7)

        slots = generator.generate(weekday_profile(), MONDAY, MONDAY + timedelta(days=7), 60)

        assert len(slots) == 40

    def test_invalid_profile_is_rejected(self, generator):
        profile = weekday_profile(
            recurring_availability=(
                RecurringAvailability(1, "09:00", "11:00"),
                RecurringAvailability(1, "10:00", "12:00"),
            )
        )

        with pytest.raises(ValidationException):
            generator.generate(profile, MONDAY, MONDAY + timedelta(days=1), 60)


class TestCancellation:
    def test_cancelled_before_start(self, generator):
        event = threading.Event()
        event.set()

        with pytest.raises(GenerationCancelledException) as exc_info:
            generator.generate(
                weekday_profile(), MONDAY, MONDAY + timedelta(days=7), 60, cancel_event=event
            )

        assert exc_info.value.details["completed_days"] == 0

    def test_cancelled_mid_range_returns_nothing(self, generator, monkeypatch):
        event = threading.Event()
        original = generator.generate_day
        calls = []

        def generate_then_cancel(*args, **kwargs):
            calls.append(args[2])
            if len(calls) == 2:
                event.set()
            return original(*args, **kwargs)

        monkeypatch.setattr(generator, "generate_day", generate_then_cancel)

        with pytest.raises(GenerationCancelledException) as exc_info:
            generator.generate(
                weekday_profile(), MONDAY, MONDAY + timedelta(days=7), 60, cancel_event=event
            )

        assert exc_info.value.details["completed_days"] == 2

    def test_unset_event_does_not_interfere(self, generator):
        slots = generator.generate(
            weekday_profile(), MONDAY, MONDAY + timedelta(days=1), 60, cancel_event=threading.Event()
        )

        assert len(slots) == 8
