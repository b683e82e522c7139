# backend/coachbook/services/buffer_resolver.py
"""
Buffer Resolver for the availability engine

Applies the coach's buffer policy to candidate slots:

- Every busy interval gets an exclusion zone reaching before_session
  ahead of its start and after_session past its end.
- Zones are merged and swept against the sorted candidates, so the cost is
  O(n log n + m log m) rather than n * m.
- Spacing is enforced left to right: an accepted slot blocks later
  candidates the way a booking would, keeping the larger of the buffers
  that apply between the two.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
from typing import Iterable, List, Optional, Sequence

from ..core.enums import SlotConflictReason
from ..domain.availability import AvailableSlot, BufferSettings, BusyInterval
from .base import BaseService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExclusionZone:
    """Half-open [start, end) span no candidate slot may intersect."""

    start: datetime
    end: datetime
    busy_end: datetime  # latest raw session end inside the zone

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    def intersects(self, start: datetime, end: datetime) -> bool:
        return start < self.end and end > self.start


class BufferResolver(BaseService):
    """Builds exclusion zones and applies them to candidate slots."""

    def __init__(self, buffer_settings: BufferSettings) -> None:
        super().__init__()
        self.buffer_settings = buffer_settings

    @property
    def lead(self) -> timedelta:
        return timedelta(minutes=self.buffer_settings.before_session)

    @property
    def trail(self) -> timedelta:
        return timedelta(minutes=self.buffer_settings.after_session)

    @property
    def padding(self) -> timedelta:
        """Furthest a zone reaches on either side; sizes session fetches."""
        return max(self.lead, self.trail)

    @property
    def spacing(self) -> timedelta:
        """Minimum gap after an accepted slot before the next one may start."""
        return max(timedelta(minutes=self.buffer_settings.between_sessions), self.lead, self.trail)

    def exclusion_zone(self, busy: BusyInterval) -> ExclusionZone:
        return ExclusionZone(start=busy.start - self.lead, end=busy.end + self.trail, busy_end=busy.end)

    def exclusion_zones(self, busy_intervals: Iterable[BusyInterval]) -> List[ExclusionZone]:
        """Sorted, disjoint zones for a set of busy intervals."""
        zones = sorted((self.exclusion_zone(busy) for busy in busy_intervals), key=lambda z: z.start)
        merged: List[ExclusionZone] = []
        for zone in zones:
            if merged and zone.start <= merged[-1].end:
                last = merged[-1]
                merged[-1] = ExclusionZone(
                    start=last.start,
                    end=max(last.end, zone.end),
                    busy_end=max(last.busy_end, zone.busy_end),
                )
            else:
                merged.append(zone)
        return merged

    def zone_at(self, zones: Sequence[ExclusionZone], instant: datetime) -> Optional[ExclusionZone]:
        """The zone containing an instant, if any."""
        for zone in zones:
            if zone.start > instant:
                break
            if zone.contains(instant):
                return zone
        return None

    @BaseService.measure_operation("apply_exclusion_zones")
    def apply_zones(
        self, candidates: Sequence[AvailableSlot], zones: Sequence[ExclusionZone]
    ) -> List[AvailableSlot]:
        """
        Mark every candidate that intersects a zone as booked.

        Args:
            candidates: Slots sorted by start
            zones: Output of exclusion_zones (sorted, disjoint)
        """
        result: List[AvailableSlot] = []
        index = 0
        for slot in candidates:
            # zones wholly before this slot are wholly before every later slot
            while index < len(zones) and zones[index].end <= slot.start:
                index += 1
            if index < len(zones) and zones[index].intersects(slot.start, slot.end):
                slot = slot.mark_unavailable(SlotConflictReason.BOOKED)
            result.append(slot)
        return result

    def enforce_spacing(self, candidates: Sequence[AvailableSlot]) -> List[AvailableSlot]:
        """
        Left-to-right acceptance of still-available slots.

        An accepted slot acts as a booked neighbour for the slots after it:
        the next accepted start must be at least ``spacing`` after its end.
        Slots it pushes out are reported as booked.
        """
        gap = self.spacing
        last_accepted: Optional[AvailableSlot] = None
        result: List[AvailableSlot] = []
        for slot in candidates:
            if slot.is_available:
                if last_accepted is not None and slot.start < last_accepted.end + gap:
                    slot = slot.mark_unavailable(SlotConflictReason.BOOKED)
                else:
                    last_accepted = slot
            result.append(slot)
        return result

    def resolve(
        self, candidates: Sequence[AvailableSlot], busy_intervals: Iterable[BusyInterval]
    ) -> List[AvailableSlot]:
        """Full buffer pass: booked-session zones first, then candidate spacing."""
        ordered = sorted(candidates, key=lambda slot: (slot.start, slot.end))
        return self.enforce_spacing(self.apply_zones(ordered, self.exclusion_zones(busy_intervals)))
