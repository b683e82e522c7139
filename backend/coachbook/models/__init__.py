from .coach_availability import CoachAvailabilityRecord
from .coaching_session import CoachingSession

__all__ = ["CoachAvailabilityRecord", "CoachingSession"]
