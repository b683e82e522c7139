"""Strict schema baselines and the shared "HH:mm" field type."""

from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict

from ..utils.time_helpers import is_wall_clock, minutes_to_wall_clock, wall_clock_to_minutes


class StrictModel(BaseModel):
    """Neutral strict base for response DTOs."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class StrictRequestModel(StrictModel):
    """Request DTO base that always forbids unexpected fields."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, str_strip_whitespace=True)


def _normalize_wall_clock(value: str) -> str:
    if not is_wall_clock(value, allow_end_of_day=True):
        raise ValueError("Time must be in HH:mm format")
    # "9:00" -> "09:00"; "24:00" stays as is
    return minutes_to_wall_clock(wall_clock_to_minutes(value))


WallClock = Annotated[str, AfterValidator(_normalize_wall_clock)]
