import re

# 24-hour "HH:mm"; "24:00" is accepted only as a window end
_WALL_CLOCK_RE = re.compile(r"^([0-1]?[0-9]|2[0-3]):([0-5][0-9])$")
END_OF_DAY = "24:00"
MINUTES_PER_DAY = 24 * 60


def is_wall_clock(value: object, *, allow_end_of_day: bool = False) -> bool:
    """Return True if value is a valid "HH:mm" string."""
    if not isinstance(value, str):
        return False
    if allow_end_of_day and value == END_OF_DAY:
        return True
    return _WALL_CLOCK_RE.match(value) is not None


def wall_clock_to_minutes(value: str) -> int:
    """Parse "HH:mm" into minutes after local midnight ("24:00" -> 1440)."""
    if value == END_OF_DAY:
        return MINUTES_PER_DAY
    match = _WALL_CLOCK_RE.match(value)
    if match is None:
        raise ValueError(f"Invalid time format: {value!r} (expected HH:mm)")
    return int(match.group(1)) * 60 + int(match.group(2))


def minutes_to_wall_clock(minutes: int) -> str:
    """Always return zero-padded HH:mm"""
    hours, mins = divmod(minutes, 60)
    return f"{hours:02d}:{mins:02d}"
