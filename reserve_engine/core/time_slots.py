# reserve_engine/core/time_slots.py
"""
Wall-clock time arithmetic for reservation slots.

Times cross the engine boundary as zero-padded ``"HH:MM"`` strings and are
converted to minute offsets from midnight for every comparison. All
intervals are half-open ``[start, end)``.
"""

import re
from typing import List, NamedTuple, Tuple

MINUTES_PER_DAY = 24 * 60
DEFAULT_SLOT_INTERVAL_MINUTES = 30

TIME_PATTERN = re.compile(r"^([01][0-9]|2[0-3]):([0-5][0-9])$")


class InvalidTimeFormatError(ValueError):
    """Raised when a time string is not a strict two-digit ``HH:MM`` value."""

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Invalid time format: {value!r} (expected HH:MM)")


class InvalidDurationError(ValueError):
    """Raised when a duration cannot describe an interval within one day."""

    def __init__(self, minutes: object) -> None:
        self.minutes = minutes
        super().__init__(f"Invalid duration: {minutes!r} minutes")


class ParsedTime(NamedTuple):
    hour: int
    minute: int


def is_valid_time_format(value: object) -> bool:
    return isinstance(value, str) and TIME_PATTERN.match(value) is not None


def parse_time(value: str) -> ParsedTime:
    """
    Parse a strict ``HH:MM`` string.

    ``"9:00"``, ``"009:00"``, ``"24:00"`` and ``"12:60"`` are all rejected.

    Raises:
        InvalidTimeFormatError: If the value does not match the format
    """
    if not isinstance(value, str):
        raise InvalidTimeFormatError(value)
    match = TIME_PATTERN.match(value)
    if match is None:
        raise InvalidTimeFormatError(value)
    return ParsedTime(int(match.group(1)), int(match.group(2)))


def to_minutes(value: str) -> int:
    hour, minute = parse_time(value)
    return hour * 60 + minute


def from_minutes(minutes: int) -> str:
    """
    Format a minute offset from midnight as ``HH:MM``.

    Raises:
        ValueError: If ``minutes`` is negative or reaches 24:00
    """
    if minutes < 0 or minutes >= MINUTES_PER_DAY:
        raise ValueError(f"Minute offset out of range: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Return True if ``[start_a, end_a)`` and ``[start_b, end_b)`` intersect."""
    return start_a < end_b and start_b < end_a


def _legacy_overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    # Three-clause form used by the booking frontend; only kept for equivalence tests.
    return (
        (start_b <= start_a < end_b)
        or (start_b < end_a <= end_b)
        or (start_a <= start_b and end_a >= end_b)
    )


def is_break_time(time_value: str, break_start: str, break_end: str) -> bool:
    return to_minutes(break_start) <= to_minutes(time_value) < to_minutes(break_end)


def generate_slots(
    open_time: str,
    close_time: str,
    interval_minutes: int = DEFAULT_SLOT_INTERVAL_MINUTES,
) -> List[str]:
    """
    Walk from ``open_time`` towards ``close_time`` in fixed steps.

    The walk is half-open: ``close_time`` itself is never yielded.

    Example:
        >>> generate_slots("09:00", "10:30")
        ['09:00', '09:30', '10:00']
    """
    if interval_minutes <= 0:
        raise ValueError(f"Slot interval must be positive, got {interval_minutes}")

    start = to_minutes(open_time)
    end = to_minutes(close_time)
    return [from_minutes(minute) for minute in range(start, end, interval_minutes)]


def validate_duration(minutes: int) -> int:
    if isinstance(minutes, bool) or not isinstance(minutes, int):
        raise InvalidDurationError(minutes)
    if minutes <= 0 or minutes > MINUTES_PER_DAY:
        raise InvalidDurationError(minutes)
    return minutes


def interval_for(time_value: str, duration_minutes: int) -> Tuple[int, int]:
    """Return the ``(start, end)`` minute offsets of a reservation starting at ``time_value``."""
    start = to_minutes(time_value)
    return start, start + validate_duration(duration_minutes)


def format_interval(start: int, end: int) -> str:
    """Render an interval for messages; an end at midnight is shown as ``24:00``."""
    end_label = "24:00" if end == MINUTES_PER_DAY else from_minutes(end)
    return f"{from_minutes(start)}-{end_label}"
