from __future__ import annotations

from dataclasses import dataclass
import re

from hrms.core.exceptions import TimeFormatError

TIME_RANGE_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})-(\d{1,2}):(\d{2})$")


@dataclass(frozen=True, order=True)
class TimeInterval:
    """Half-open [start, end) range in minutes since midnight."""

    start_minutes: int
    end_minutes: int

    @property
    def length_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    def overlaps(self, other: "TimeInterval") -> bool:
        return overlaps(self, other)

    def __str__(self) -> str:
        return format_range(self)


def _to_minutes(hours: str, minutes: str, token: str) -> int:
    hour_value, minute_value = int(hours), int(minutes)
    if hour_value > 23 or minute_value > 59:
        raise TimeFormatError(token, f'Invalid time "{token}": hours must be 0-23 and minutes 0-59')
    return hour_value * 60 + minute_value


def parse(token: str) -> TimeInterval:
    if not isinstance(token, str):
        raise TimeFormatError(str(token))
    match = TIME_RANGE_PATTERN.match(token.strip())
    if not match:
        raise TimeFormatError(token)
    start_h, start_m, end_h, end_m = match.groups()
    start = _to_minutes(start_h, start_m, token)
    end = _to_minutes(end_h, end_m, token)
    if end <= start:
        raise TimeFormatError(token, f'Invalid time range "{token}": end must be after start')
    return TimeInterval(start, end)


def overlaps(a: TimeInterval, b: TimeInterval) -> bool:
    # Touching boundaries (10:00 end, 10:00 start) do not overlap.
    return a.start_minutes < b.end_minutes and b.start_minutes < a.end_minutes


def ranges_overlap(token_a: str, token_b: str) -> bool:
    return overlaps(parse(token_a), parse(token_b))


def format_minutes(value: int) -> str:
    return f"{value // 60}:{value % 60:02d}"


def format_range(interval: TimeInterval) -> str:
    return f"{format_minutes(interval.start_minutes)}-{format_minutes(interval.end_minutes)}"


def normalize(token: str) -> str:
    """Canonical token for storage: no leading zero on the hour, e.g. "09:00-10:00" -> "9:00-10:00"."""
    return format_range(parse(token))
