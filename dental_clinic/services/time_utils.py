"""Time-of-day parsing and conversion.

Times are stored as 24-hour ``HH:MM`` strings. Input may also use the 12-hour
``h:mm AM/PM`` form, which is normalized before anything is compared or stored.
"""
import re
from dataclasses import dataclass

_TIME_24H = re.compile(r"([01][0-9]|2[0-3]):([0-5][0-9])")
_TIME_12H = re.compile(r"([1-9]|1[0-2]):([0-5][0-9]) ?(AM|PM)", re.IGNORECASE)

MINUTES_PER_DAY = 24 * 60


class SchedulingError(ValueError):
    """Base class for invalid scheduling input (reported as 400)."""


class InvalidTimeFormat(SchedulingError):
    def __init__(self, value: str) -> None:
        self.value = value
        super().__init__(f"Invalid time format: {value!r} (expected HH:MM or h:mm AM/PM)")


class InvalidInterval(SchedulingError):
    def __init__(self, start: str, end: str) -> None:
        self.start = start
        self.end = end
        super().__init__(f"End time must be after start time ({start} - {end})")


def parse_time_of_day(value: str) -> str:
    """Normalize a 24h or 12h time string to 24h ``HH:MM``.

    The whole string must match, with at most one space before AM/PM. Hours
    in the 12-hour form carry no leading zero.
    """
    if not isinstance(value, str):
        raise InvalidTimeFormat(str(value))
    if _TIME_24H.fullmatch(value):
        return value
    match = _TIME_12H.fullmatch(value)
    if not match:
        raise InvalidTimeFormat(value)
    hours = int(match.group(1))
    minutes = match.group(2)
    meridiem = match.group(3).upper()
    if meridiem == "AM" and hours == 12:
        hours = 0
    elif meridiem == "PM" and hours != 12:
        hours += 12
    return f"{hours:02d}:{minutes}"


def to_storage_24h(value: str) -> str:
    return parse_time_of_day(value)


def to_minutes(value: str) -> int:
    hours, minutes = parse_time_of_day(value).split(":")
    return int(hours) * 60 + int(minutes)


def from_minutes(total: int) -> str:
    if not 0 <= total < MINUTES_PER_DAY:
        raise ValueError(f"minutes out of range: {total}")
    return f"{total // 60:02d}:{total % 60:02d}"


def to_display_12h(value: str) -> str:
    hours, minutes = parse_time_of_day(value).split(":")
    h = int(hours)
    meridiem = "AM" if h < 12 else "PM"
    h = h % 12 or 12
    return f"{h}:{minutes} {meridiem}"


def compare_times(a: str, b: str) -> int:
    """Return -1, 0 or 1 comparing two times of day."""
    ma, mb = to_minutes(a), to_minutes(b)
    return (ma > mb) - (ma < mb)


@dataclass(frozen=True)
class Interval:
    """Half-open span [start, end) of normalized 24h times, start < end."""

    start: str
    end: str

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return to_minutes(self.end)

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    def display(self) -> str:
        return f"{self.start} - {self.end}"


def make_interval(start: str, end: str) -> Interval:
    start_24 = parse_time_of_day(start)
    end_24 = parse_time_of_day(end)
    if compare_times(end_24, start_24) <= 0:
        raise InvalidInterval(start_24, end_24)
    return Interval(start_24, end_24)
