"""Conversions between "HH:MM" strings and minute-of-day integers."""

import re
from typing import NamedTuple

from agenda.core.errors import InvalidFormat, OutOfRange

MINUTES_PER_DAY = 24 * 60

_TIME_PATTERN = re.compile(r'^([0-9]{1,2}):([0-9]{2})$')


class TimeRange(NamedTuple):
    """Half-open [start, end) range of minutes since midnight."""

    start: int
    end: int


def parse_time_of_day(value: str) -> int:
    if not isinstance(value, str):
        raise InvalidFormat(f'Expected an "HH:MM" string, got {type(value).__name__}.')

    match = _TIME_PATTERN.match(value.strip())
    if not match:
        raise InvalidFormat(f'Invalid time {value!r}; expected "HH:MM".')

    hour = int(match.group(1))
    minute = int(match.group(2))
    if not 0 <= hour <= 23 or not 0 <= minute <= 59:
        raise OutOfRange(f'Time {value!r} is outside 00:00-23:59.')

    return hour * 60 + minute


def format_time_of_day(minutes: int) -> str:
    clamped = max(0, min(MINUTES_PER_DAY, int(minutes)))
    hours, remainder = divmod(clamped, 60)
    return f'{hours:02d}:{remainder:02d}'


def add_minutes(minutes: int, delta: int) -> int:
    return minutes + delta


def parse_range(start: str, end: str) -> TimeRange:
    return TimeRange(parse_time_of_day(start), parse_time_of_day(end))


def format_range(time_range: TimeRange) -> dict[str, str]:
    return {
        'start': format_time_of_day(time_range.start),
        'end': format_time_of_day(time_range.end),
    }
