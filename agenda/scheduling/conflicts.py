"""Marks generated slots as past, closed to new patients or busy."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from agenda.scheduling.timeofday import format_time_of_day

ACTIVE_STATUSES = frozenset({'requested', 'accepted'})
APPOINTMENT_STATUSES = ('requested', 'accepted', 'rejected', 'cancelled', 'completed')


@dataclass(frozen=True)
class SlotAvailability:
    slot: int
    start_time: datetime
    available: bool
    reason: str | None
    busy: bool
    past: bool

    @property
    def label(self) -> str:
        return format_time_of_day(self.slot)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time.max)


def slot_datetime(day: date, slot: int) -> datetime:
    return start_of_day(day) + timedelta(minutes=slot)


def occupies_slot(status: str | None) -> bool:
    return (status or '').strip().lower() in ACTIVE_STATUSES


def busy_starts(appointments: Iterable[tuple[datetime, str | None]]) -> set[datetime]:
    """Start times held by active appointments, truncated to the minute."""
    return {
        slot_start.replace(second=0, microsecond=0)
        for slot_start, status in appointments
        if slot_start is not None and occupies_slot(status)
    }


def filter_bookable(
    day: date,
    slots: Iterable[int],
    busy: set[datetime],
    now: datetime,
    accepting: bool = True,
) -> list[SlotAvailability]:
    """Tag each slot; the first matching reason wins: past, not_accepting, busy."""
    result: list[SlotAvailability] = []
    for slot in slots:
        start_time = slot_datetime(day, slot)
        past = start_time <= now
        is_busy = start_time in busy

        if past:
            reason = 'past'
        elif not accepting:
            reason = 'not_accepting'
        elif is_busy:
            reason = 'busy'
        else:
            reason = None

        result.append(
            SlotAvailability(
                slot=slot,
                start_time=start_time,
                available=reason is None,
                reason=reason,
                busy=is_busy,
                past=past,
            )
        )
    return result
