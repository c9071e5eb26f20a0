"""Turns recurring work settings and per-date overrides into slot lists."""

from datetime import date

from agenda.scheduling.documents import AvailabilityDocument, document_slots
from agenda.scheduling.normalizer import unique_sorted_slots
from agenda.scheduling.settings import LegacySchedule, TimeBlock, WorkSettings
from agenda.scheduling.slicer import slice_range


def weekday_index(day: date) -> int:
    """0=Sunday .. 6=Saturday."""
    return (day.weekday() + 1) % 7


def date_key(day: date) -> str:
    return day.isoformat()


def expand_blocks(blocks: tuple[TimeBlock, ...], duration: int) -> list[int]:
    points: list[int] = []
    for block in blocks:
        if not block.start or not block.end:
            continue
        points.extend(slice_range(block.to_range(), duration))
    return unique_sorted_slots(points)


def generate_master_slots(day: date, settings: WorkSettings) -> list[int]:
    if not settings.works_on(weekday_index(day)):
        return []
    return expand_blocks(settings.blocks, settings.slot_duration)


def intersect_selection(master: list[int], selected: list[int]) -> list[int]:
    chosen = set(selected)
    return [slot for slot in master if slot in chosen]


def resolve_date_slots(
    day: date,
    settings: WorkSettings,
    override: AvailabilityDocument | None,
    legacy_schedule: LegacySchedule | None = None,
) -> list[int]:
    if override is not None:
        # Selections left over from older settings are dropped.
        return intersect_selection(generate_master_slots(day, settings), document_slots(override))

    if legacy_schedule is not None:
        blocks = legacy_schedule.days.get(weekday_index(day), ())
        return expand_blocks(blocks, legacy_schedule.slot_duration)

    return []
