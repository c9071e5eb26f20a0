"""Read-time translation of persisted per-date availability documents.

Overrides were persisted in two shapes over time: an explicit list of slot
start times, and an older list of ``{start, end}`` ranges. Both are parsed
into one tagged union here and turned into a canonical slot list by
``document_slots``; nothing downstream looks at the raw shape.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

from agenda.core import config
from agenda.core.errors import MalformedAvailability
from agenda.scheduling.normalizer import dedupe_and_sort, unique_sorted_slots
from agenda.scheduling.slicer import slice_range
from agenda.scheduling.timeofday import TimeRange, parse_range, parse_time_of_day


@dataclass(frozen=True)
class SlotListForm:
    slots: tuple[str, ...]
    slot_duration: int


@dataclass(frozen=True)
class RangeListForm:
    ranges: tuple[dict[str, str], ...]
    slot_duration: int


AvailabilityDocument = Union[SlotListForm, RangeListForm]


def _stored_slot_duration(value: Any) -> int:
    if not value:
        return config.DEFAULT_SLOT_DURATION_MINUTES
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value != int(value):
        raise MalformedAvailability(f'Stored slot duration {value!r} is not a whole number of minutes.')
    return int(value)


def parse_availability_document(raw: Mapping[str, Any] | None) -> AvailabilityDocument | None:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise MalformedAvailability(f'Availability document must be an object, got {type(raw).__name__}.')

    slot_duration = _stored_slot_duration(raw.get('slot_duration'))
    if isinstance(raw.get('slots'), list):
        return SlotListForm(slots=tuple(raw['slots']), slot_duration=slot_duration)
    if isinstance(raw.get('ranges'), list):
        ranges = tuple(raw['ranges'])
        # Empty entries are skipped when slicing; anything else must be a {start, end} object.
        for item in ranges:
            if item and not isinstance(item, Mapping):
                raise MalformedAvailability(f'Stored range {item!r} is not a {{start, end}} object.')
        return RangeListForm(ranges=ranges, slot_duration=slot_duration)
    return SlotListForm(slots=(), slot_duration=slot_duration)


def document_slots(document: AvailabilityDocument) -> list[int]:
    if isinstance(document, SlotListForm):
        return unique_sorted_slots(parse_time_of_day(slot) for slot in document.slots)

    ranges: list[TimeRange] = [
        parse_range(item['start'], item['end'])
        for item in document.ranges
        if item and item.get('start') and item.get('end')
    ]
    points: list[int] = []
    for time_range in dedupe_and_sort(ranges):
        points.extend(slice_range(time_range, document.slot_duration))
    return unique_sorted_slots(points)
