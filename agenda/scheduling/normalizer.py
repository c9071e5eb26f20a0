"""Canonical forms for user-edited or legacy collections of time ranges.

Two modes exist:

* ``dedupe_and_sort`` keeps ranges as authored but sorted and without exact
  duplicates. It backs the explicit slot-list workflow, which is the
  persisted form.
* ``chain_sequential`` rewrites ranges into a gapless, non-overlapping chain
  clamped to the day. It only backs the manual block editor preview.
"""

from collections.abc import Iterable

from agenda.core.config import MIN_SLOT_DURATION_MINUTES
from agenda.scheduling.timeofday import MINUTES_PER_DAY, TimeRange


def dedupe_and_sort(ranges: Iterable[TimeRange]) -> list[TimeRange]:
    return sorted({TimeRange(*time_range) for time_range in ranges})


def unique_sorted_slots(points: Iterable[int]) -> list[int]:
    return sorted(set(points))


def chain_sequential(ranges: Iterable[TimeRange], duration: int) -> list[TimeRange]:
    duration = max(MIN_SLOT_DURATION_MINUTES, int(duration))
    ordered = sorted(TimeRange(*time_range) for time_range in ranges)

    chained: list[TimeRange] = []
    for start, end in ordered:
        if end <= start:
            end = start + duration
        if chained:
            start = chained[-1].end
        end = max(end, start + duration)

        if start >= MINUTES_PER_DAY:
            continue
        chained.append(TimeRange(max(0, start), min(end, MINUTES_PER_DAY)))

    return chained
