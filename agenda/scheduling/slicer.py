"""Splits a time range into fixed-duration slot start points."""

from collections.abc import Iterator, Sequence

from agenda.core.config import MIN_SLOT_DURATION_MINUTES
from agenda.scheduling.timeofday import TimeRange, add_minutes


class SliceSequence(Sequence):
    """Lazy, restartable sequence of slot starts inside a range.

    Only full slots are produced: the last start ``t`` always satisfies
    ``t + duration <= range.end``.
    """

    def __init__(self, time_range: TimeRange, duration: int):
        self.time_range = time_range
        self.duration = duration
        if time_range.end <= time_range.start or duration < MIN_SLOT_DURATION_MINUTES:
            self._count = 0
        else:
            self._count = (time_range.end - time_range.start) // duration

    def __len__(self) -> int:
        return self._count

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self[i] for i in range(*index.indices(self._count))]
        if index < 0:
            index += self._count
        if not 0 <= index < self._count:
            raise IndexError('slot index out of range')
        return add_minutes(self.time_range.start, index * self.duration)

    def __iter__(self) -> Iterator[int]:
        point = self.time_range.start
        for _ in range(self._count):
            yield point
            point = add_minutes(point, self.duration)

    def __repr__(self) -> str:
        return f'SliceSequence({self.time_range!r}, duration={self.duration})'


def slice_range(time_range: TimeRange, duration: int) -> SliceSequence:
    return SliceSequence(time_range, duration)
