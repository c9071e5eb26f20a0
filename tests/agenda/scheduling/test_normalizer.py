import pytest

from agenda.core.errors import InvalidFormat, MalformedAvailability
from agenda.scheduling.documents import (
    RangeListForm,
    SlotListForm,
    document_slots,
    parse_availability_document,
)
from agenda.scheduling.normalizer import chain_sequential, dedupe_and_sort, unique_sorted_slots
from agenda.scheduling.timeofday import TimeRange, parse_range


def test_dedupe_and_sort_removes_exact_duplicates() -> None:
    ranges = [
        parse_range('10:00', '10:30'),
        parse_range('09:00', '09:30'),
        parse_range('09:00', '09:30'),
    ]

    assert dedupe_and_sort(ranges) == [TimeRange(540, 570), TimeRange(600, 630)]


def test_dedupe_and_sort_keeps_overlaps_and_gaps() -> None:
    ranges = [TimeRange(600, 660), TimeRange(540, 620), TimeRange(540, 600)]

    assert dedupe_and_sort(ranges) == [TimeRange(540, 600), TimeRange(540, 620), TimeRange(600, 660)]


def test_unique_sorted_slots() -> None:
    assert unique_sorted_slots([600, 540, 600, 570]) == [540, 570, 600]


def test_chain_sequential_closes_gaps_and_overlaps() -> None:
    ranges = [TimeRange(600, 720), TimeRange(540, 630), TimeRange(800, 860)]

    assert chain_sequential(ranges, 30) == [
        TimeRange(540, 630),
        TimeRange(630, 720),
        TimeRange(720, 860),
    ]


def test_chain_sequential_repairs_inverted_ranges() -> None:
    assert chain_sequential([TimeRange(600, 590)], 30) == [TimeRange(600, 630)]


def test_chain_sequential_clamps_to_end_of_day_and_drops_overflow() -> None:
    ranges = [TimeRange(1380, 1430), TimeRange(1400, 1410), TimeRange(1420, 1439)]

    assert chain_sequential(ranges, 30) == [TimeRange(1380, 1430), TimeRange(1430, 1440)]


def test_chain_sequential_applies_minimum_duration_floor() -> None:
    assert chain_sequential([TimeRange(540, 540)], 1) == [TimeRange(540, 545)]


@pytest.mark.parametrize(
    'ranges',
    [
        [TimeRange(600, 720), TimeRange(540, 630), TimeRange(800, 860)],
        [TimeRange(540, 540), TimeRange(540, 540)],
        [TimeRange(1380, 1430), TimeRange(1400, 1410), TimeRange(1420, 1439)],
        [TimeRange(0, 10), TimeRange(5, 7), TimeRange(1439, 1439)],
        [],
    ],
)
def test_chain_sequential_is_idempotent(ranges) -> None:
    once = chain_sequential(ranges, 30)

    assert chain_sequential(once, 30) == once


def test_parse_availability_document_prefers_slot_list() -> None:
    document = parse_availability_document(
        {'slots': ['09:00'], 'ranges': [{'start': '10:00', 'end': '11:00'}], 'slot_duration': 20}
    )

    assert document == SlotListForm(slots=('09:00',), slot_duration=20)


def test_parse_availability_document_reads_legacy_ranges() -> None:
    document = parse_availability_document({'slots': None, 'ranges': [{'start': '10:00', 'end': '11:00'}]})

    assert isinstance(document, RangeListForm)
    assert document.slot_duration == 30


def test_parse_availability_document_handles_missing_document() -> None:
    assert parse_availability_document(None) is None


def test_document_slots_from_slot_list_sorts_and_dedupes() -> None:
    document = SlotListForm(slots=('10:00', '09:00', '10:00'), slot_duration=30)

    assert document_slots(document) == [540, 600]


def test_document_slots_from_legacy_ranges_slices_at_stored_duration() -> None:
    document = RangeListForm(
        ranges=(
            {'start': '09:00', 'end': '10:00'},
            {'start': '09:30', 'end': '10:30'},
            {'start': '', 'end': '11:00'},
        ),
        slot_duration=30,
    )

    assert document_slots(document) == [540, 570, 600]


def test_document_slots_surfaces_malformed_times() -> None:
    with pytest.raises(InvalidFormat):
        document_slots(SlotListForm(slots=('nine',), slot_duration=30))


@pytest.mark.parametrize(
    'raw',
    [
        ['09:00'],
        {'ranges': ['09:00-10:00']},
        {'ranges': [{'start': '09:00', 'end': '10:00'}, 42]},
        {'slots': ['09:00'], 'slot_duration': 'half an hour'},
        {'slots': ['09:00'], 'slot_duration': 22.5},
    ],
)
def test_parse_availability_document_rejects_wrong_shapes(raw) -> None:
    with pytest.raises(MalformedAvailability):
        parse_availability_document(raw)


def test_parse_availability_document_accepts_whole_float_duration() -> None:
    assert parse_availability_document({'slots': [], 'slot_duration': 45.0}).slot_duration == 45
