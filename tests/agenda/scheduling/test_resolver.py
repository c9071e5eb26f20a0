from datetime import date

import pytest

from agenda.core.errors import InvalidFormat
from agenda.scheduling.documents import RangeListForm, SlotListForm
from agenda.scheduling.resolver import (
    date_key,
    generate_master_slots,
    resolve_date_slots,
    weekday_index,
)
from agenda.scheduling.settings import LegacySchedule, TimeBlock, WorkSettings
from agenda.scheduling.timeofday import format_time_of_day

MONDAY = date(2026, 1, 5)
SUNDAY = date(2026, 1, 4)


def labels(slots: list[int]) -> list[str]:
    return [format_time_of_day(slot) for slot in slots]


@pytest.fixture
def monday_settings() -> WorkSettings:
    return WorkSettings(
        slot_duration=30,
        working_days={1: True},
        blocks=(TimeBlock(start='09:00', end='10:00'),),
    )


def test_weekday_index_starts_on_sunday() -> None:
    assert weekday_index(SUNDAY) == 0
    assert weekday_index(MONDAY) == 1
    assert weekday_index(date(2026, 1, 10)) == 6


def test_date_key_is_iso_calendar_date() -> None:
    assert date_key(MONDAY) == '2026-01-05'


def test_generate_master_slots_for_working_day(monday_settings) -> None:
    assert labels(generate_master_slots(MONDAY, monday_settings)) == ['09:00', '09:30']


def test_generate_master_slots_is_empty_on_non_working_day(monday_settings) -> None:
    assert generate_master_slots(SUNDAY, monday_settings) == []
    assert generate_master_slots(date(2026, 1, 6), monday_settings) == []


def test_generate_master_slots_merges_overlapping_blocks() -> None:
    settings = WorkSettings(
        slot_duration=30,
        working_days={1: True},
        blocks=(
            TimeBlock(start='10:00', end='11:00'),
            TimeBlock(start='09:00', end='10:30'),
            TimeBlock(start='09:00', end='10:30'),
        ),
    )

    assert labels(generate_master_slots(MONDAY, settings)) == ['09:00', '09:30', '10:00', '10:30']


def test_generate_master_slots_surfaces_malformed_blocks() -> None:
    settings = WorkSettings(working_days={1: True}, blocks=(TimeBlock(start='nine', end='10:00'),))

    with pytest.raises(InvalidFormat):
        generate_master_slots(MONDAY, settings)


def test_resolve_date_slots_without_override_has_no_slots(monday_settings) -> None:
    assert resolve_date_slots(MONDAY, monday_settings, None) == []


def test_resolve_date_slots_keeps_only_chosen_slots(monday_settings) -> None:
    override = SlotListForm(slots=('09:00',), slot_duration=30)

    assert labels(resolve_date_slots(MONDAY, monday_settings, override)) == ['09:00']


def test_resolve_date_slots_drops_stale_selections(monday_settings) -> None:
    override = SlotListForm(slots=('08:30', '09:30', '11:00'), slot_duration=30)

    assert labels(resolve_date_slots(MONDAY, monday_settings, override)) == ['09:30']


def test_resolve_date_slots_reads_legacy_range_overrides(monday_settings) -> None:
    override = RangeListForm(ranges=({'start': '09:00', 'end': '12:00'},), slot_duration=30)

    assert labels(resolve_date_slots(MONDAY, monday_settings, override)) == ['09:00', '09:30']


def test_resolve_date_slots_falls_back_to_legacy_schedule(monday_settings) -> None:
    schedule = LegacySchedule(slot_duration=45, days={1: (TimeBlock(start='09:00', end='11:00'),)})

    assert labels(resolve_date_slots(MONDAY, monday_settings, None, schedule)) == ['09:00', '09:45']
    assert resolve_date_slots(SUNDAY, monday_settings, None, schedule) == []


def test_resolve_date_slots_is_deterministic(monday_settings) -> None:
    override = SlotListForm(slots=('09:30', '09:00'), slot_duration=30)

    first = resolve_date_slots(MONDAY, monday_settings, override)
    second = resolve_date_slots(MONDAY, monday_settings, override)

    assert first == second == [540, 570]
