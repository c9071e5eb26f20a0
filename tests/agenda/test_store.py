import logging
from datetime import date, datetime

import pytest
from sqlalchemy.exc import OperationalError

from agenda.core.errors import StoreUnavailable
from agenda.models.availability import DateAvailability

NOW = datetime(2026, 1, 1, 8, 0)


def test_put_override_keeps_legacy_fields(store, scheduling_db) -> None:
    scheduling_db.add(
        DateAvailability(doctor_id='doctor-1', date_key='2026-01-05', ranges=[{'start': '09:00', 'end': '10:00'}])
    )
    scheduling_db.commit()

    store.put_override('doctor-1', date(2026, 1, 5), ['09:00'], 30, [{'start': '09:00', 'end': '10:00'}], NOW)

    record = scheduling_db.query(DateAvailability).one()
    assert record.slots == ['09:00']
    assert record.ranges == [{'start': '09:00', 'end': '10:00'}]
    assert store.get_override('doctor-1', '2026-01-05') == {
        'slots': ['09:00'],
        'ranges': [{'start': '09:00', 'end': '10:00'}],
        'slot_duration': 30,
    }


def test_list_overrides_is_bounded_and_ordered(store) -> None:
    for day in (date(2026, 1, 20), date(2026, 1, 3), date(2026, 2, 1)):
        store.put_override('doctor-1', day, ['09:00'], 30, [], NOW)
    store.put_override('doctor-2', date(2026, 1, 4), ['09:00'], 30, [], NOW)

    keys = [key for key, _ in store.list_overrides('doctor-1', '2026-01-01', '2026-01-31')]

    assert keys == ['2026-01-03', '2026-01-20']


def test_delete_override_reports_whether_a_row_existed(store) -> None:
    store.put_override('doctor-1', date(2026, 1, 5), ['09:00'], 30, [], NOW)

    assert store.delete_override('doctor-1', '2026-01-05') is True
    assert store.delete_override('doctor-1', '2026-01-05') is False
    assert store.get_override('doctor-1', '2026-01-05') is None


def test_database_errors_surface_as_store_unavailable(store, monkeypatch: pytest.MonkeyPatch, caplog) -> None:
    def fail(*args, **kwargs):
        raise OperationalError('SELECT', {}, Exception('database is locked'))

    monkeypatch.setattr(store.db, 'get', fail)

    with caplog.at_level(logging.ERROR, logger='agenda.store'):
        with pytest.raises(StoreUnavailable):
            store.get_work_settings('doctor-1')

    assert 'Store call get_work_settings failed' in caplog.text
