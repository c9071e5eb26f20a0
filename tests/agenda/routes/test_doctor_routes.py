import pytest
from fastapi import HTTPException
from sqlalchemy.exc import OperationalError

from agenda.core.errors import StoreUnavailable
from agenda.models.doctor import Doctor
from agenda.routes.doctor_routes import find_nearby_doctors, get_proximity_service
from agenda.services.proximity import ProximityService


@pytest.fixture
def proximity(store, scheduling_db) -> ProximityService:
    scheduling_db.add_all(
        [
            Doctor(id='near', name='Dra. Cerca', verified=True, profession='Medicina general', latitude=13.6990, longitude=-89.2190),
            Doctor(id='far', name='Dr. Lejos', verified=True, latitude=14.8, longitude=-89.2),
        ]
    )
    scheduling_db.commit()
    return ProximityService(store)


def call_nearby(service: ProximityService, lat: str = '13.6929', lng: str = '-89.2182', **overrides):
    params = {'radius_km': 25.0, 'verified_only': True, 'profession': None, 'limit': 3}
    params.update(overrides)
    return find_nearby_doctors(lat=lat, lng=lng, service=service, **params)


def test_find_nearby_doctors_route_returns_rounded_distance(proximity) -> None:
    response = call_nearby(proximity)

    assert [doctor.id for doctor in response] == ['near']
    assert response[0].specialty == 'Medicina general'
    assert response[0].distance == round(response[0].distance_km, 1)


def test_find_nearby_doctors_route_rejects_bad_coordinates(proximity) -> None:
    with pytest.raises(HTTPException) as exception_info:
        call_nearby(proximity, lat='north')

    assert exception_info.value.status_code == 400


def test_find_nearby_doctors_route_maps_store_errors(proximity, monkeypatch: pytest.MonkeyPatch) -> None:
    def fail(*args, **kwargs):
        raise StoreUnavailable('Database unavailable during query_doctors_in_latitude_band.')

    monkeypatch.setattr(proximity.store, 'query_doctors_in_latitude_band', fail)

    with pytest.raises(HTTPException) as exception_info:
        call_nearby(proximity)

    assert exception_info.value.status_code == 503


def test_get_proximity_service_checks_database_first(scheduling_db, monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []
    monkeypatch.setattr('agenda.routes.doctor_routes.ensure_database_ready', lambda: calls.append('checked'))

    service = get_proximity_service(db=scheduling_db)

    assert calls == ['checked']
    assert isinstance(service, ProximityService)


def test_get_proximity_service_reports_unready_database(scheduling_db, monkeypatch: pytest.MonkeyPatch) -> None:
    def fail() -> None:
        raise OperationalError('ALTER TABLE', {}, Exception('database is locked'))

    monkeypatch.setattr('agenda.routes.scheduling_routes.ensure_availability_schema', lambda: None)
    monkeypatch.setattr('agenda.routes.scheduling_routes.ensure_appointment_schema', lambda: None)
    monkeypatch.setattr('agenda.routes.scheduling_routes.ensure_doctor_schema', fail)

    with pytest.raises(HTTPException) as exception_info:
        get_proximity_service(db=scheduling_db)

    assert exception_info.value.status_code == 503
