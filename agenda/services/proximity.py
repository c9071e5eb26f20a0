"""Nearby-doctor lookup: latitude band in the database, the rest in Python."""

import unicodedata

from agenda.core import config
from agenda.models.doctor import Doctor
from agenda.scheduling.geo import LocatedDoctor, RankedDoctor, bounding_box, normalize_center, search_nearby
from agenda.store import SchedulingStore


def fold_text(value: str | None) -> str:
    """Lower-case and strip accents so "Pediatría" matches "pediatria"."""
    decomposed = unicodedata.normalize('NFD', str(value or '').casefold())
    return ''.join(char for char in decomposed if not unicodedata.combining(char)).strip()


def to_located_doctor(doctor: Doctor) -> LocatedDoctor:
    return LocatedDoctor(
        doctor_id=doctor.id,
        latitude=doctor.latitude,
        longitude=doctor.longitude,
        name=doctor.name or 'Health professional',
        role=doctor.role or '',
        verified=bool(doctor.verified),
        profession=doctor.profession,
        specialty=doctor.specialty,
    )


def matches_profession(doctor: LocatedDoctor, profession: str | None) -> bool:
    if not profession:
        return True
    declared = doctor.profession or doctor.specialty
    return bool(declared) and fold_text(declared) == fold_text(profession)


class ProximityService:
    def __init__(self, store: SchedulingStore):
        self.store = store

    def find_nearby_doctors(
        self,
        center,
        radius_km: float | None = None,
        verified_only: bool = True,
        profession: str | None = None,
        limit: int | None = None,
    ) -> list[RankedDoctor]:
        origin = normalize_center(center)
        radius_km = config.NEARBY_DEFAULT_RADIUS_KM if radius_km is None else radius_km
        limit = config.NEARBY_DEFAULT_LIMIT if limit is None else limit
        if radius_km <= 0:
            return []

        box = bounding_box(origin, radius_km)
        rows = self.store.query_doctors_in_latitude_band(box.min_lat, box.max_lat, verified_only)
        candidates = [
            candidate
            for candidate in map(to_located_doctor, rows)
            if candidate.role == 'doctor'
            and (candidate.verified or not verified_only)
            and matches_profession(candidate, profession)
        ]
        return search_nearby(origin, radius_km, candidates, limit)
