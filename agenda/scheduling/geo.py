"""Great-circle distance and bounding-box search over doctor locations."""

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any, NamedTuple

from agenda.core.errors import InvalidCenter

EARTH_RADIUS_KM = 6371.0
# Widens the box by a hair so float rounding never excludes a boundary point.
_BOX_MARGIN_DEGREES = 1e-9


class GeoPoint(NamedTuple):
    lat: float
    lng: float


@dataclass(frozen=True)
class BoundingBox:
    min_lat: float
    max_lat: float
    min_lon: float
    max_lon: float

    @property
    def crosses_antimeridian(self) -> bool:
        return self.min_lon > self.max_lon

    def contains_latitude(self, lat: float) -> bool:
        return self.min_lat <= lat <= self.max_lat

    def contains_longitude(self, lng: float) -> bool:
        if self.crosses_antimeridian:
            return lng >= self.min_lon or lng <= self.max_lon
        return self.min_lon <= lng <= self.max_lon

    def contains(self, lat: float, lng: float) -> bool:
        return self.contains_latitude(lat) and self.contains_longitude(lng)


@dataclass(frozen=True)
class LocatedDoctor:
    doctor_id: str
    latitude: float | None
    longitude: float | None
    name: str = ''
    role: str = 'doctor'
    verified: bool = False
    profession: str | None = None
    specialty: str | None = None


@dataclass(frozen=True)
class RankedDoctor:
    doctor: LocatedDoctor
    distance_km: float

    @property
    def distance(self) -> float:
        return round(self.distance_km, 1)


def haversine_km(a: GeoPoint, b: GeoPoint) -> float:
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    d_lat = lat2 - lat1
    d_lng = math.radians(b.lng - a.lng)
    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(h)))


def bounding_box(center: GeoPoint, radius_km: float) -> BoundingBox:
    """Smallest lat/lng rectangle holding every point within ``radius_km``."""
    angular = max(0.0, radius_km) / EARTH_RADIUS_KM
    lat_delta = math.degrees(angular) + _BOX_MARGIN_DEGREES
    min_lat = center.lat - lat_delta
    max_lat = center.lat + lat_delta

    # The disc reaches a pole: every longitude is in range.
    if min_lat <= -90 or max_lat >= 90:
        return BoundingBox(max(-90.0, min_lat), min(90.0, max_lat), -180.0, 180.0)

    lon_delta = math.degrees(math.asin(math.sin(angular) / math.cos(math.radians(center.lat))))
    lon_delta += _BOX_MARGIN_DEGREES
    if lon_delta >= 180:
        return BoundingBox(min_lat, max_lat, -180.0, 180.0)

    min_lon = center.lng - lon_delta
    max_lon = center.lng + lon_delta
    if min_lon < -180:
        min_lon += 360
    if max_lon > 180:
        max_lon -= 360
    return BoundingBox(min_lat, max_lat, min_lon, max_lon)


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return None
    if not isinstance(value, (int, float)) or not math.isfinite(value):
        return None
    return float(value)


def normalize_center(raw: Any) -> GeoPoint:
    """Accepts {lat, lng}, {latitude, longitude}, {coords: {...}} or a pair."""
    lat = lng = None
    if isinstance(raw, GeoPoint):
        lat, lng = raw
    elif isinstance(raw, Mapping):
        if 'lat' in raw or 'lng' in raw:
            lat, lng = raw.get('lat'), raw.get('lng')
        elif 'latitude' in raw or 'longitude' in raw:
            lat, lng = raw.get('latitude'), raw.get('longitude')
        elif isinstance(raw.get('coords'), Mapping):
            lat, lng = raw['coords'].get('latitude'), raw['coords'].get('longitude')
    elif isinstance(raw, (tuple, list)) and len(raw) == 2:
        lat, lng = raw

    lat, lng = _as_number(lat), _as_number(lng)
    if lat is None or lng is None:
        raise InvalidCenter('center { lat, lng } is required and must be numeric.')
    if not -90 <= lat <= 90 or not -180 <= lng <= 180:
        raise InvalidCenter('center is outside valid latitude/longitude bounds.')
    return GeoPoint(lat, lng)


def search_nearby(
    center: Any,
    radius_km: float,
    candidates: Iterable[LocatedDoctor],
    limit: int,
) -> list[RankedDoctor]:
    origin = normalize_center(center)
    if radius_km <= 0 or limit <= 0:
        return []

    box = bounding_box(origin, radius_km)
    ranked: list[RankedDoctor] = []
    for doctor in candidates:
        if doctor.latitude is None or doctor.longitude is None:
            continue
        if not box.contains(doctor.latitude, doctor.longitude):
            continue

        distance_km = haversine_km(origin, GeoPoint(doctor.latitude, doctor.longitude))
        if distance_km <= radius_km:
            ranked.append(RankedDoctor(doctor=doctor, distance_km=distance_km))

    ranked.sort(key=lambda item: item.distance_km)
    return ranked[:limit]
