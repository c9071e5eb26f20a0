from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy.orm import Session

from agenda.core import config
from agenda.core.errors import InvalidCenter, StoreUnavailable
from agenda.routes.scheduling_routes import STORE_UNAVAILABLE_DETAIL, ensure_database_ready, get_db
from agenda.scheduling.geo import RankedDoctor
from agenda.services.proximity import ProximityService
from agenda.store import SchedulingStore

router = APIRouter(tags=['doctors'])


class NearbyDoctorResponse(BaseModel):
    id: str
    name: str
    profession: str | None = None
    specialty: str | None = None
    verified: bool
    latitude: float
    longitude: float
    distance_km: float
    distance: float


def get_proximity_service(db: Session = Depends(get_db)) -> ProximityService:
    ensure_database_ready()
    return ProximityService(SchedulingStore(db))


def to_nearby_response(ranked: RankedDoctor) -> NearbyDoctorResponse:
    doctor = ranked.doctor
    return NearbyDoctorResponse(
        id=doctor.doctor_id,
        name=doctor.name,
        profession=doctor.profession,
        specialty=doctor.specialty or doctor.profession or 'Health',
        verified=doctor.verified,
        latitude=doctor.latitude,
        longitude=doctor.longitude,
        distance_km=ranked.distance_km,
        distance=ranked.distance,
    )


@router.get('/nearby', response_model=list[NearbyDoctorResponse])
def find_nearby_doctors(
    lat: str = Query(...),
    lng: str = Query(...),
    radius_km: float = Query(default=config.NEARBY_DEFAULT_RADIUS_KM),
    verified_only: bool = Query(default=True),
    profession: str | None = Query(default=None),
    limit: int = Query(default=config.NEARBY_DEFAULT_LIMIT, ge=1, le=200),
    service: ProximityService = Depends(get_proximity_service),
):
    try:
        ranked = service.find_nearby_doctors(
            {'lat': lat, 'lng': lng},
            radius_km=radius_km,
            verified_only=verified_only,
            profession=profession,
            limit=limit,
        )
    except InvalidCenter as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except StoreUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=STORE_UNAVAILABLE_DETAIL,
        ) from exc

    return [to_nearby_response(item) for item in ranked]
