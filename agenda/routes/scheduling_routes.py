from contextlib import contextmanager
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agenda.core.errors import AppointmentNotFound, SlotTakenError, SlotUnavailableError, StoreUnavailable
from agenda.database import SessionLocal, ensure_appointment_schema, ensure_availability_schema, ensure_doctor_schema
from agenda.scheduling.conflicts import SlotAvailability
from agenda.scheduling.settings import TimeBlock, WorkSettings
from agenda.scheduling.timeofday import format_time_of_day, parse_time_of_day
from agenda.services.scheduling import SchedulingService
from agenda.store import SchedulingStore

router = APIRouter(tags=['scheduling'])

MAX_APPOINTMENT_REASON_LENGTH = 600
STORE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


class TimeBlockModel(BaseModel):
    start: str
    end: str

    @field_validator('start', 'end')
    @classmethod
    def validate_time(cls, value: str) -> str:
        normalized = value.strip()
        parse_time_of_day(normalized)
        return normalized


class SaveWorkSettingsRequest(BaseModel):
    slot_duration: int
    working_days: dict[int, bool]
    blocks: list[TimeBlock]

    @field_validator('slot_duration')
    @classmethod
    def validate_slot_duration(cls, value: int) -> int:
        if value <= 0:
            raise ValueError('Slot duration must be a positive number of minutes.')
        return value


class WorkSettingsResponse(BaseModel):
    slot_duration: int
    working_days: dict[int, bool]
    blocks: list[TimeBlockModel]


class TemplateResponse(BaseModel):
    date: date
    slots: list[str]


class DaySelectionResponse(BaseModel):
    date: date
    master: list[str]
    selected: list[str]


class SaveDateOverrideRequest(BaseModel):
    slots: list[str]

    @field_validator('slots')
    @classmethod
    def validate_slots(cls, value: list[str]) -> list[str]:
        normalized = [slot.strip() for slot in value]
        for slot in normalized:
            parse_time_of_day(slot)
        return normalized


class DateOverrideResponse(BaseModel):
    date: date
    slots: list[str]
    deleted: bool


class BookableSlotResponse(BaseModel):
    slot: str
    start_time: datetime
    available: bool
    reason: str | None = None


class BlockDraftRequest(BaseModel):
    slot_duration: int
    blocks: list[TimeBlockModel]


class CreateAppointmentRequest(BaseModel):
    doctor_id: str
    patient_id: str
    date: date
    time: str
    reason: str | None = None

    @field_validator('doctor_id', 'patient_id')
    @classmethod
    def validate_ids(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Doctor and patient ids are required.')
        return normalized

    @field_validator('time')
    @classmethod
    def validate_time(cls, value: str) -> str:
        normalized = value.strip()
        parse_time_of_day(normalized)
        return normalized

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        if value is None:
            return None

        normalized = value.strip()
        if not normalized:
            return None

        if len(normalized) > MAX_APPOINTMENT_REASON_LENGTH:
            raise ValueError(f'Reason must be {MAX_APPOINTMENT_REASON_LENGTH} characters or fewer.')

        return normalized


class UpdateAppointmentStatusRequest(BaseModel):
    status: str
    actor: str | None = None


class AppointmentResponse(BaseModel):
    id: int
    doctor_id: str
    patient_id: str
    reason: str | None = None
    slot_start: datetime
    slot_end: datetime | None = None
    status: str

    class Config:
        from_attributes = True


def ensure_database_ready() -> None:
    try:
        ensure_availability_schema()
        ensure_appointment_schema()
        ensure_doctor_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=STORE_UNAVAILABLE_DETAIL,
        ) from exc


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_scheduling_service(db: Session = Depends(get_db)) -> SchedulingService:
    ensure_database_ready()
    return SchedulingService(SchedulingStore(db))


@contextmanager
def translate_errors():
    try:
        yield
    except SlotTakenError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail='This time is already booked. Refresh availability and choose another slot.',
        ) from exc
    except SlotUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except AppointmentNotFound as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except StoreUnavailable as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=STORE_UNAVAILABLE_DETAIL,
        ) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def to_settings_response(settings: WorkSettings) -> WorkSettingsResponse:
    return WorkSettingsResponse(
        slot_duration=settings.slot_duration,
        working_days=settings.working_days,
        blocks=[TimeBlockModel(start=block.start, end=block.end) for block in settings.blocks],
    )


def to_bookable_slot_response(slot: SlotAvailability) -> BookableSlotResponse:
    return BookableSlotResponse(
        slot=slot.label,
        start_time=slot.start_time,
        available=slot.available,
        reason=slot.reason,
    )


def format_slots(slots: list[int]) -> list[str]:
    return [format_time_of_day(slot) for slot in slots]


@router.get('/doctors/{doctor_id}/settings', response_model=WorkSettingsResponse)
def get_work_settings(doctor_id: str, service: SchedulingService = Depends(get_scheduling_service)):
    with translate_errors():
        return to_settings_response(service.get_work_settings(doctor_id))


@router.put('/doctors/{doctor_id}/settings', response_model=WorkSettingsResponse)
def save_work_settings(
    doctor_id: str,
    data: SaveWorkSettingsRequest,
    service: SchedulingService = Depends(get_scheduling_service),
):
    with translate_errors():
        settings = WorkSettings(
            slot_duration=data.slot_duration,
            working_days=data.working_days,
            blocks=tuple(data.blocks),
        )
        return to_settings_response(service.save_work_settings(doctor_id, settings))


@router.get('/doctors/{doctor_id}/template', response_model=TemplateResponse)
def get_master_template(
    doctor_id: str,
    day: date = Query(..., alias='date'),
    service: SchedulingService = Depends(get_scheduling_service),
):
    with translate_errors():
        return TemplateResponse(date=day, slots=format_slots(service.get_master_template(doctor_id, day)))


@router.get('/doctors/{doctor_id}/dates/{day}', response_model=DaySelectionResponse)
def get_day_selection(doctor_id: str, day: date, service: SchedulingService = Depends(get_scheduling_service)):
    with translate_errors():
        selection = service.get_day_selection(doctor_id, day)
        return DaySelectionResponse(
            date=day,
            master=format_slots(selection.master),
            selected=format_slots(selection.selected),
        )


@router.put('/doctors/{doctor_id}/dates/{day}', response_model=DateOverrideResponse)
def save_date_override(
    doctor_id: str,
    day: date,
    data: SaveDateOverrideRequest,
    service: SchedulingService = Depends(get_scheduling_service),
):
    with translate_errors():
        result = service.save_date_override(doctor_id, day, data.slots)
        return DateOverrideResponse(date=day, slots=format_slots(result.slots), deleted=result.deleted)


@router.delete('/doctors/{doctor_id}/dates/{day}', status_code=status.HTTP_204_NO_CONTENT)
def delete_date_override(doctor_id: str, day: date, service: SchedulingService = Depends(get_scheduling_service)):
    with translate_errors():
        if not service.delete_date_override(doctor_id, day):
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail='No availability saved for this date.',
            )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get('/doctors/{doctor_id}/slots', response_model=list[BookableSlotResponse])
def get_bookable_slots(
    doctor_id: str,
    day: date = Query(..., alias='date'),
    service: SchedulingService = Depends(get_scheduling_service),
):
    with translate_errors():
        return [to_bookable_slot_response(slot) for slot in service.get_bookable_slots(doctor_id, day)]


@router.get('/doctors/{doctor_id}/months/{year}/{month}', response_model=dict[str, int])
def list_month_availability(
    doctor_id: str,
    year: int,
    month: int,
    service: SchedulingService = Depends(get_scheduling_service),
):
    if not 1 <= month <= 12:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Month must be between 1 and 12.')

    with translate_errors():
        return service.list_month_availability(doctor_id, year, month)


@router.get('/doctors/{doctor_id}/available-dates', response_model=list[date])
def list_available_dates(
    doctor_id: str,
    days_ahead: int | None = Query(default=None, ge=1, le=365),
    service: SchedulingService = Depends(get_scheduling_service),
):
    with translate_errors():
        return service.list_available_dates(doctor_id, days_ahead)


@router.post('/blocks/normalize', response_model=list[TimeBlockModel])
def normalize_block_draft(data: BlockDraftRequest, service: SchedulingService = Depends(get_scheduling_service)):
    with translate_errors():
        blocks = [TimeBlock(start=block.start, end=block.end) for block in data.blocks]
        return [
            TimeBlockModel(start=block.start, end=block.end)
            for block in service.normalize_block_draft(blocks, data.slot_duration)
        ]


@router.post('/appointments', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def request_booking(data: CreateAppointmentRequest, service: SchedulingService = Depends(get_scheduling_service)):
    with translate_errors():
        return service.request_booking(
            data.doctor_id,
            data.patient_id,
            data.date,
            data.time,
            reason=data.reason or '',
        )


@router.patch('/appointments/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: UpdateAppointmentStatusRequest,
    service: SchedulingService = Depends(get_scheduling_service),
):
    with translate_errors():
        return service.update_appointment_status(appointment_id, data.status, data.actor)


@router.get('/appointments', response_model=list[AppointmentResponse])
def list_appointments(
    user_id: str = Query(...),
    role: str = Query(default='patient'),
    service: SchedulingService = Depends(get_scheduling_service),
):
    normalized_user_id = user_id.strip()
    if not normalized_user_id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='User id is required.')

    normalized_role = role.strip().lower()
    if normalized_role not in {'doctor', 'patient'}:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Role must be doctor or patient.')

    with translate_errors():
        return service.list_appointments(normalized_user_id, normalized_role)
