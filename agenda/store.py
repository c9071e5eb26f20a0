"""Persistence for work settings, date overrides, appointments and doctors.

Every method maps onto one get/put/delete/query call against the database.
SQLAlchemy failures surface as ``StoreUnavailable``; nothing is retried here.
"""

import logging
from contextlib import contextmanager
from datetime import date, datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from agenda.core.errors import StoreUnavailable
from agenda.models.appointment import Appointment
from agenda.models.availability import DateAvailability
from agenda.models.doctor import Doctor
from agenda.models.work_settings import WorkSettingsRecord
from agenda.scheduling.settings import WorkSettings

logger = logging.getLogger(__name__)


class SchedulingStore:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _guard(self, operation: str):
        try:
            yield
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.error('Store call %s failed: %s', operation, exc)
            raise StoreUnavailable(f'Database unavailable during {operation}.') from exc

    # Work settings

    def get_work_settings(self, doctor_id: str) -> dict[str, Any] | None:
        with self._guard('get_work_settings'):
            record = self.db.get(WorkSettingsRecord, doctor_id)
            if record is None:
                return None
            return {
                'slot_duration': record.slot_duration,
                'working_days': record.working_days or {},
                'blocks': record.blocks or [],
            }

    def put_work_settings(self, doctor_id: str, settings: WorkSettings, now: datetime) -> None:
        with self._guard('put_work_settings'):
            record = self.db.get(WorkSettingsRecord, doctor_id)
            if record is None:
                record = WorkSettingsRecord(doctor_id=doctor_id)
                self.db.add(record)

            record.slot_duration = settings.slot_duration
            record.working_days = {str(weekday): flag for weekday, flag in settings.working_days.items()}
            record.blocks = [block.model_dump() for block in settings.blocks]
            record.updated_at = now
            self.db.commit()

    # Per-date overrides

    def _find_override(self, doctor_id: str, key: str) -> DateAvailability | None:
        return self.db.query(DateAvailability).filter(
            DateAvailability.doctor_id == doctor_id,
            DateAvailability.date_key == key,
        ).first()

    @staticmethod
    def _override_document(record: DateAvailability) -> dict[str, Any]:
        return {
            'slots': record.slots,
            'ranges': record.ranges,
            'slot_duration': record.slot_duration,
        }

    def get_override(self, doctor_id: str, key: str) -> dict[str, Any] | None:
        with self._guard('get_override'):
            record = self._find_override(doctor_id, key)
            return self._override_document(record) if record else None

    def put_override(
        self,
        doctor_id: str,
        day: date,
        slots: list[str],
        slot_duration: int,
        generated_from: list[dict[str, str]],
        now: datetime,
    ) -> None:
        """Upsert with merge semantics: fields not written here are kept."""
        with self._guard('put_override'):
            key = day.isoformat()
            record = self._find_override(doctor_id, key)
            if record is None:
                record = DateAvailability(doctor_id=doctor_id, date_key=key, date=day)
                self.db.add(record)

            record.slots = slots
            record.slot_duration = slot_duration
            record.generated_from = generated_from
            record.updated_at = now
            self.db.commit()

    def delete_override(self, doctor_id: str, key: str) -> bool:
        with self._guard('delete_override'):
            record = self._find_override(doctor_id, key)
            if record is None:
                return False
            self.db.delete(record)
            self.db.commit()
            return True

    def list_overrides(self, doctor_id: str, first_key: str, last_key: str) -> list[tuple[str, dict[str, Any]]]:
        with self._guard('list_overrides'):
            records = self.db.query(DateAvailability).filter(
                DateAvailability.doctor_id == doctor_id,
                DateAvailability.date_key >= first_key,
                DateAvailability.date_key <= last_key,
            ).order_by(DateAvailability.date_key.asc()).all()
            return [(record.date_key, self._override_document(record)) for record in records]

    # Appointments

    def query_appointments(self, doctor_id: str, range_start: datetime, range_end: datetime) -> list[Appointment]:
        with self._guard('query_appointments'):
            return self.db.query(Appointment).filter(
                Appointment.doctor_id == doctor_id,
                Appointment.slot_start >= range_start,
                Appointment.slot_start <= range_end,
            ).order_by(Appointment.slot_start.asc()).all()

    def add_appointment(
        self,
        doctor_id: str,
        patient_id: str,
        reason: str,
        slot_start: datetime,
        slot_end: datetime,
        now: datetime,
    ) -> Appointment:
        with self._guard('add_appointment'):
            appointment = Appointment(
                doctor_id=doctor_id,
                patient_id=patient_id,
                reason=reason,
                slot_start=slot_start,
                slot_end=slot_end,
                status='requested',
                last_change_by='patient',
                created_at=now,
                updated_at=now,
            )
            self.db.add(appointment)
            self.db.commit()
            self.db.refresh(appointment)
            return appointment

    def get_appointment(self, appointment_id: int) -> Appointment | None:
        with self._guard('get_appointment'):
            return self.db.get(Appointment, appointment_id)

    def update_appointment_status(self, appointment: Appointment, status: str, actor: str | None, now: datetime) -> Appointment:
        with self._guard('update_appointment_status'):
            appointment.status = status
            appointment.last_change_by = actor
            appointment.updated_at = now
            self.db.commit()
            self.db.refresh(appointment)
            return appointment

    def list_appointments_for_user(self, user_id: str, role: str) -> list[Appointment]:
        field = Appointment.doctor_id if role == 'doctor' else Appointment.patient_id
        with self._guard('list_appointments_for_user'):
            return self.db.query(Appointment).filter(field == user_id).order_by(Appointment.slot_start.asc()).all()

    # Doctors

    def get_doctor(self, doctor_id: str) -> Doctor | None:
        with self._guard('get_doctor'):
            return self.db.get(Doctor, doctor_id)

    def query_doctors_in_latitude_band(
        self,
        min_lat: float,
        max_lat: float,
        verified_only: bool,
    ) -> list[Doctor]:
        with self._guard('query_doctors_in_latitude_band'):
            query = self.db.query(Doctor).filter(
                Doctor.role == 'doctor',
                Doctor.latitude >= min_lat,
                Doctor.latitude <= max_lat,
            )
            if verified_only:
                query = query.filter(Doctor.verified.is_(True))
            return query.order_by(Doctor.latitude.asc()).all()
