"""Scheduling API used by the routes: templates, bookable slots and booking."""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from pydantic import ValidationError

from agenda.core import config
from agenda.core.clock import Clock, SystemClock
from agenda.core.errors import (
    AppointmentNotFound,
    InvalidFormat,
    InvalidStatus,
    MalformedAvailability,
    OutOfRange,
    SlotTakenError,
    SlotUnavailableError,
)
from agenda.models.appointment import Appointment
from agenda.scheduling.conflicts import (
    ACTIVE_STATUSES,
    APPOINTMENT_STATUSES,
    SlotAvailability,
    busy_starts,
    end_of_day,
    filter_bookable,
    occupies_slot,
    slot_datetime,
    start_of_day,
)
from agenda.scheduling.documents import AvailabilityDocument, document_slots, parse_availability_document
from agenda.scheduling.normalizer import chain_sequential
from agenda.scheduling.resolver import date_key, generate_master_slots, intersect_selection, resolve_date_slots
from agenda.scheduling.settings import (
    LegacySchedule,
    TimeBlock,
    WorkSettings,
    clean_work_settings,
    merge_with_defaults,
)
from agenda.scheduling.timeofday import format_range, format_time_of_day, parse_time_of_day
from agenda.store import SchedulingStore

logger = logging.getLogger(__name__)

MALFORMED_DATA_ERRORS = (InvalidFormat, OutOfRange, MalformedAvailability, ValidationError)


@dataclass(frozen=True)
class OverrideSaveResult:
    date_key: str
    slots: list[int]
    deleted: bool


@dataclass(frozen=True)
class DaySelection:
    master: list[int]
    selected: list[int]


def as_time_of_day(slot: int | str) -> int:
    if isinstance(slot, str):
        return parse_time_of_day(slot)
    return int(slot)


class SchedulingService:
    def __init__(self, store: SchedulingStore, clock: Clock | None = None):
        self.store = store
        self.clock = clock or SystemClock()

    def _degrade(self, doctor_id: str, day: date, exc: Exception):
        if config.STRICT_SLOT_DATA:
            raise exc
        logger.warning(
            'Malformed availability data for doctor %s on %s, showing no slots: %s',
            doctor_id,
            date_key(day),
            exc,
        )

    # Work settings

    def get_work_settings(self, doctor_id: str) -> WorkSettings:
        return merge_with_defaults(self.store.get_work_settings(doctor_id))

    def save_work_settings(self, doctor_id: str, settings: WorkSettings) -> WorkSettings:
        cleaned = clean_work_settings(settings)
        self.store.put_work_settings(doctor_id, cleaned, self.clock.now())
        logger.info('Saved work settings for doctor %s (%d blocks)', doctor_id, len(cleaned.blocks))
        return cleaned

    def get_master_template(self, doctor_id: str, day: date) -> list[int]:
        try:
            return generate_master_slots(day, self.get_work_settings(doctor_id))
        except MALFORMED_DATA_ERRORS as exc:
            self._degrade(doctor_id, day, exc)
            return []

    # Date overrides

    def _load_override(self, doctor_id: str, day: date) -> AvailabilityDocument | None:
        return parse_availability_document(self.store.get_override(doctor_id, date_key(day)))

    def _load_legacy_schedule(self, doctor_id: str) -> LegacySchedule | None:
        doctor = self.store.get_doctor(doctor_id)
        if doctor is None or not doctor.schedule:
            return None
        return LegacySchedule.from_document(doctor.schedule)

    def resolve_slots(self, doctor_id: str, day: date) -> list[int]:
        legacy_schedule = None
        try:
            override = self._load_override(doctor_id, day)
            if override is None:
                legacy_schedule = self._load_legacy_schedule(doctor_id)
            return resolve_date_slots(day, self.get_work_settings(doctor_id), override, legacy_schedule)
        except MALFORMED_DATA_ERRORS as exc:
            self._degrade(doctor_id, day, exc)
            return []

    def get_day_selection(self, doctor_id: str, day: date) -> DaySelection:
        """Master template plus the saved choices still inside it."""
        master = self.get_master_template(doctor_id, day)
        try:
            override = self._load_override(doctor_id, day)
            if override is None:
                return DaySelection(master=master, selected=[])
            selected = intersect_selection(master, document_slots(override))
        except MALFORMED_DATA_ERRORS as exc:
            self._degrade(doctor_id, day, exc)
            selected = []
        return DaySelection(master=master, selected=selected)

    def save_date_override(self, doctor_id: str, day: date, chosen_slots: list[int | str]) -> OverrideSaveResult:
        settings = self.get_work_settings(doctor_id)
        master = generate_master_slots(day, settings)
        chosen = [as_time_of_day(slot) for slot in chosen_slots]
        slots = intersect_selection(master, chosen)
        key = date_key(day)

        if len(slots) < len(set(chosen)):
            logger.info('Dropped %d slot(s) outside the template for doctor %s on %s', len(set(chosen)) - len(slots), doctor_id, key)

        if not slots:
            self.store.delete_override(doctor_id, key)
            logger.info('Cleared availability for doctor %s on %s', doctor_id, key)
            return OverrideSaveResult(date_key=key, slots=[], deleted=True)

        self.store.put_override(
            doctor_id,
            day,
            slots=[format_time_of_day(slot) for slot in slots],
            slot_duration=settings.slot_duration,
            generated_from=[block.model_dump() for block in settings.blocks],
            now=self.clock.now(),
        )
        logger.info('Saved %d slot(s) for doctor %s on %s', len(slots), doctor_id, key)
        return OverrideSaveResult(date_key=key, slots=slots, deleted=False)

    def delete_date_override(self, doctor_id: str, day: date) -> bool:
        return self.store.delete_override(doctor_id, date_key(day))

    def _count_published_slots(
        self,
        doctor_id: str,
        first_day: date,
        last_day: date,
    ) -> dict[str, int]:
        """Slots still offered per stored date, after dropping choices outside the template."""
        overrides = self.store.list_overrides(doctor_id, date_key(first_day), date_key(last_day))
        if not overrides:
            return {}

        try:
            settings = self.get_work_settings(doctor_id)
        except MALFORMED_DATA_ERRORS as exc:
            self._degrade(doctor_id, first_day, exc)
            return {key: 0 for key, _ in overrides}

        counts = {}
        for key, raw in overrides:
            day = date.fromisoformat(key)
            try:
                counts[key] = len(resolve_date_slots(day, settings, parse_availability_document(raw)))
            except MALFORMED_DATA_ERRORS as exc:
                self._degrade(doctor_id, day, exc)
                counts[key] = 0
        return counts

    def list_month_availability(self, doctor_id: str, year: int, month: int) -> dict[str, int]:
        first_day = date(year, month, 1)
        next_month = date(year + month // 12, month % 12 + 1, 1)
        return self._count_published_slots(doctor_id, first_day, next_month - timedelta(days=1))

    def list_available_dates(self, doctor_id: str, days_ahead: int | None = None) -> list[date]:
        days_ahead = config.AVAILABLE_DATES_DAYS_AHEAD if days_ahead is None else days_ahead
        today = self.clock.now().date()

        counts = self._count_published_slots(doctor_id, today, today + timedelta(days=days_ahead))
        return [date.fromisoformat(key) for key, count in counts.items() if count > 0]

    def normalize_block_draft(self, blocks: list[TimeBlock], slot_duration: int) -> list[TimeBlock]:
        """Gapless, non-overlapping preview of blocks typed in the editor."""
        chained = chain_sequential((block.to_range() for block in blocks), slot_duration)
        return [TimeBlock(**format_range(time_range)) for time_range in chained]

    # Booking

    def compute_busy_set(self, doctor_id: str, day: date, exclude_id: int | None = None) -> set[datetime]:
        appointments = self.store.query_appointments(doctor_id, start_of_day(day), end_of_day(day))
        return busy_starts(
            (appointment.slot_start, appointment.status)
            for appointment in appointments
            if exclude_id is None or appointment.id != exclude_id
        )

    def accepts_new_patients(self, doctor_id: str) -> bool:
        doctor = self.store.get_doctor(doctor_id)
        return doctor is None or doctor.accepts_new_patients is not False

    def get_bookable_slots(self, doctor_id: str, day: date) -> list[SlotAvailability]:
        slots = self.resolve_slots(doctor_id, day)
        if not slots:
            return []
        busy = self.compute_busy_set(doctor_id, day)
        return filter_bookable(day, slots, busy, self.clock.now(), accepting=self.accepts_new_patients(doctor_id))

    def reserve(
        self,
        doctor_id: str,
        patient_id: str,
        day: date,
        slot_start: datetime,
        duration: int,
        reason: str = '',
    ) -> Appointment:
        # Read-then-write: two concurrent calls can both pass this check.
        if slot_start in self.compute_busy_set(doctor_id, day):
            raise SlotTakenError('This slot was just taken by another patient. Choose another one.')

        appointment = self.store.add_appointment(
            doctor_id=doctor_id,
            patient_id=patient_id,
            reason=reason,
            slot_start=slot_start,
            slot_end=slot_start + timedelta(minutes=duration),
            now=self.clock.now(),
        )
        logger.info('Booked appointment %s for doctor %s at %s', appointment.id, doctor_id, slot_start.isoformat())
        return appointment

    def request_booking(
        self,
        doctor_id: str,
        patient_id: str,
        day: date,
        slot: int | str,
        reason: str = '',
    ) -> Appointment:
        chosen = as_time_of_day(slot)
        if chosen not in self.resolve_slots(doctor_id, day):
            raise SlotUnavailableError('The doctor has not published this slot.', reason='not_offered')

        slot_start = slot_datetime(day, chosen)
        if slot_start <= self.clock.now():
            raise SlotUnavailableError('This slot is already in the past.', reason='past')

        if not self.accepts_new_patients(doctor_id):
            raise SlotUnavailableError('This doctor is not accepting new patients.', reason='not_accepting')

        duration = self.get_work_settings(doctor_id).slot_duration
        return self.reserve(doctor_id, patient_id, day, slot_start, duration, reason)

    def update_appointment_status(self, appointment_id: int, status: str, actor: str | None = None) -> Appointment:
        normalized = (status or '').strip().lower()
        if normalized not in APPOINTMENT_STATUSES:
            raise InvalidStatus(f'Invalid appointment status {status!r}.')

        appointment = self.store.get_appointment(appointment_id)
        if appointment is None:
            raise AppointmentNotFound('Appointment not found.')

        reactivating = normalized in ACTIVE_STATUSES and not occupies_slot(appointment.status)
        if reactivating and appointment.slot_start is not None:
            slot_start = appointment.slot_start.replace(second=0, microsecond=0)
            busy = self.compute_busy_set(appointment.doctor_id, slot_start.date(), exclude_id=appointment.id)
            if slot_start in busy:
                raise SlotTakenError('Another appointment already holds this slot.')

        return self.store.update_appointment_status(appointment, normalized, actor, self.clock.now())

    def list_appointments(self, user_id: str, role: str = 'patient') -> list[Appointment]:
        return self.store.list_appointments_for_user(user_id, role)
