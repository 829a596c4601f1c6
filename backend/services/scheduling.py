"""Appointment requests and the status workflow."""

import logging
from datetime import date, time, timedelta
from typing import Callable, Iterable

from backend.auth.identity import Actor
from backend.core import config
from backend.core.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from backend.models.appointment import Appointment, AppointmentStatus
from backend.models.patient import Patient
from backend.models.user import Role, User
from backend.services.availability import AvailabilityManager
from backend.services.conflicts import has_conflict
from backend.services.schedule_store import ScheduleStore
from backend.services.state_machine import Capability, authorize, check_transition, parse_role, parse_status

logger = logging.getLogger(__name__)


def _required_text(value: str | None, field_name: str) -> str:
    normalized = (value or '').strip()
    if not normalized:
        raise ValidationError(f'{field_name} is required.')
    return normalized


def normalize_notes(notes: str | None) -> str | None:
    if notes is None:
        return None

    normalized = notes.strip()
    if not normalized:
        return None

    if len(normalized) > config.MAX_APPOINTMENT_NOTES_LENGTH:
        raise ValidationError(f'Notes must be {config.MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

    return normalized


class SchedulingService:
    """Orchestrates the store, conflict checker, availability and state machine."""

    def __init__(
        self,
        store: ScheduleStore,
        availability: AvailabilityManager | None = None,
        today: Callable[[], date] | None = None,
        enforce_availability: bool | None = None,
        booking_range_days: int | None = None,
    ):
        self.store = store
        self.availability = availability or AvailabilityManager(store)
        self.today = today or date.today
        self.enforce_availability = (
            config.ENFORCE_AVAILABILITY if enforce_availability is None else enforce_availability
        )
        self.booking_range_days = (
            config.BOOKING_RANGE_DAYS if booking_range_days is None else booking_range_days
        )

    # Helpers

    def _load(self, appointment_id: int) -> Appointment:
        appointment = self.store.get_appointment(appointment_id)
        if appointment is None:
            raise NotFoundError('Appointment not found.')
        return appointment

    def _patient_user_id(self, appointment: Appointment) -> int | None:
        patient = self.store.get_patient(appointment.patient_id)
        return patient.user_id if patient is not None else None

    def patient_for_user(self, user_id: int) -> Patient:
        patient = self.store.get_patient_for_user(user_id)
        if patient is None:
            raise NotFoundError('Patient record not found.')
        return patient

    def _validate_date(self, slot_date: date) -> None:
        today = self.today()
        if slot_date < today:
            raise ValidationError('Appointments cannot be requested for past dates.')
        if self.booking_range_days > 0 and slot_date > today + timedelta(days=self.booking_range_days):
            raise ValidationError(
                f'Appointments can only be requested up to {self.booking_range_days} days in advance.'
            )

    # Commands

    def request_appointment(
        self,
        patient_id: int,
        doctor_id: int,
        slot_date: date,
        slot_time: time,
        kind: str,
        reason: str,
        notes: str | None = None,
    ) -> int:
        kind = _required_text(kind, 'Appointment type')
        reason = _required_text(reason, 'Reason')
        notes = normalize_notes(notes)
        slot_time = slot_time.replace(second=0, microsecond=0)

        self._validate_date(slot_date)

        if self.store.get_patient(patient_id) is None:
            raise NotFoundError('Patient not found.')
        if self.store.get_doctor(doctor_id) is None:
            raise NotFoundError('Doctor not found.')

        if (
            self.enforce_availability
            and self.availability.has_published_schedule(doctor_id)
            and not self.availability.covers(doctor_id, slot_date, slot_time)
        ):
            raise ValidationError("The requested time is outside the doctor's consulting hours.")

        if has_conflict(self.store, doctor_id, slot_date, slot_time):
            raise ConflictError('The doctor already has an appointment at that time.')

        # The active-slot unique index turns a lost race into ConflictError here.
        appointment = self.store.add_appointment(
            Appointment(
                patient_id=patient_id,
                doctor_id=doctor_id,
                date=slot_date,
                time=slot_time,
                kind=kind,
                reason=reason,
                notes=notes,
                status=AppointmentStatus.PENDING,
            )
        )
        logger.info(
            'Appointment %s requested: patient %s, doctor %s, %s %s',
            appointment.id, patient_id, doctor_id, slot_date.isoformat(), slot_time.isoformat(),
        )
        return appointment.id

    def request_appointment_for_user(self, user_id: int, doctor_id: int, slot_date: date, slot_time: time,
                                     kind: str, reason: str, notes: str | None = None) -> int:
        patient = self.patient_for_user(user_id)
        return self.request_appointment(patient.id, doctor_id, slot_date, slot_time, kind, reason, notes)

    def change_status(self, appointment_id: int, actor_id: int, actor_role: Role, target) -> Appointment:
        target = parse_status(target)
        actor = Actor(id=actor_id, role=parse_role(actor_role))
        appointment = self._load(appointment_id)

        authorize(actor, Capability.TRANSITION, appointment, self._patient_user_id(appointment))
        check_transition(actor.role, appointment.status, target)

        previous = appointment.status
        self.store.update_appointment(appointment, status=target)
        logger.info(
            'Appointment %s moved from %s to %s by %s %s',
            appointment_id, previous.value, target.value, actor.role.value, actor.id,
        )
        return appointment

    def cancel(self, appointment_id: int, patient_user_id: int) -> Appointment:
        return self.change_status(appointment_id, patient_user_id, Role.PATIENT, AppointmentStatus.CANCELLED)

    def edit_notes(self, appointment_id: int, doctor_id: int, notes: str | None) -> Appointment:
        actor = Actor(id=doctor_id, role=Role.DOCTOR)
        appointment = self._load(appointment_id)
        authorize(actor, Capability.ANNOTATE, appointment, None)

        self.store.update_appointment(appointment, notes=normalize_notes(notes))
        logger.info('Notes for appointment %s updated by doctor %s', appointment_id, doctor_id)
        return appointment

    # Queries

    def get_appointment(self, appointment_id: int, actor: Actor) -> Appointment:
        appointment = self._load(appointment_id)
        authorize(actor, Capability.READ, appointment, self._patient_user_id(appointment))
        return appointment

    def list_for_actor(
        self,
        actor: Actor,
        statuses: Iterable[AppointmentStatus] | None = None,
    ) -> list[Appointment]:
        if actor.role == Role.DOCTOR:
            return self.store.find_appointments(doctor_id=actor.id, statuses=statuses, newest_first=True)
        if actor.role == Role.PATIENT:
            patient = self.patient_for_user(actor.id)
            return self.store.find_appointments(patient_id=patient.id, statuses=statuses, newest_first=True)
        if actor.role == Role.NURSE:
            return self.store.find_appointments(statuses=statuses, newest_first=True)
        raise PermissionDeniedError('Unknown role.')

    def list_pending(self, doctor_id: int) -> list[Appointment]:
        return self.store.find_appointments(doctor_id=doctor_id, statuses=[AppointmentStatus.PENDING])

    def list_doctors(self) -> list[User]:
        return self.store.list_doctors()
