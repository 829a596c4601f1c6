"""Durable storage for appointments and availability windows."""

import logging
from datetime import date, time
from typing import Iterable

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from backend.core.errors import ConflictError, StoreError
from backend.models.appointment import Appointment, AppointmentStatus
from backend.models.availability import AvailabilityWindow
from backend.models.patient import Patient
from backend.models.user import Role, User

logger = logging.getLogger(__name__)

STORE_UNAVAILABLE_MESSAGE = 'Database unavailable. Verify DATABASE_URL and Postgres credentials.'


class ScheduleStore:
    """Thin query layer over a SQLAlchemy session.

    Writes are committed immediately. A failed write rolls the session back
    and surfaces as :class:`StoreError`, so callers never observe a partial
    update.
    """

    def __init__(self, db: Session):
        self.db = db

    def _commit(self, *instances) -> None:
        try:
            self.db.commit()
            for instance in instances:
                self.db.refresh(instance)
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception('Schedule store write failed')
            raise StoreError(STORE_UNAVAILABLE_MESSAGE) from exc

    def _read(self, query):
        try:
            return query()
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception('Schedule store read failed')
            raise StoreError(STORE_UNAVAILABLE_MESSAGE) from exc

    # Registry lookups

    def get_user(self, user_id: int) -> User | None:
        return self._read(lambda: self.db.get(User, user_id))

    def get_doctor(self, user_id: int) -> User | None:
        return self._read(
            lambda: self.db.query(User).filter(User.id == user_id, User.role == Role.DOCTOR).first()
        )

    def list_doctors(self) -> list[User]:
        return self._read(
            lambda: self.db.query(User).filter(User.role == Role.DOCTOR).order_by(User.username.asc()).all()
        )

    def get_patient(self, patient_id: int) -> Patient | None:
        return self._read(lambda: self.db.get(Patient, patient_id))

    def get_patient_for_user(self, user_id: int) -> Patient | None:
        return self._read(lambda: self.db.query(Patient).filter(Patient.user_id == user_id).first())

    # Appointments

    def add_appointment(self, appointment: Appointment) -> Appointment:
        self.db.add(appointment)
        try:
            self.db.commit()
            self.db.refresh(appointment)
        except IntegrityError as exc:
            self.db.rollback()
            raise ConflictError('The doctor already has an appointment at that time.') from exc
        except SQLAlchemyError as exc:
            self.db.rollback()
            logger.exception('Schedule store write failed')
            raise StoreError(STORE_UNAVAILABLE_MESSAGE) from exc
        return appointment

    def get_appointment(self, appointment_id: int) -> Appointment | None:
        return self._read(lambda: self.db.get(Appointment, appointment_id))

    def find_appointments(
        self,
        doctor_id: int | None = None,
        patient_id: int | None = None,
        statuses: Iterable[AppointmentStatus] | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        slot_time: time | None = None,
        newest_first: bool = False,
    ) -> list[Appointment]:
        query = self.db.query(Appointment)
        if doctor_id is not None:
            query = query.filter(Appointment.doctor_id == doctor_id)
        if patient_id is not None:
            query = query.filter(Appointment.patient_id == patient_id)
        if statuses is not None:
            query = query.filter(Appointment.status.in_(list(statuses)))
        if date_from is not None:
            query = query.filter(Appointment.date >= date_from)
        if date_to is not None:
            query = query.filter(Appointment.date <= date_to)
        if slot_time is not None:
            query = query.filter(Appointment.time == slot_time)

        if newest_first:
            query = query.order_by(Appointment.date.desc(), Appointment.time.desc())
        else:
            query = query.order_by(Appointment.date.asc(), Appointment.time.asc())

        return self._read(query.all)

    def update_appointment(self, appointment: Appointment, **fields) -> Appointment:
        for field, value in fields.items():
            setattr(appointment, field, value)
        self._commit(appointment)
        return appointment

    # Availability windows

    def add_window(self, window: AvailabilityWindow) -> AvailabilityWindow:
        self.db.add(window)
        self._commit(window)
        return window

    def get_window(self, window_id: int) -> AvailabilityWindow | None:
        return self._read(lambda: self.db.get(AvailabilityWindow, window_id))

    def find_windows(
        self,
        doctor_id: int,
        weekday: int | None = None,
        active_only: bool = False,
    ) -> list[AvailabilityWindow]:
        query = self.db.query(AvailabilityWindow).filter(AvailabilityWindow.doctor_id == doctor_id)
        if weekday is not None:
            query = query.filter(AvailabilityWindow.weekday == int(weekday))
        if active_only:
            query = query.filter(AvailabilityWindow.active.is_(True))
        query = query.order_by(AvailabilityWindow.weekday.asc(), AvailabilityWindow.start_time.asc())
        return self._read(query.all)

    def find_overlapping_windows(
        self,
        doctor_id: int,
        weekday: int,
        start_time: time,
        end_time: time,
    ) -> list[AvailabilityWindow]:
        return self._read(
            self.db.query(AvailabilityWindow).filter(
                AvailabilityWindow.doctor_id == doctor_id,
                AvailabilityWindow.weekday == int(weekday),
                AvailabilityWindow.start_time < end_time,
                AvailabilityWindow.end_time > start_time,
            ).all
        )

    def update_window(self, window: AvailabilityWindow, **fields) -> AvailabilityWindow:
        for field, value in fields.items():
            setattr(window, field, value)
        self._commit(window)
        return window

    def delete_window(self, window: AvailabilityWindow) -> None:
        self.db.delete(window)
        self._commit()
