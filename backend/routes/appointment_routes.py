from datetime import date, datetime, time

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator

from backend.auth.dependencies import get_current_actor, require_role
from backend.auth.identity import Actor
from backend.core.errors import SchedulingError, to_http_exception
from backend.models.appointment import AppointmentStatus
from backend.models.user import Role
from backend.routes.dependencies import ensure_database_ready, get_scheduling_service
from backend.services.scheduling import SchedulingService

router = APIRouter(tags=['appointments'])


class CreateAppointmentRequest(BaseModel):
    doctor_id: int
    date: date
    time: time
    appointment_type: str
    reason: str
    notes: str | None = None

    @field_validator('time')
    @classmethod
    def drop_seconds(cls, value: time) -> time:
        return value.replace(second=0, microsecond=0)


class ChangeStatusRequest(BaseModel):
    status: str


class EditNotesRequest(BaseModel):
    notes: str | None = None


class CreatedAppointmentResponse(BaseModel):
    id: int
    status: AppointmentStatus
    message: str


class AppointmentResponse(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    date: date
    time: time
    appointment_type: str
    reason: str
    notes: str | None = None
    status: AppointmentStatus
    created_at: datetime
    updated_at: datetime


class DoctorResponse(BaseModel):
    id: int
    username: str

    class Config:
        from_attributes = True


def to_response(appointment) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        patient_id=appointment.patient_id,
        doctor_id=appointment.doctor_id,
        date=appointment.date,
        time=appointment.time,
        appointment_type=appointment.kind,
        reason=appointment.reason,
        notes=appointment.notes,
        status=appointment.status,
        created_at=appointment.created_at,
        updated_at=appointment.updated_at,
    )


@router.get('/doctors', response_model=list[DoctorResponse])
def list_doctors(
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    del actor
    ensure_database_ready()

    try:
        return service.list_doctors()
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.post('', response_model=CreatedAppointmentResponse, status_code=status.HTTP_201_CREATED)
def request_appointment(
    data: CreateAppointmentRequest,
    actor: Actor = Depends(require_role(Role.PATIENT)),
    service: SchedulingService = Depends(get_scheduling_service),
):
    ensure_database_ready()

    try:
        appointment_id = service.request_appointment_for_user(
            actor.id,
            doctor_id=data.doctor_id,
            slot_date=data.date,
            slot_time=data.time,
            kind=data.appointment_type,
            reason=data.reason,
            notes=data.notes,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return CreatedAppointmentResponse(
        id=appointment_id,
        status=AppointmentStatus.PENDING,
        message='Appointment requested. The doctor will review and confirm it.',
    )


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    status_filter: AppointmentStatus | None = Query(default=None, alias='status'),
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    ensure_database_ready()

    statuses = [status_filter] if status_filter is not None else None
    try:
        appointments = service.list_for_actor(actor, statuses=statuses)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return [to_response(appointment) for appointment in appointments]


@router.get('/pending', response_model=list[AppointmentResponse])
def list_pending_appointments(
    actor: Actor = Depends(require_role(Role.DOCTOR)),
    service: SchedulingService = Depends(get_scheduling_service),
):
    ensure_database_ready()

    try:
        appointments = service.list_pending(actor.id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return [to_response(appointment) for appointment in appointments]


@router.get('/{appointment_id}', response_model=AppointmentResponse)
def get_appointment(
    appointment_id: int,
    actor: Actor = Depends(get_current_actor),
    service: SchedulingService = Depends(get_scheduling_service),
):
    ensure_database_ready()

    try:
        return to_response(service.get_appointment(appointment_id, actor))
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.post('/{appointment_id}/status', response_model=AppointmentResponse)
def change_appointment_status(
    appointment_id: int,
    data: ChangeStatusRequest,
    actor: Actor = Depends(require_role(Role.DOCTOR, Role.PATIENT)),
    service: SchedulingService = Depends(get_scheduling_service),
):
    ensure_database_ready()

    try:
        appointment = service.change_status(appointment_id, actor.id, actor.role, data.status)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return to_response(appointment)


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    actor: Actor = Depends(require_role(Role.PATIENT)),
    service: SchedulingService = Depends(get_scheduling_service),
):
    ensure_database_ready()

    try:
        appointment = service.cancel(appointment_id, actor.id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return to_response(appointment)


@router.put('/{appointment_id}/notes', response_model=AppointmentResponse)
def edit_appointment_notes(
    appointment_id: int,
    data: EditNotesRequest,
    actor: Actor = Depends(require_role(Role.DOCTOR)),
    service: SchedulingService = Depends(get_scheduling_service),
):
    ensure_database_ready()

    try:
        appointment = service.edit_notes(appointment_id, actor.id, data.notes)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return to_response(appointment)
