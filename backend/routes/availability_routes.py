from datetime import date, time

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_validator

from backend.auth.dependencies import get_current_actor, require_role
from backend.auth.identity import Actor
from backend.core import config
from backend.core.errors import NotFoundError, SchedulingError, to_http_exception
from backend.models.availability import Weekday
from backend.models.user import Role
from backend.routes.dependencies import ensure_database_ready, get_availability_manager, get_store
from backend.services.availability import AvailabilityManager
from backend.services.schedule_store import ScheduleStore

router = APIRouter(tags=['availability'])


class CreateWindowRequest(BaseModel):
    weekday: int
    start_time: time
    end_time: time
    slot_duration_minutes: int = config.DEFAULT_SLOT_DURATION_MINUTES
    active: bool = True

    @field_validator('start_time', 'end_time')
    @classmethod
    def drop_seconds(cls, value: time) -> time:
        return value.replace(second=0, microsecond=0)


class UpdateWindowRequest(BaseModel):
    active: bool


class WindowResponse(BaseModel):
    id: int
    doctor_id: int
    weekday: Weekday
    start_time: time
    end_time: time
    slot_duration_minutes: int
    active: bool

    class Config:
        from_attributes = True


class CreatedWindowResponse(BaseModel):
    id: int
    message: str


class OpenSlotResponse(BaseModel):
    date: date
    time: time


@router.get('/windows', response_model=list[WindowResponse])
def list_my_windows(
    actor: Actor = Depends(require_role(Role.DOCTOR)),
    manager: AvailabilityManager = Depends(get_availability_manager),
):
    ensure_database_ready()

    try:
        return manager.list_windows(actor.id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.post('/windows', response_model=CreatedWindowResponse, status_code=status.HTTP_201_CREATED)
def create_window(
    data: CreateWindowRequest,
    actor: Actor = Depends(require_role(Role.DOCTOR)),
    manager: AvailabilityManager = Depends(get_availability_manager),
):
    ensure_database_ready()

    try:
        window_id = manager.add_window(
            actor.id,
            data.weekday,
            data.start_time,
            data.end_time,
            slot_duration=data.slot_duration_minutes,
            active=data.active,
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return CreatedWindowResponse(id=window_id, message='Availability window added.')


@router.patch('/windows/{window_id}', response_model=WindowResponse)
def update_window(
    window_id: int,
    data: UpdateWindowRequest,
    actor: Actor = Depends(require_role(Role.DOCTOR)),
    manager: AvailabilityManager = Depends(get_availability_manager),
):
    ensure_database_ready()

    try:
        return manager.set_active(window_id, actor.id, data.active)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.delete('/windows/{window_id}', status_code=status.HTTP_204_NO_CONTENT)
def remove_window(
    window_id: int,
    actor: Actor = Depends(require_role(Role.DOCTOR)),
    manager: AvailabilityManager = Depends(get_availability_manager),
):
    ensure_database_ready()

    try:
        manager.delete_window(window_id, actor.id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/doctors/{doctor_id}/windows', response_model=list[WindowResponse])
def list_doctor_windows(
    doctor_id: int,
    actor: Actor = Depends(get_current_actor),
    store: ScheduleStore = Depends(get_store),
    manager: AvailabilityManager = Depends(get_availability_manager),
):
    del actor
    ensure_database_ready()

    try:
        if store.get_doctor(doctor_id) is None:
            raise NotFoundError('Doctor not found.')
        return manager.list_windows(doctor_id, active_only=True)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc


@router.get('/doctors/{doctor_id}/slots', response_model=list[OpenSlotResponse])
def list_open_slots(
    doctor_id: int,
    slot_date: date = Query(..., alias='date'),
    actor: Actor = Depends(get_current_actor),
    store: ScheduleStore = Depends(get_store),
    manager: AvailabilityManager = Depends(get_availability_manager),
):
    del actor
    ensure_database_ready()

    try:
        if store.get_doctor(doctor_id) is None:
            raise NotFoundError('Doctor not found.')
        slots = manager.open_slots(doctor_id, slot_date)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc

    return [OpenSlotResponse(date=slot_date, time=slot_time) for slot_time in slots]
