"""Slot occupancy checks."""

from datetime import date, time

from backend.models.appointment import ACTIVE_STATUSES
from backend.services.schedule_store import ScheduleStore


def has_conflict(store: ScheduleStore, doctor_id: int, slot_date: date, slot_time: time) -> bool:
    """Return True when the doctor already holds a pending or confirmed appointment in the slot."""
    colliding = store.find_appointments(
        doctor_id=doctor_id,
        statuses=ACTIVE_STATUSES,
        date_from=slot_date,
        date_to=slot_date,
        slot_time=slot_time,
    )
    return bool(colliding)


def occupied_times(store: ScheduleStore, doctor_id: int, slot_date: date) -> set[time]:
    appointments = store.find_appointments(
        doctor_id=doctor_id,
        statuses=ACTIVE_STATUSES,
        date_from=slot_date,
        date_to=slot_date,
    )
    return {appointment.time.replace(second=0, microsecond=0) for appointment in appointments}
