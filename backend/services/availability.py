"""Doctors' recurring weekly availability."""

import logging
from datetime import date, datetime, time, timedelta

from backend.core import config
from backend.core.errors import ConflictError, NotFoundError, PermissionDeniedError, ValidationError
from backend.models.availability import AvailabilityWindow, Weekday
from backend.services.conflicts import occupied_times
from backend.services.schedule_store import ScheduleStore

logger = logging.getLogger(__name__)


def parse_weekday(value) -> Weekday:
    try:
        return Weekday(int(value))
    except (TypeError, ValueError) as exc:
        raise ValidationError('Weekday must be between 1 (Monday) and 7 (Sunday).') from exc


def weekday_of(day: date) -> Weekday:
    return Weekday(day.isoweekday())


def window_minutes(start: time, end: time) -> int:
    delta = datetime.combine(date.min, end) - datetime.combine(date.min, start)
    return int(delta.total_seconds() // 60)


def iterate_slot_starts(window: AvailabilityWindow) -> list[time]:
    """Slot start times that fit entirely inside the window."""
    duration = timedelta(minutes=window.slot_duration_minutes)
    current = datetime.combine(date.min, window.start_time)
    window_end = datetime.combine(date.min, window.end_time)

    starts: list[time] = []
    while current + duration <= window_end:
        starts.append(current.time())
        current += duration
    return starts


class AvailabilityManager:
    """CRUD over doctors' weekly windows with overlap rejection."""

    def __init__(self, store: ScheduleStore):
        self.store = store

    def _require_doctor(self, doctor_id: int) -> None:
        if self.store.get_doctor(doctor_id) is None:
            raise NotFoundError('Doctor not found.')

    def _owned_window(self, window_id: int, doctor_id: int) -> AvailabilityWindow:
        window = self.store.get_window(window_id)
        if window is None:
            raise NotFoundError('Availability window not found.')
        if window.doctor_id != doctor_id:
            raise PermissionDeniedError('This availability window belongs to another doctor.')
        return window

    def add_window(
        self,
        doctor_id: int,
        weekday,
        start: time,
        end: time,
        slot_duration: int | None = None,
        active: bool = True,
    ) -> int:
        weekday = parse_weekday(weekday)
        if slot_duration is None:
            slot_duration = config.DEFAULT_SLOT_DURATION_MINUTES

        if start >= end:
            raise ValidationError('End time must be later than start time.')
        if slot_duration <= 0:
            raise ValidationError('Slot duration must be a positive number of minutes.')
        if slot_duration > window_minutes(start, end):
            raise ValidationError('Slot duration cannot be longer than the window itself.')

        self._require_doctor(doctor_id)

        # Inactive windows still occupy their interval.
        if self.store.find_overlapping_windows(doctor_id, weekday, start, end):
            raise ConflictError('An existing window overlaps this interval.')

        window = self.store.add_window(
            AvailabilityWindow(
                doctor_id=doctor_id,
                weekday=int(weekday),
                start_time=start,
                end_time=end,
                slot_duration_minutes=slot_duration,
                active=active,
            )
        )
        logger.info(
            'Availability window %s added: doctor %s, %s %s-%s',
            window.id, doctor_id, weekday.name, start.isoformat(), end.isoformat(),
        )
        return window.id

    def set_active(self, window_id: int, doctor_id: int, active: bool) -> AvailabilityWindow:
        window = self._owned_window(window_id, doctor_id)
        if window.active == active:
            return window
        self.store.update_window(window, active=active)
        logger.info('Availability window %s %s by doctor %s', window_id, 'activated' if active else 'deactivated', doctor_id)
        return window

    def delete_window(self, window_id: int, doctor_id: int) -> None:
        window = self._owned_window(window_id, doctor_id)
        self.store.delete_window(window)
        logger.info('Availability window %s deleted by doctor %s', window_id, doctor_id)

    def list_windows(self, doctor_id: int, active_only: bool = False) -> list[AvailabilityWindow]:
        return self.store.find_windows(doctor_id, active_only=active_only)

    def has_published_schedule(self, doctor_id: int) -> bool:
        # Deactivated windows still count, so switching one off hides its times.
        return bool(self.store.find_windows(doctor_id))

    def covers(self, doctor_id: int, slot_date: date, slot_time: time) -> bool:
        """Whether a whole slot starting at ``slot_time`` fits inside an active window."""
        windows = self.store.find_windows(doctor_id, weekday=weekday_of(slot_date), active_only=True)
        start = datetime.combine(slot_date, slot_time)
        return any(
            window.start_time <= slot_time
            and start + timedelta(minutes=window.slot_duration_minutes) <= datetime.combine(slot_date, window.end_time)
            for window in windows
        )

    def open_slots(self, doctor_id: int, slot_date: date) -> list[time]:
        windows = self.store.find_windows(doctor_id, weekday=weekday_of(slot_date), active_only=True)
        taken = occupied_times(self.store, doctor_id, slot_date)

        slots: set[time] = set()
        for window in windows:
            slots.update(start for start in iterate_slot_starts(window) if start not in taken)
        return sorted(slots)
