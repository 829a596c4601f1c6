from fastapi import Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from backend.database import ensure_schedule_schema, get_db
from backend.services.availability import AvailabilityManager
from backend.services.schedule_store import STORE_UNAVAILABLE_MESSAGE, ScheduleStore
from backend.services.scheduling import SchedulingService


def ensure_database_ready() -> None:
    try:
        ensure_schedule_schema()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=STORE_UNAVAILABLE_MESSAGE,
        ) from exc


def get_store(db: Session = Depends(get_db)) -> ScheduleStore:
    return ScheduleStore(db)


def get_availability_manager(store: ScheduleStore = Depends(get_store)) -> AvailabilityManager:
    return AvailabilityManager(store)


def get_scheduling_service(
    store: ScheduleStore = Depends(get_store),
    availability: AvailabilityManager = Depends(get_availability_manager),
) -> SchedulingService:
    return SchedulingService(store, availability=availability)
