"""Availability model definitions."""

import enum

from sqlalchemy import Boolean, Column, ForeignKey, Integer, Time
from backend.database import Base


class Weekday(enum.IntEnum):
    """ISO weekday numbers, Monday first."""
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    SUNDAY = 7


class AvailabilityWindow(Base):
    """A doctor's recurring weekly consulting window."""
    __tablename__ = "horarios_medicos"

    id = Column(Integer, primary_key=True)
    doctor_id = Column("medico_id", Integer, ForeignKey("usuarios.id"), nullable=False, index=True)
    weekday = Column("dia_semana", Integer, nullable=False)
    start_time = Column("hora_inicio", Time, nullable=False)
    end_time = Column("hora_fin", Time, nullable=False)
    slot_duration_minutes = Column("duracion_cita", Integer, nullable=False, default=30)
    active = Column("disponible", Boolean, nullable=False, default=True)
