"""Appointment model definitions."""

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, Index, Integer, String, Text, Time, text
from backend.database import ACTIVE_SLOT_INDEX_NAME, Base


class AppointmentStatus(str, enum.Enum):
    """Lifecycle states of an appointment."""
    PENDING = "pendiente"
    CONFIRMED = "confirmada"
    COMPLETED = "completada"
    CANCELLED = "cancelada"


ACTIVE_STATUSES = frozenset({AppointmentStatus.PENDING, AppointmentStatus.CONFIRMED})


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Appointment(Base):
    """Represents a requested or scheduled appointment."""
    __tablename__ = "citas"

    id = Column(Integer, primary_key=True)
    patient_id = Column("paciente_id", Integer, ForeignKey("pacientes.id"), nullable=False, index=True)
    doctor_id = Column("medico_id", Integer, ForeignKey("usuarios.id"), nullable=False)
    date = Column("fecha", Date, nullable=False)
    time = Column("hora", Time, nullable=False)
    kind = Column("tipo_cita", String(100), nullable=False)
    reason = Column("motivo", Text, nullable=False)
    notes = Column("notas", Text, nullable=True)
    status = Column(
        "estado",
        Enum(
            AppointmentStatus,
            values_callable=lambda statuses: [item.value for item in statuses],
            native_enum=False,
            length=20,
        ),
        nullable=False,
        default=AppointmentStatus.PENDING,
    )
    created_at = Column("fecha_creacion", DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column("fecha_actualizacion", DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Appointment {self.id} doctor={self.doctor_id} {self.date} {self.time} {self.status.value}>"


# One active appointment per doctor slot; cancelled and completed rows do not count.
Index(
    ACTIVE_SLOT_INDEX_NAME,
    Appointment.doctor_id,
    Appointment.date,
    Appointment.time,
    unique=True,
    sqlite_where=text("estado IN ('pendiente', 'confirmada')"),
    postgresql_where=text("estado IN ('pendiente', 'confirmada')"),
)
