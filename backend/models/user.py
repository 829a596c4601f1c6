"""User model definitions."""

import enum

from sqlalchemy import Column, Enum, Integer, String
from backend.database import Base


class Role(str, enum.Enum):
    """User roles, stored with their legacy Spanish values."""
    DOCTOR = "medico"
    NURSE = "enfermero"
    PATIENT = "paciente"


class User(Base):
    """Represents an application user."""
    __tablename__ = "usuarios"

    id = Column(Integer, primary_key=True, index=True)
    username = Column("nombre_usuario", String(100), unique=True, index=True, nullable=False)
    hashed_password = Column("password_hash", String(255), nullable=False, default="")
    role = Column(
        "tipo_usuario",
        Enum(Role, values_callable=lambda roles: [role.value for role in roles], native_enum=False, length=20),
        nullable=False,
    )
