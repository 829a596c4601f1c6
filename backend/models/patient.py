"""Patient model definitions."""

from sqlalchemy import Column, ForeignKey, Integer, String
from backend.database import Base


class Patient(Base):
    """Clinical patient record, optionally linked to a login account."""
    __tablename__ = "pacientes"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column("usuario_id", Integer, ForeignKey("usuarios.id"), nullable=True, index=True)
    name = Column("nombre", String(150), nullable=False)
