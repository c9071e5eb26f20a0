"""Appointment model definitions."""

from sqlalchemy import Column, DateTime, Integer, String
from agenda.database import Base


class Appointment(Base):
    """Represents a requested or confirmed appointment."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    patient_id = Column(String, index=True)
    doctor_id = Column(String, index=True)
    reason = Column(String)
    slot_start = Column(DateTime)
    slot_end = Column(DateTime)
    status = Column(String, default="requested")
    last_change_by = Column(String)
    created_at = Column(DateTime)
    updated_at = Column(DateTime)
