"""Per-date availability override definitions."""

from sqlalchemy import Column, Date, DateTime, Integer, JSON, String, UniqueConstraint
from agenda.database import Base


class DateAvailability(Base):
    """Slots a doctor published for one calendar date.

    New rows store ``slots``; rows written before explicit slot selection
    only carry ``ranges``.
    """
    __tablename__ = "date_availability"
    __table_args__ = (UniqueConstraint("doctor_id", "date_key", name="uq_date_availability_doctor_date"),)

    id = Column(Integer, primary_key=True)
    doctor_id = Column(String, index=True)
    date_key = Column(String)  # YYYY-MM-DD
    date = Column(Date)
    slots = Column(JSON)
    ranges = Column(JSON)
    slot_duration = Column(Integer)
    generated_from = Column(JSON)
    updated_at = Column(DateTime)
