"""Work settings model definitions."""

from sqlalchemy import Column, DateTime, Integer, JSON, String
from agenda.database import Base


class WorkSettingsRecord(Base):
    """Recurring working days and blocks, one row per doctor."""
    __tablename__ = "work_settings"

    doctor_id = Column(String, primary_key=True)
    slot_duration = Column(Integer)
    working_days = Column(JSON)
    blocks = Column(JSON)
    updated_at = Column(DateTime)
