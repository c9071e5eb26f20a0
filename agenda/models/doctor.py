"""Doctor model definitions."""

from sqlalchemy import Boolean, Column, Float, JSON, String
from agenda.database import Base


class Doctor(Base):
    """Profile fields read by the proximity search and the legacy schedule fallback."""
    __tablename__ = "doctors"

    id = Column(String, primary_key=True, index=True)
    name = Column(String)
    role = Column(String, default="doctor", index=True)  # doctor/patient
    verified = Column(Boolean, default=False)
    accepts_new_patients = Column(Boolean, default=True)
    profession = Column(String)
    specialty = Column(String)
    latitude = Column(Float, index=True)
    longitude = Column(Float)
    schedule = Column(JSON)  # {"slotDuration": 30, "days": {"1": [{"start", "end"}]}}
