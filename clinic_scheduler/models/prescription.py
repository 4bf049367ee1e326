"""Prescription model definitions."""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, Text
from clinic_scheduler.database import Base


class Prescription(Base):
    """Current prescription for a patient. Overwritten on every new prescription."""
    __tablename__ = "prescriptions"

    id = Column(Integer, primary_key=True)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    doctor_id = Column(Integer, nullable=False)
    appointment_id = Column(Integer, nullable=True)
    diagnosis = Column(Text, nullable=True)
    medications = Column(JSON, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
