"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, Integer, DateTime, ForeignKey, String
from clinic_scheduler.database import Base

STATUS_PENDING = 'pending'
STATUS_CONFIRMED = 'confirmed'
STATUS_COMPLETED = 'completed'
STATUS_CANCELLED = 'cancelled'


class Appointment(Base):
    """Represents a booked appointment slot."""
    __tablename__ = "appointments"
    # Deleted ids must not be handed out again; reminder rows are keyed by them.
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    doctor_id = Column(Integer, nullable=True)
    appointment_datetime = Column(DateTime, nullable=False, unique=True)
    status = Column(String, nullable=False, default=STATUS_PENDING)
    created_at = Column(DateTime, default=datetime.utcnow)
