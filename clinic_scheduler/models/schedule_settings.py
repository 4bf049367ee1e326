"""Doctor schedule settings model definitions."""

from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, Integer, Time
from clinic_scheduler.database import Base


class ScheduleSettings(Base):
    """Working hours and slot size for a doctor. One row per doctor."""
    __tablename__ = "doctor_schedule_settings"

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, nullable=False, unique=True)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    working_days = Column(JSON, nullable=False)
    appointment_duration_minutes = Column(Integer, nullable=False)
    break_start = Column(Time, nullable=False)
    break_end = Column(Time, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
