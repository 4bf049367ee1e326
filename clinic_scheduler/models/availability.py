"""Doctor availability model definitions."""

from sqlalchemy import Column, Integer, Date, DateTime, String, UniqueConstraint
from clinic_scheduler.database import Base


class BlockedDay(Base):
    """A full day the doctor is unavailable."""
    __tablename__ = "blocked_days"
    __table_args__ = (UniqueConstraint('doctor_id', 'block_date', name='uq_blocked_days_doctor_date'),)

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, nullable=False, index=True)
    block_date = Column(Date, nullable=False)
    reason = Column(String, nullable=True)


class BlockedSlot(Base):
    """A single time slot the doctor is unavailable."""
    __tablename__ = "blocked_time_slots"
    __table_args__ = (UniqueConstraint('doctor_id', 'slot_datetime', name='uq_blocked_slots_doctor_datetime'),)

    id = Column(Integer, primary_key=True)
    doctor_id = Column(Integer, nullable=False, index=True)
    slot_datetime = Column(DateTime, nullable=False)
    reason = Column(String, nullable=True)
