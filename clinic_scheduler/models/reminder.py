"""Reminder task model definitions."""

from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text, UniqueConstraint
from clinic_scheduler.database import Base

REMINDER_PENDING = 'pending'
REMINDER_SENT = 'sent'
REMINDER_FAILED = 'failed'
REMINDER_EXPIRED = 'expired'


class ReminderTask(Base):
    """A deferred reminder for one appointment and one lead time."""
    __tablename__ = "reminder_tasks"
    __table_args__ = (UniqueConstraint('appointment_id', 'lead_minutes', name='uq_reminder_tasks_appointment_lead'),)

    id = Column(Integer, primary_key=True)
    appointment_id = Column(Integer, nullable=False, index=True)
    lead_minutes = Column(Integer, nullable=False)
    fire_at = Column(DateTime, nullable=False)
    recipient = Column(String, nullable=False)
    subject = Column(String, nullable=False)
    body = Column(Text, nullable=False)
    status = Column(String, nullable=False, default=REMINDER_PENDING)
    last_error = Column(String, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
