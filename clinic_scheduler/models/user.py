"""User model definitions."""

from sqlalchemy import Column, Integer, String
from clinic_scheduler.database import Base

ROLE_DOCTOR = 'doctor'
ROLE_PATIENT = 'patient'


class User(Base):
    """Represents an application user."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String)
    email = Column(String, unique=True, index=True)
    role = Column(String)  # doctor/patient
