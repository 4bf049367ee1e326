import logging
from datetime import date

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_scheduler.auth.dependencies import get_current_user, require_doctor, require_patient
from clinic_scheduler.core.errors import StorageFailure
from clinic_scheduler.database import ensure_appointment_schema, get_db
from clinic_scheduler.models.appointment import Appointment
from clinic_scheduler.models.user import User
from clinic_scheduler.scheduling import booking
from clinic_scheduler.scheduling.reminders import ReminderScheduler, get_reminder_scheduler
from clinic_scheduler.scheduling.slots import format_slot_datetime

router = APIRouter(tags=['appointments'])

logger = logging.getLogger(__name__)


class BookAppointmentRequest(BaseModel):
    appointment_datetime: str | None = None


class AppointmentResponse(BaseModel):
    id: int
    patient_id: int
    patient_name: str | None = None
    appointment_datetime: str
    status: str


class BookAppointmentResponse(BaseModel):
    message: str
    appointment: AppointmentResponse


class MessageResponse(BaseModel):
    message: str


class OpenSlotsResponse(BaseModel):
    date: date
    slots: list[str]


def to_response(appointment: Appointment, patient_name: str | None = None) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        patient_id=appointment.patient_id,
        patient_name=patient_name,
        appointment_datetime=format_slot_datetime(appointment.appointment_datetime),
        status=appointment.status,
    )


def ensure_database_ready() -> None:
    try:
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        logger.exception('Appointment schema check failed.')
        raise StorageFailure() from exc


@router.post('/book', response_model=BookAppointmentResponse, status_code=status.HTTP_201_CREATED)
def book_appointment(
    data: BookAppointmentRequest,
    current_user: User = Depends(require_patient),
    db: Session = Depends(get_db),
    reminders: ReminderScheduler = Depends(get_reminder_scheduler),
):
    ensure_database_ready()

    try:
        appointment = booking.book_appointment(db, current_user, data.appointment_datetime, reminders=reminders)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Database error during booking process.')
        raise StorageFailure('An error occurred during the booking process.') from exc

    return BookAppointmentResponse(
        message='Appointment booked successfully!',
        appointment=to_response(appointment, current_user.name),
    )


@router.get('/', response_model=list[AppointmentResponse])
def list_appointments(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        rows = booking.list_appointments(db, current_user)
    except SQLAlchemyError as exc:
        logger.exception('Error fetching appointments.')
        raise StorageFailure('Failed to fetch appointments.') from exc

    return [to_response(appointment, patient_name) for appointment, patient_name in rows]


@router.get('/open-slots', response_model=OpenSlotsResponse)
def list_open_slots(
    day: date = Query(..., alias='date'),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    del current_user
    ensure_database_ready()

    try:
        slots = booking.list_open_slots(db, day)
    except SQLAlchemyError as exc:
        logger.exception('Error listing open slots for %s.', day)
        raise StorageFailure('Failed to fetch open slots.') from exc

    return OpenSlotsResponse(date=day, slots=[format_slot_datetime(slot) for slot in slots])


@router.delete('/cancel/{appointment_id}', response_model=MessageResponse)
def cancel_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    reminders: ReminderScheduler = Depends(get_reminder_scheduler),
):
    ensure_database_ready()

    try:
        booking.cancel_appointment(db, appointment_id, current_user, reminders=reminders)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Error cancelling appointment %s.', appointment_id)
        raise StorageFailure('Failed to cancel appointment.') from exc

    return MessageResponse(message='Appointment canceled successfully!')


@router.put('/confirm/{appointment_id}', response_model=BookAppointmentResponse)
def confirm_appointment(
    appointment_id: int,
    current_user: User = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = booking.confirm_appointment(db, appointment_id, current_user)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Error confirming appointment %s.', appointment_id)
        raise StorageFailure('Failed to confirm appointment.') from exc

    return BookAppointmentResponse(message='Appointment confirmed!', appointment=to_response(appointment))
