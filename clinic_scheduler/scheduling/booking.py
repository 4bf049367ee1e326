"""Appointment booking and the appointment status lifecycle."""

import logging
from datetime import date, datetime, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_scheduler.core.errors import (
    ClosedDay,
    DayUnavailable,
    Forbidden,
    InvalidInput,
    InvalidTransition,
    NotFound,
    OutsideHours,
    SlotBlocked,
    SlotTaken,
    Unauthorized,
)
from clinic_scheduler.models.appointment import (
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_CONFIRMED,
    STATUS_PENDING,
    Appointment,
)
from clinic_scheduler.models.prescription import Prescription
from clinic_scheduler.models.user import ROLE_DOCTOR, User
from clinic_scheduler.scheduling import availability_store
from clinic_scheduler.scheduling.reminders import ReminderScheduler
from clinic_scheduler.scheduling.schedule_config import get_clinic_settings
from clinic_scheduler.scheduling.slots import clinic_now, parse_slot_datetime

logger = logging.getLogger(__name__)

ACTIVE_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED)


def validate_bookable_slot(db: Session, requested: datetime) -> None:
    """Run the policy and availability checks for one slot, in booking order."""
    settings = get_clinic_settings(db)

    if settings.is_closed_on(requested.date()):
        raise ClosedDay(f'Booking unavailable: Clinic is closed on {requested:%A}s.')

    if not settings.is_within_hours(requested):
        raise OutsideHours(
            'Booking unavailable: Clinic hours are '
            f'{settings.start_time:%H:%M} to {settings.end_time:%H:%M}.'
        )

    if availability_store.is_day_blocked(db, requested.date()):
        raise DayUnavailable()

    if availability_store.is_slot_blocked(db, requested):
        raise SlotBlocked()

    if find_taken_appointment(db, requested) is not None:
        raise SlotTaken()


def find_taken_appointment(db: Session, requested: datetime) -> Appointment | None:
    return db.query(Appointment).filter(
        Appointment.appointment_datetime == requested,
        Appointment.status != STATUS_CANCELLED,
    ).first()


def book_appointment(
    db: Session,
    patient: User,
    requested_datetime,
    reminders: ReminderScheduler | None = None,
) -> Appointment:
    requested = parse_slot_datetime(requested_datetime)
    validate_bookable_slot(db, requested)

    appointment = Appointment(
        patient_id=patient.id,
        appointment_datetime=requested,
        status=STATUS_PENDING,
    )
    db.add(appointment)
    try:
        db.commit()
    except IntegrityError as exc:
        # A concurrent request won the slot between the checks and the insert.
        db.rollback()
        raise SlotTaken() from exc

    db.refresh(appointment)
    logger.info('Patient %s booked appointment %s at %s.', patient.id, appointment.id, requested)

    if reminders is not None:
        try:
            reminders.schedule_for(db, appointment, patient.email)
        except Exception:
            db.rollback()
            logger.exception('Failed to schedule reminders for appointment %s.', appointment.id)

    return appointment


def list_appointments(db: Session, actor: User) -> list[tuple[Appointment, str | None]]:
    query = db.query(Appointment, User.name).outerjoin(User, Appointment.patient_id == User.id)
    if actor.role != ROLE_DOCTOR:
        query = query.filter(Appointment.patient_id == actor.id)
    return query.order_by(Appointment.appointment_datetime.asc()).all()


def list_open_slots(db: Session, day: date | None, now: datetime | None = None) -> list[datetime]:
    if day is None:
        raise InvalidInput('date is required.')

    settings = get_clinic_settings(db)
    if settings.is_closed_on(day) or availability_store.is_day_blocked(db, day):
        return []

    now = now or clinic_now()
    step = timedelta(minutes=settings.appointment_duration_minutes)
    day_end = datetime.combine(day, settings.end_time)
    blocked = availability_store.get_blocked_slot_starts(db, day)
    taken = {
        appointment_datetime
        for (appointment_datetime,) in db.query(Appointment.appointment_datetime).filter(
            Appointment.appointment_datetime >= datetime.combine(day, settings.start_time),
            Appointment.appointment_datetime < day_end,
            Appointment.status != STATUS_CANCELLED,
        ).all()
    }

    open_slots: list[datetime] = []
    current = datetime.combine(day, settings.start_time)
    while current + step <= day_end:
        if (
            current > now
            and not settings.is_break(current)
            and current not in blocked
            and current not in taken
        ):
            open_slots.append(current)
        current += step

    return open_slots


def cancel_appointment(
    db: Session,
    appointment_id: int,
    actor: User,
    reminders: ReminderScheduler | None = None,
) -> None:
    query = db.query(Appointment).filter(Appointment.id == appointment_id)
    if actor.role != ROLE_DOCTOR:
        query = query.filter(Appointment.patient_id == actor.id)

    appointment = query.first()
    if appointment is None:
        raise Unauthorized()
    if appointment.status not in ACTIVE_STATUSES:
        raise InvalidTransition(f'A {appointment.status} appointment cannot be cancelled.')

    retracted: list[int] = []
    if reminders is not None:
        retracted = reminders.retract_for(db, appointment.id)

    db.delete(appointment)
    db.commit()
    logger.info('Appointment %s cancelled by %s %s.', appointment_id, actor.role, actor.id)

    if reminders is not None:
        reminders.discard_jobs(retracted)


def require_role(actor: User, role: str) -> None:
    if actor.role != role:
        raise Forbidden(f'Access denied. Only {role}s can perform this action.')


def confirm_appointment(db: Session, appointment_id: int, actor: User) -> Appointment:
    require_role(actor, ROLE_DOCTOR)

    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if appointment is None:
        raise NotFound('Appointment not found!')
    if appointment.status == STATUS_CONFIRMED:
        return appointment
    if appointment.status != STATUS_PENDING:
        raise InvalidTransition(f'A {appointment.status} appointment cannot be confirmed.')

    appointment.status = STATUS_CONFIRMED
    db.commit()
    db.refresh(appointment)
    logger.info('Appointment %s confirmed.', appointment_id)
    return appointment


def validate_medications(medications) -> list[dict]:
    if not medications:
        raise InvalidInput('At least one medication is required.')

    cleaned = []
    for medication in medications:
        name = str(medication.get('name') or '').strip()
        timings = str(medication.get('timings') or '').strip()
        if not name or not timings:
            raise InvalidInput('Please fill in both Medicine Name and Timings for all entries.')
        cleaned.append({'name': name, 'timings': timings})
    return cleaned


def complete_with_prescription(
    db: Session,
    actor: User,
    patient_id: int,
    appointment_id: int,
    diagnosis: str | None,
    medications,
) -> tuple[Appointment, Prescription]:
    require_role(actor, ROLE_DOCTOR)
    cleaned_medications = validate_medications(medications)

    appointment = db.query(Appointment).filter(
        Appointment.id == appointment_id,
        Appointment.patient_id == patient_id,
    ).first()
    if appointment is None:
        raise NotFound('Appointment not found for this patient.')
    if appointment.status not in ACTIVE_STATUSES:
        raise InvalidTransition(f'A {appointment.status} appointment cannot be completed.')

    values = {
        'doctor_id': actor.id,
        'appointment_id': appointment.id,
        'diagnosis': (diagnosis or '').strip() or None,
        'medications': cleaned_medications,
    }
    prescription = _upsert_prescription(db, patient_id, values)
    appointment.status = STATUS_COMPLETED

    try:
        db.commit()
    except IntegrityError:
        # Lost the insert race for this patient's row; overwrite the winner.
        db.rollback()
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).one()
        prescription = _upsert_prescription(db, patient_id, values)
        appointment.status = STATUS_COMPLETED
        db.commit()

    db.refresh(appointment)
    db.refresh(prescription)
    logger.info('Appointment %s completed with prescription for patient %s.', appointment.id, patient_id)
    return appointment, prescription


def _upsert_prescription(db: Session, patient_id: int, values: dict) -> Prescription:
    prescription = db.query(Prescription).filter(Prescription.patient_id == patient_id).first()
    if prescription is None:
        prescription = Prescription(patient_id=patient_id)
        db.add(prescription)
    for field, value in values.items():
        setattr(prescription, field, value)
    return prescription


def get_prescription(db: Session, patient_id: int) -> Prescription:
    prescription = db.query(Prescription).filter(Prescription.patient_id == patient_id).first()
    if prescription is None:
        raise NotFound('No prescription found for this patient.')
    return prescription
