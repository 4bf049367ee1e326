import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_scheduler.auth.dependencies import require_doctor
from clinic_scheduler.core.errors import StorageFailure
from clinic_scheduler.database import get_db
from clinic_scheduler.models.user import User
from clinic_scheduler.scheduling import booking

router = APIRouter(tags=['medical-records'])

logger = logging.getLogger(__name__)


class Medication(BaseModel):
    name: str = ''
    timings: str = ''


class PrescriptionRequest(BaseModel):
    patient_id: int = Field(validation_alias=AliasChoices('patient_id', 'patientId'))
    appointment_id: int = Field(validation_alias=AliasChoices('appointment_id', 'appointmentId'))
    diagnosis: str | None = None
    medications: list[Medication] = Field(
        default_factory=list,
        validation_alias=AliasChoices('medications', 'medicationList'),
    )


class PrescriptionResponse(BaseModel):
    id: int
    patient_id: int
    doctor_id: int
    appointment_id: int | None = None
    diagnosis: str | None = None
    medications: list[Medication]
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class CompleteAppointmentResponse(BaseModel):
    message: str
    appointment_status: str
    prescription: PrescriptionResponse


@router.post('/prescription', response_model=CompleteAppointmentResponse)
def save_prescription(
    data: PrescriptionRequest,
    current_user: User = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    try:
        appointment, prescription = booking.complete_with_prescription(
            db,
            current_user,
            patient_id=data.patient_id,
            appointment_id=data.appointment_id,
            diagnosis=data.diagnosis,
            medications=[medication.model_dump() for medication in data.medications],
        )
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Error saving prescription for patient %s.', data.patient_id)
        raise StorageFailure('Failed to save prescription.') from exc

    return CompleteAppointmentResponse(
        message='Prescription saved and appointment completed.',
        appointment_status=appointment.status,
        prescription=PrescriptionResponse.model_validate(prescription),
    )


@router.get('/prescription/{patient_id}', response_model=PrescriptionResponse)
def get_prescription(
    patient_id: int,
    current_user: User = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    del current_user
    try:
        return booking.get_prescription(db, patient_id)
    except SQLAlchemyError as exc:
        logger.exception('Error fetching prescription for patient %s.', patient_id)
        raise StorageFailure('Failed to fetch prescription.') from exc
