import logging
from datetime import time

from fastapi import APIRouter, Depends
from pydantic import AliasChoices, BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_scheduler.auth.dependencies import require_doctor
from clinic_scheduler.core.errors import StorageFailure
from clinic_scheduler.database import get_db
from clinic_scheduler.models.user import User
from clinic_scheduler.scheduling import schedule_config
from clinic_scheduler.scheduling.schedule_config import ScheduleConfig

router = APIRouter(tags=['schedule'])

logger = logging.getLogger(__name__)


class ScheduleSettingsRequest(BaseModel):
    # The dashboard sends camelCase keys.
    start_time: time | None = Field(default=None, validation_alias=AliasChoices('start_time', 'startTime'))
    end_time: time | None = Field(default=None, validation_alias=AliasChoices('end_time', 'endTime'))
    working_days: list[str] | None = Field(default=None, validation_alias=AliasChoices('working_days', 'workingDays'))
    appointment_duration_minutes: int | None = Field(
        default=None,
        validation_alias=AliasChoices('appointment_duration_minutes', 'appointmentDuration'),
    )
    break_start: time | None = Field(default=None, validation_alias=AliasChoices('break_start', 'breakStartTime'))
    break_end: time | None = Field(default=None, validation_alias=AliasChoices('break_end', 'breakEndTime'))


class ScheduleSettingsResponse(BaseModel):
    doctor_id: int | None
    start_time: time
    end_time: time
    working_days: list[str]
    appointment_duration_minutes: int
    break_start: time
    break_end: time
    is_default: bool


class UpdateScheduleSettingsResponse(BaseModel):
    message: str
    settings: ScheduleSettingsResponse


def to_response(settings: ScheduleConfig) -> ScheduleSettingsResponse:
    return ScheduleSettingsResponse(
        doctor_id=settings.doctor_id,
        start_time=settings.start_time,
        end_time=settings.end_time,
        working_days=settings.ordered_working_days,
        appointment_duration_minutes=settings.appointment_duration_minutes,
        break_start=settings.break_start,
        break_end=settings.break_end,
        is_default=settings.is_default,
    )


@router.get('/settings', response_model=ScheduleSettingsResponse)
def get_schedule_settings(current_user: User = Depends(require_doctor), db: Session = Depends(get_db)):
    try:
        settings = schedule_config.get_settings(db, current_user.id)
    except SQLAlchemyError as exc:
        logger.exception('Error fetching schedule settings.')
        raise StorageFailure('Failed to retrieve schedule settings.') from exc

    return to_response(settings)


@router.put('/settings', response_model=UpdateScheduleSettingsResponse)
def update_schedule_settings(
    data: ScheduleSettingsRequest,
    current_user: User = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    try:
        settings = schedule_config.update_settings(db, current_user.id, data.model_dump())
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Error updating schedule settings.')
        raise StorageFailure('Failed to update schedule settings.') from exc

    return UpdateScheduleSettingsResponse(
        message='Schedule settings updated successfully!',
        settings=to_response(settings),
    )
