import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, field_serializer, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_scheduler.auth.dependencies import require_doctor
from clinic_scheduler.core.errors import StorageFailure
from clinic_scheduler.database import get_db
from clinic_scheduler.models.user import User
from clinic_scheduler.scheduling import availability_store
from clinic_scheduler.scheduling.slots import format_slot_datetime

router = APIRouter(tags=['availability'])

logger = logging.getLogger(__name__)

MAX_REASON_LENGTH = 255


def _normalize_reason(value: str | None) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > MAX_REASON_LENGTH:
        raise ValueError(f'Reason must be {MAX_REASON_LENGTH} characters or fewer.')

    return normalized


class BlockDayRequest(BaseModel):
    block_date: date
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        return _normalize_reason(value)


class BlockSlotRequest(BaseModel):
    slot_datetime: str | None = None
    reason: str | None = None

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        return _normalize_reason(value)


class BlockedDayResponse(BaseModel):
    id: int
    block_date: date
    reason: str | None = None

    class Config:
        from_attributes = True


class BlockedSlotResponse(BaseModel):
    id: int
    slot_datetime: datetime
    reason: str | None = None

    @field_serializer('slot_datetime')
    def serialize_slot_datetime(self, value: datetime) -> str:
        return format_slot_datetime(value)

    class Config:
        from_attributes = True


class MessageResponse(BaseModel):
    message: str


def _storage_failure(db: Session, action: str) -> StorageFailure:
    db.rollback()
    logger.exception('Database error while %s.', action)
    return StorageFailure('Database error.')


@router.get('/blocked/days', response_model=list[BlockedDayResponse])
def list_blocked_days(current_user: User = Depends(require_doctor), db: Session = Depends(get_db)):
    try:
        return availability_store.list_blocked_days(db, current_user.id)
    except SQLAlchemyError as exc:
        raise _storage_failure(db, 'listing blocked days') from exc


@router.post('/block/day', response_model=BlockedDayResponse, status_code=status.HTTP_201_CREATED)
def block_day(
    data: BlockDayRequest,
    current_user: User = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    try:
        return availability_store.block_day(db, current_user.id, data.block_date, data.reason)
    except SQLAlchemyError as exc:
        raise _storage_failure(db, 'blocking a day') from exc


@router.delete('/unblock/day', response_model=MessageResponse)
def unblock_day(
    block_date: date = Query(...),
    current_user: User = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    try:
        availability_store.unblock_day(db, current_user.id, block_date)
    except SQLAlchemyError as exc:
        raise _storage_failure(db, 'unblocking a day') from exc

    return MessageResponse(message='Day unblocked successfully.')


@router.get('/blocked/slots', response_model=list[BlockedSlotResponse])
def list_blocked_slots(current_user: User = Depends(require_doctor), db: Session = Depends(get_db)):
    try:
        return availability_store.list_blocked_slots(db, current_user.id)
    except SQLAlchemyError as exc:
        raise _storage_failure(db, 'listing blocked slots') from exc


@router.post('/block/slot', response_model=BlockedSlotResponse, status_code=status.HTTP_201_CREATED)
def block_slot(
    data: BlockSlotRequest,
    current_user: User = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    try:
        return availability_store.block_slot(db, current_user.id, data.slot_datetime, data.reason)
    except SQLAlchemyError as exc:
        raise _storage_failure(db, 'blocking a time slot') from exc


@router.delete('/unblock/slot', response_model=MessageResponse)
def unblock_slot(
    slot_datetime: str = Query(...),
    current_user: User = Depends(require_doctor),
    db: Session = Depends(get_db),
):
    try:
        availability_store.unblock_slot(db, current_user.id, slot_datetime)
    except SQLAlchemyError as exc:
        raise _storage_failure(db, 'unblocking a time slot') from exc

    return MessageResponse(message='Time slot unblocked successfully.')
