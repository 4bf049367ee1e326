"""Doctor-declared blocked days and blocked time slots."""

import logging
from datetime import date, datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_scheduler.core.errors import DuplicateBlock, InvalidInput, InvalidSlot, NotFound
from clinic_scheduler.models.availability import BlockedDay, BlockedSlot
from clinic_scheduler.scheduling.schedule_config import get_clinic_settings
from clinic_scheduler.scheduling.slots import parse_slot_datetime

logger = logging.getLogger(__name__)


def _normalize_reason(reason: str | None) -> str | None:
    if reason is None:
        return None
    return reason.strip() or None


def list_blocked_days(db: Session, doctor_id: int) -> list[BlockedDay]:
    return db.query(BlockedDay).filter(
        BlockedDay.doctor_id == doctor_id,
    ).order_by(BlockedDay.block_date.asc()).all()


def list_blocked_slots(db: Session, doctor_id: int) -> list[BlockedSlot]:
    return db.query(BlockedSlot).filter(
        BlockedSlot.doctor_id == doctor_id,
    ).order_by(BlockedSlot.slot_datetime.asc()).all()


def block_day(db: Session, doctor_id: int, block_date: date | None, reason: str | None = None) -> BlockedDay:
    if block_date is None:
        raise InvalidInput('Valid block_date (YYYY-MM-DD) is required.')

    existing = db.query(BlockedDay).filter(
        BlockedDay.doctor_id == doctor_id,
        BlockedDay.block_date == block_date,
    ).first()
    if existing:
        raise DuplicateBlock('This day is already blocked.')

    blocked_day = BlockedDay(doctor_id=doctor_id, block_date=block_date, reason=_normalize_reason(reason))
    db.add(blocked_day)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateBlock('This day is already blocked.') from exc

    db.refresh(blocked_day)
    logger.info('Doctor %s blocked %s.', doctor_id, block_date)
    return blocked_day


def unblock_day(db: Session, doctor_id: int, block_date: date | None) -> None:
    if block_date is None:
        raise InvalidInput('Valid block_date (YYYY-MM-DD) is required.')

    deleted = db.query(BlockedDay).filter(
        BlockedDay.doctor_id == doctor_id,
        BlockedDay.block_date == block_date,
    ).delete(synchronize_session=False)
    if deleted == 0:
        db.rollback()
        raise NotFound('Blocked day not found.')

    db.commit()
    logger.info('Doctor %s unblocked %s.', doctor_id, block_date)


def validate_blockable_slot(db: Session, slot: datetime) -> None:
    settings = get_clinic_settings(db)

    if settings.is_closed_on(slot.date()):
        raise InvalidSlot('Cannot block slots on a day the clinic is closed.')

    if not settings.is_within_hours(slot):
        raise InvalidSlot(
            'Cannot block slots outside working hours '
            f'({settings.start_time:%H:%M} - {settings.end_time:%H:%M}).'
        )


def block_slot(db: Session, doctor_id: int, slot_datetime, reason: str | None = None) -> BlockedSlot:
    slot = parse_slot_datetime(slot_datetime, field_name='slot_datetime')
    validate_blockable_slot(db, slot)

    existing = db.query(BlockedSlot).filter(
        BlockedSlot.doctor_id == doctor_id,
        BlockedSlot.slot_datetime == slot,
    ).first()
    if existing:
        raise DuplicateBlock('This specific time slot is already blocked.')

    blocked_slot = BlockedSlot(doctor_id=doctor_id, slot_datetime=slot, reason=_normalize_reason(reason))
    db.add(blocked_slot)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise DuplicateBlock('This specific time slot is already blocked.') from exc

    db.refresh(blocked_slot)
    logger.info('Doctor %s blocked slot %s.', doctor_id, slot)
    return blocked_slot


def unblock_slot(db: Session, doctor_id: int, slot_datetime) -> None:
    slot = parse_slot_datetime(slot_datetime, field_name='slot_datetime')

    deleted = db.query(BlockedSlot).filter(
        BlockedSlot.doctor_id == doctor_id,
        BlockedSlot.slot_datetime == slot,
    ).delete(synchronize_session=False)
    if deleted == 0:
        db.rollback()
        raise NotFound('Blocked time slot not found.')

    db.commit()
    logger.info('Doctor %s unblocked slot %s.', doctor_id, slot)


def is_day_blocked(db: Session, day: date) -> bool:
    return db.query(BlockedDay.id).filter(BlockedDay.block_date == day).first() is not None


def is_slot_blocked(db: Session, slot: datetime) -> bool:
    return db.query(BlockedSlot.id).filter(BlockedSlot.slot_datetime == slot).first() is not None


def get_blocked_slot_starts(db: Session, day: date) -> set[datetime]:
    day_start = datetime.combine(day, datetime.min.time())
    day_end = datetime.combine(day, datetime.max.time())
    rows = db.query(BlockedSlot.slot_datetime).filter(
        BlockedSlot.slot_datetime >= day_start,
        BlockedSlot.slot_datetime <= day_end,
    ).all()
    return {slot_datetime for (slot_datetime,) in rows}
