"""Doctor schedule configuration: working hours, working days and slot size."""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from clinic_scheduler.core import config
from clinic_scheduler.core.errors import InvalidInput
from clinic_scheduler.models.schedule_settings import ScheduleSettings
from clinic_scheduler.scheduling.slots import weekday_code

logger = logging.getLogger(__name__)

DEFAULT_START_TIME = time(11, 0)
DEFAULT_END_TIME = time(19, 0)
DEFAULT_WORKING_DAYS = frozenset({'Mon', 'Tue', 'Wed', 'Thu', 'Fri'})
DEFAULT_APPOINTMENT_DURATION_MINUTES = 30
DEFAULT_BREAK_START = time(13, 0)
DEFAULT_BREAK_END = time(14, 0)

SETTINGS_FIELDS = ('start_time', 'end_time', 'working_days', 'appointment_duration_minutes', 'break_start', 'break_end')


@dataclass(frozen=True)
class ScheduleConfig:
    doctor_id: int | None
    start_time: time
    end_time: time
    working_days: frozenset[str]
    appointment_duration_minutes: int
    break_start: time
    break_end: time
    is_default: bool = False

    @property
    def ordered_working_days(self) -> list[str]:
        return [code for code in config.WEEKDAY_CODES if code in self.working_days]

    def is_closed_on(self, day: date) -> bool:
        code = weekday_code(day)
        if code in config.CLINIC_CLOSED_DAYS:
            return True
        # Defaults never narrow the clinic week; only saved settings do.
        return not self.is_default and code not in self.working_days

    def is_within_hours(self, moment: datetime) -> bool:
        return self.start_time <= moment.time() < self.end_time

    def is_break(self, moment: datetime) -> bool:
        return self.break_start <= moment.time() < self.break_end


def default_settings(doctor_id: int | None = None) -> ScheduleConfig:
    return ScheduleConfig(
        doctor_id=doctor_id,
        start_time=DEFAULT_START_TIME,
        end_time=DEFAULT_END_TIME,
        working_days=DEFAULT_WORKING_DAYS,
        appointment_duration_minutes=DEFAULT_APPOINTMENT_DURATION_MINUTES,
        break_start=DEFAULT_BREAK_START,
        break_end=DEFAULT_BREAK_END,
        is_default=True,
    )


DAY_NAME_TO_CODE = {
    name.lower(): code
    for code, name in zip(
        config.WEEKDAY_CODES,
        ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday'),
    )
}
DAY_NAME_TO_CODE.update({code.lower(): code for code in config.WEEKDAY_CODES})


def normalize_working_days(days) -> frozenset[str]:
    """Map weekday codes (`Mon`) or full names (`Monday`), in any case, to codes."""
    if isinstance(days, str):
        days = [days]
    normalized = set()
    for day in days or []:
        code = DAY_NAME_TO_CODE.get(str(day).strip().lower())
        if code is None:
            raise InvalidInput(f'Unrecognized working day: {day}.')
        normalized.add(code)
    return frozenset(normalized)


def _to_config(row: ScheduleSettings) -> ScheduleConfig:
    try:
        working_days = normalize_working_days(row.working_days)
    except InvalidInput:
        logger.error('Stored working_days for doctor %s are invalid: %r', row.doctor_id, row.working_days)
        working_days = frozenset()

    return ScheduleConfig(
        doctor_id=row.doctor_id,
        start_time=row.start_time,
        end_time=row.end_time,
        working_days=working_days,
        appointment_duration_minutes=row.appointment_duration_minutes,
        break_start=row.break_start,
        break_end=row.break_end,
    )


def get_settings(db: Session, doctor_id: int) -> ScheduleConfig:
    row = db.query(ScheduleSettings).filter(ScheduleSettings.doctor_id == doctor_id).first()
    if row is None:
        logger.info('No schedule settings found for doctor %s, returning defaults.', doctor_id)
        return default_settings(doctor_id)
    return _to_config(row)


def get_clinic_settings(db: Session) -> ScheduleConfig:
    """Settings that govern booking for the clinic's single doctor."""
    row = db.query(ScheduleSettings).order_by(ScheduleSettings.id.asc()).first()
    if row is None:
        return default_settings()
    return _to_config(row)


def validate_settings(values: dict) -> dict:
    missing = [field for field in SETTINGS_FIELDS if values.get(field) in (None, '', [])]
    if missing:
        raise InvalidInput(f'Missing required schedule settings fields: {", ".join(missing)}.')

    working_days = normalize_working_days(values['working_days'])
    if not working_days:
        raise InvalidInput('At least one working day is required.')

    try:
        duration = int(values['appointment_duration_minutes'])
    except (TypeError, ValueError) as exc:
        raise InvalidInput('Invalid appointment duration.') from exc
    if duration <= 0:
        raise InvalidInput('Invalid appointment duration.')

    if values['start_time'] >= values['end_time']:
        raise InvalidInput('Start time must be before end time.')
    if values['break_start'] >= values['break_end']:
        raise InvalidInput('Break start must be before break end.')

    return {
        'start_time': values['start_time'],
        'end_time': values['end_time'],
        'working_days': [code for code in config.WEEKDAY_CODES if code in working_days],
        'appointment_duration_minutes': duration,
        'break_start': values['break_start'],
        'break_end': values['break_end'],
    }


def update_settings(db: Session, doctor_id: int, values: dict) -> ScheduleConfig:
    cleaned = validate_settings(values)

    row = db.query(ScheduleSettings).filter(ScheduleSettings.doctor_id == doctor_id).first()
    if row is None:
        row = ScheduleSettings(doctor_id=doctor_id, **cleaned)
        db.add(row)
        try:
            db.commit()
        except IntegrityError:
            # Another request inserted the row first; fall back to updating it.
            db.rollback()
            row = db.query(ScheduleSettings).filter(ScheduleSettings.doctor_id == doctor_id).one()
            _apply(row, cleaned)
            db.commit()
    else:
        _apply(row, cleaned)
        db.commit()

    db.refresh(row)
    logger.info('Schedule settings updated for doctor %s.', doctor_id)
    return _to_config(row)


def _apply(row: ScheduleSettings, cleaned: dict) -> None:
    for field, value in cleaned.items():
        setattr(row, field, value)
