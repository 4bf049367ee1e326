from datetime import date, datetime

from clinic_scheduler.core import config
from clinic_scheduler.core.errors import InvalidInput

WIRE_DATETIME_FORMAT = '%Y-%m-%d %H:%M:00'


def clinic_now() -> datetime:
    """Current wall-clock time in the clinic timezone, as a naive datetime."""
    return datetime.now(config.clinic_timezone()).replace(tzinfo=None, second=0, microsecond=0)


def truncate_to_minute(value: datetime) -> datetime:
    return value.replace(second=0, microsecond=0)


def parse_slot_datetime(value: str | datetime | None, field_name: str = 'appointment_datetime') -> datetime:
    """Parse a requested slot into a naive clinic-local datetime at minute resolution.

    Accepts ``datetime`` objects or ISO 8601 strings (``T`` or space separator,
    optional seconds, optional UTC offset). Offset-aware values are converted into
    the clinic timezone.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise InvalidInput(f'{field_name} is required.')

    if isinstance(value, datetime):
        parsed = value
    else:
        candidate = value.strip()
        if candidate.endswith('Z'):
            candidate = candidate[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(candidate)
        except ValueError as exc:
            raise InvalidInput(f'Invalid date/time format for {field_name}.') from exc

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(config.clinic_timezone()).replace(tzinfo=None)

    return truncate_to_minute(parsed)


def format_slot_datetime(value: datetime) -> str:
    return value.strftime(WIRE_DATETIME_FORMAT)


def weekday_code(value: date) -> str:
    return config.WEEKDAY_CODES[value.weekday()]
