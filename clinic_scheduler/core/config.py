import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv


load_dotenv()

WEEKDAY_CODES = ('Mon', 'Tue', 'Wed', 'Thu', 'Fri', 'Sat', 'Sun')


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: str) -> list[str]:
    raw = value if value is not None else default
    return [item.strip() for item in raw.split(",") if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./clinic.db")

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), "http://localhost:5173")

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

CLINIC_NAME = os.getenv("CLINIC_NAME", "MediSync")
CLINIC_TIMEZONE = os.getenv("CLINIC_TIMEZONE", "Asia/Kolkata")
CLINIC_CLOSED_DAYS = [code.title() for code in _get_list(os.getenv("CLINIC_CLOSED_DAYS"), "Sun")]

REMINDERS_ENABLED = _get_bool(os.getenv("REMINDERS_ENABLED"), default=True)
REMINDER_LEAD_HOURS = [float(hours) for hours in _get_list(os.getenv("REMINDER_LEAD_HOURS"), "12,2.5")]
REMINDER_MISFIRE_GRACE_MINUTES = int(os.getenv("REMINDER_MISFIRE_GRACE_MINUTES", "30"))

SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USERNAME = os.getenv("SMTP_USERNAME", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
SMTP_USE_TLS = _get_bool(os.getenv("SMTP_USE_TLS"), default=True)
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "no-reply@medisync.local")


def clinic_timezone() -> ZoneInfo:
    return ZoneInfo(CLINIC_TIMEZONE)


def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")

    try:
        clinic_timezone()
    except ZoneInfoNotFoundError as exc:
        raise RuntimeError(f"Unknown CLINIC_TIMEZONE: {CLINIC_TIMEZONE}") from exc

    unknown_days = [code for code in CLINIC_CLOSED_DAYS if code not in WEEKDAY_CODES]
    if unknown_days:
        raise RuntimeError(f"Unknown weekday codes in CLINIC_CLOSED_DAYS: {', '.join(unknown_days)}")

    if any(hours <= 0 for hours in REMINDER_LEAD_HOURS):
        raise RuntimeError("REMINDER_LEAD_HOURS must only contain positive values.")
