from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from clinic_scheduler.core import config


connect_args = {'check_same_thread': False} if config.DATABASE_URL.startswith('sqlite') else {}

engine = create_engine(config.DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_appointment_schema_checked = False
_reminder_schema_checked = False


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('doctor_id', 'ALTER TABLE appointments ADD COLUMN doctor_id INTEGER'),
            ('created_at', 'ALTER TABLE appointments ADD COLUMN created_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            # Older deployments created the table without the datetime constraint.
            connection.execute(
                text(
                    'CREATE UNIQUE INDEX IF NOT EXISTS uq_appointments_datetime '
                    'ON appointments(appointment_datetime)'
                )
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_patient_datetime ON appointments(patient_id, appointment_datetime)')
            )

        _appointment_schema_checked = True


def ensure_reminder_schema() -> None:
    global _reminder_schema_checked

    if _reminder_schema_checked:
        return

    with _schema_lock:
        if _reminder_schema_checked:
            return

        inspector = inspect(engine)

        if 'reminder_tasks' not in inspector.get_table_names():
            _reminder_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('reminder_tasks')}
        migration_steps = [
            ('last_error', 'ALTER TABLE reminder_tasks ADD COLUMN last_error VARCHAR'),
            ('sent_at', 'ALTER TABLE reminder_tasks ADD COLUMN sent_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_reminder_tasks_status_fire_at ON reminder_tasks(status, fire_at)')
            )

        _reminder_schema_checked = True
