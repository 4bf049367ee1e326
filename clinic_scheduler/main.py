import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from clinic_scheduler.core import config
from clinic_scheduler.database import Base, engine, ensure_appointment_schema, ensure_reminder_schema
from clinic_scheduler.models import appointment, availability, prescription, reminder, schedule_settings, user  # noqa: F401
from clinic_scheduler.routes import appointment_routes, availability_routes, medical_record_routes, schedule_routes
from clinic_scheduler.scheduling.reminders import get_reminder_scheduler

logging.basicConfig(level=config.LOG_LEVEL, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

config.validate_runtime_config()

app = FastAPI(title='Clinic Scheduler API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_appointment_schema()
        ensure_reminder_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.on_event('startup')
def start_reminder_scheduler() -> None:
    if not config.REMINDERS_ENABLED:
        logger.info('Reminder scheduler disabled by configuration.')
        return

    try:
        get_reminder_scheduler().start()
    except SQLAlchemyError:
        logger.exception('Pending reminders could not be re-armed.')


@app.on_event('shutdown')
def stop_reminder_scheduler() -> None:
    get_reminder_scheduler().shutdown()


@app.get('/')
def root():
    return {'status': 'Clinic Scheduler API Running'}


app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(availability_routes.router, prefix='/availability')
app.include_router(schedule_routes.router, prefix='/schedule')
app.include_router(medical_record_routes.router, prefix='/medical-records')
