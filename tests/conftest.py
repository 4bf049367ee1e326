import os
from datetime import datetime
from types import SimpleNamespace

import pytest
from apscheduler.jobstores.base import JobLookupError
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///./test.db')
os.environ.setdefault('CLINIC_TIMEZONE', 'Asia/Kolkata')
os.environ.setdefault('CLINIC_CLOSED_DAYS', 'Sun')
os.environ.setdefault('REMINDER_LEAD_HOURS', '12,2.5')

from clinic_scheduler.core.errors import NotifierFailure  # noqa: E402
from clinic_scheduler.database import Base  # noqa: E402
from clinic_scheduler.models import appointment, availability, prescription, reminder, schedule_settings  # noqa: E402,F401
from clinic_scheduler.models.user import ROLE_DOCTOR, ROLE_PATIENT, User  # noqa: E402
from clinic_scheduler.scheduling.reminders import ReminderScheduler  # noqa: E402

# Sunday evening before the Monday 2025-03-10 appointments used across the tests.
FIXED_NOW = datetime(2025, 3, 9, 20, 0)


class FakeScheduler:
    def __init__(self):
        self.jobs = {}
        self.running = False

    def add_job(self, func, trigger, args=None, id=None, replace_existing=False, **kwargs):
        if id in self.jobs and not replace_existing:
            raise ValueError(f'Job {id} already exists')
        self.jobs[id] = SimpleNamespace(func=func, trigger=trigger, args=list(args or []), kwargs=kwargs)

    def remove_job(self, job_id):
        if job_id not in self.jobs:
            raise JobLookupError(job_id)
        del self.jobs[job_id]

    def start(self):
        self.running = True

    def shutdown(self, wait=True):
        self.running = False

    def fire(self, job_id):
        job = self.jobs.pop(job_id)
        job.func(*job.args)


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def send(self, to, subject, body):
        self.sent.append((to, subject, body))


class FailingNotifier:
    def __init__(self):
        self.attempts = 0

    def send(self, to, subject, body):
        self.attempts += 1
        raise NotifierFailure(f'SMTP unavailable for {to}')


@pytest.fixture
def session_factory(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'clinic.db'}",
        connect_args={'check_same_thread': False},
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


def _add_user(db, name, email, role):
    user = User(name=name, email=email, role=role)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def doctor(db):
    return _add_user(db, 'Dr. Rao', 'doctor@clinic.test', ROLE_DOCTOR)


@pytest.fixture
def patient(db):
    return _add_user(db, 'Asha', 'asha@example.com', ROLE_PATIENT)


@pytest.fixture
def other_patient(db):
    return _add_user(db, 'Vikram', 'vikram@example.com', ROLE_PATIENT)


@pytest.fixture
def fake_scheduler():
    return FakeScheduler()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def failing_notifier():
    return FailingNotifier()


@pytest.fixture
def reminders(session_factory, notifier, fake_scheduler):
    return ReminderScheduler(
        session_factory=session_factory,
        notifier=notifier,
        scheduler=fake_scheduler,
        lead_hours=[12, 2.5],
        clock=lambda: FIXED_NOW,
        misfire_grace_minutes=30,
        enabled=True,
    )
