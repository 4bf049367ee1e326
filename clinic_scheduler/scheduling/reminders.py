"""
Appointment reminder scheduling.

Every booked appointment gets one reminder per configured lead time (12 hours
and 2.5 hours before by default). Reminders are persisted as ``ReminderTask``
rows and armed as one-shot APScheduler jobs in the clinic timezone:

- reminders whose fire time already passed at booking time are never created
- cancelling an appointment deletes its pending reminders and their jobs
- on process start pending reminders are re-armed from the table
- a notifier failure marks the reminder failed; nothing is retried
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from threading import Lock
from typing import Callable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.date import DateTrigger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinic_scheduler.core import config
from clinic_scheduler.database import SessionLocal
from clinic_scheduler.models.appointment import Appointment
from clinic_scheduler.models.reminder import (
    REMINDER_EXPIRED,
    REMINDER_FAILED,
    REMINDER_PENDING,
    REMINDER_SENT,
    ReminderTask,
)
from clinic_scheduler.notifications.mailer import Notifier, build_notifier
from clinic_scheduler.scheduling.slots import clinic_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeadTime:
    hours: float

    @property
    def minutes(self) -> int:
        return int(round(self.hours * 60))

    @property
    def delta(self) -> timedelta:
        return timedelta(minutes=self.minutes)

    @property
    def subject(self) -> str:
        plural = 's' if self.hours > 1 else ''
        return f'Appointment Reminder - {self.hours:g} Hour{plural} Notice'


def build_reminder_body(appointment_datetime: datetime) -> str:
    day_label = f'{appointment_datetime:%A, %B} {appointment_datetime.day}, {appointment_datetime.year}'
    time_label = f'{appointment_datetime:%I:%M %p}'.lstrip('0')
    return (
        'Hi,\n\n'
        f'This is a reminder for your appointment scheduled at {config.CLINIC_NAME} '
        f'on {day_label} at {time_label}.\n\n'
        'See you soon!'
    )


def reminder_job_id(task_id: int) -> str:
    return f'reminder-{task_id}'


class ReminderScheduler:
    """Arms and dispatches appointment reminders."""

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        notifier: Notifier | None = None,
        scheduler=None,
        lead_hours: list[float] | None = None,
        clock: Callable[[], datetime] = clinic_now,
        misfire_grace_minutes: int = config.REMINDER_MISFIRE_GRACE_MINUTES,
        enabled: bool = config.REMINDERS_ENABLED,
    ):
        self.session_factory = session_factory
        self.notifier = notifier or build_notifier()
        self.timezone = config.clinic_timezone()
        self.scheduler = scheduler or BackgroundScheduler(timezone=self.timezone)
        hours = lead_hours if lead_hours is not None else config.REMINDER_LEAD_HOURS
        self.lead_times = [LeadTime(value) for value in hours]
        self.clock = clock
        self.misfire_grace = timedelta(minutes=misfire_grace_minutes)
        self.enabled = enabled

    def start(self) -> int:
        """Start the background scheduler and re-arm reminders saved by earlier runs."""
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info('Reminder scheduler started (timezone %s).', self.timezone)
        return self.rearm_pending()

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info('Reminder scheduler stopped.')

    def schedule_for(self, db: Session, appointment: Appointment, recipient: str) -> list[ReminderTask]:
        if not self.enabled:
            logger.info('Reminders disabled; none scheduled for appointment %s.', appointment.id)
            return []

        now = self.clock()
        tasks: list[ReminderTask] = []

        for lead_time in self.lead_times:
            notify_at = appointment.appointment_datetime - lead_time.delta
            if notify_at <= now:
                logger.info(
                    'Skipping %gh reminder for appointment %s: notification time %s is in the past.',
                    lead_time.hours, appointment.id, notify_at,
                )
                continue

            task = ReminderTask(
                appointment_id=appointment.id,
                lead_minutes=lead_time.minutes,
                fire_at=notify_at,
                recipient=recipient,
                subject=lead_time.subject,
                body=build_reminder_body(appointment.appointment_datetime),
                status=REMINDER_PENDING,
            )
            db.add(task)
            tasks.append(task)

        if not tasks:
            return tasks

        db.commit()
        for task in tasks:
            db.refresh(task)
            self._arm(task)
            logger.info(
                'Scheduled reminder %s for appointment %s at %s (%s).',
                task.id, appointment.id, task.fire_at, self.timezone,
            )
        return tasks

    def retract_for(self, db: Session, appointment_id: int) -> list[int]:
        """Delete every reminder of an appointment and return the ids of the pending ones.

        The caller commits, then calls ``discard_jobs`` with the returned ids.
        """
        tasks = db.query(ReminderTask).filter(ReminderTask.appointment_id == appointment_id).all()
        pending_ids = [task.id for task in tasks if task.status == REMINDER_PENDING]
        for task in tasks:
            db.delete(task)
        return pending_ids

    def discard_jobs(self, task_ids: list[int]) -> None:
        for task_id in task_ids:
            try:
                self.scheduler.remove_job(reminder_job_id(task_id))
            except JobLookupError:
                logger.debug('Reminder job %s was not armed.', task_id)
            else:
                logger.info('Retracted reminder %s.', task_id)

    def rearm_pending(self) -> int:
        db = self.session_factory()
        armed = 0
        try:
            now = self.clock()
            pending = db.query(ReminderTask).filter(
                ReminderTask.status == REMINDER_PENDING,
            ).order_by(ReminderTask.fire_at.asc()).all()

            for task in pending:
                if task.fire_at > now:
                    self._arm(task)
                    armed += 1
                elif now - task.fire_at <= self.misfire_grace:
                    self._arm(task, run_at=now)
                    armed += 1
                else:
                    task.status = REMINDER_EXPIRED
                    logger.warning(
                        'Reminder %s for appointment %s expired while the scheduler was down (due %s).',
                        task.id, task.appointment_id, task.fire_at,
                    )

            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception('Failed to re-arm pending reminders.')
            raise
        finally:
            db.close()

        logger.info('Re-armed %s pending reminders.', armed)
        return armed

    def dispatch(self, task_id: int) -> None:
        db = self.session_factory()
        try:
            task = db.get(ReminderTask, task_id)
            if task is None or task.status != REMINDER_PENDING:
                logger.info('Reminder %s is no longer pending; nothing to send.', task_id)
                return

            try:
                self.notifier.send(task.recipient, task.subject, task.body)
            except Exception as exc:
                logger.exception(
                    'Failed sending reminder %s for appointment %s to %s.',
                    task.id, task.appointment_id, task.recipient,
                )
                task.status = REMINDER_FAILED
                task.last_error = str(exc)[:500]
            else:
                task.status = REMINDER_SENT
                task.sent_at = self.clock()
                logger.info('Reminder %s sent to %s.', task.id, task.recipient)

            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.exception('Failed to record outcome of reminder %s.', task_id)
        finally:
            db.close()

    def _arm(self, task: ReminderTask, run_at: datetime | None = None) -> None:
        self.scheduler.add_job(
            self.dispatch,
            DateTrigger(run_date=run_at or task.fire_at, timezone=self.timezone),
            args=[task.id],
            id=reminder_job_id(task.id),
            name=f'Reminder for appointment {task.appointment_id}',
            replace_existing=True,
            misfire_grace_time=int(self.misfire_grace.total_seconds()),
        )


_reminder_scheduler: ReminderScheduler | None = None
_reminder_scheduler_lock = Lock()


def get_reminder_scheduler() -> ReminderScheduler:
    global _reminder_scheduler

    if _reminder_scheduler is not None:
        return _reminder_scheduler

    with _reminder_scheduler_lock:
        if _reminder_scheduler is None:
            _reminder_scheduler = ReminderScheduler()
    return _reminder_scheduler
