"""Outbound reminder delivery over SMTP."""

import logging
import smtplib
import ssl
from email.mime.text import MIMEText
from typing import Protocol

from clinic_scheduler.core import config
from clinic_scheduler.core.errors import NotifierFailure

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send(self, to: str, subject: str, body: str) -> None:
        ...


class SmtpNotifier:
    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = '',
        password: str = '',
        sender: str = config.EMAIL_FROM_ADDRESS,
        use_tls: bool = True,
        timeout: float = 30.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.use_tls = use_tls
        self.timeout = timeout

    def build_message(self, to: str, subject: str, body: str) -> MIMEText:
        message = MIMEText(body, 'plain', 'utf-8')
        message['From'] = self.sender
        message['To'] = to
        message['Subject'] = subject
        return message

    def send(self, to: str, subject: str, body: str) -> None:
        message = self.build_message(to, subject, body)
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls(context=ssl.create_default_context())
                if self.username:
                    server.login(self.username, self.password)
                server.sendmail(self.sender, [to], message.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            raise NotifierFailure(f'Failed to send email to {to}: {exc}') from exc

        logger.info('Email "%s" sent to %s.', subject, to)


class LoggingNotifier:
    """Notifier for environments without SMTP; records messages in the log only."""

    def send(self, to: str, subject: str, body: str) -> None:
        logger.info('SMTP not configured; would send "%s" to %s.', subject, to)


def build_notifier() -> Notifier:
    if not config.SMTP_HOST:
        return LoggingNotifier()
    return SmtpNotifier(
        host=config.SMTP_HOST,
        port=config.SMTP_PORT,
        username=config.SMTP_USERNAME,
        password=config.SMTP_PASSWORD,
        sender=config.EMAIL_FROM_ADDRESS,
        use_tls=config.SMTP_USE_TLS,
    )
