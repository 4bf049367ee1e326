import smtplib

import pytest

from clinic_scheduler.core.errors import NotifierFailure
from clinic_scheduler.notifications import mailer


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.calls = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def starttls(self, context=None):
        self.calls.append('starttls')

    def login(self, username, password):
        self.calls.append(('login', username))

    def sendmail(self, sender, recipients, message):
        self.calls.append(('sendmail', sender, recipients, message))


class RefusingSMTP(FakeSMTP):
    def sendmail(self, sender, recipients, message):
        raise smtplib.SMTPRecipientsRefused({recipients[0]: (550, b'No such user')})


def test_smtp_notifier_sends_plain_text_message(monkeypatch) -> None:
    FakeSMTP.instances = []
    monkeypatch.setattr(mailer.smtplib, 'SMTP', FakeSMTP)
    notifier = mailer.SmtpNotifier('smtp.example.com', 2525, 'clinic', 'secret', sender='clinic@example.com')

    notifier.send('asha@example.com', 'Appointment Reminder - 12 Hours Notice', 'See you soon!')

    server = FakeSMTP.instances[0]
    assert (server.host, server.port) == ('smtp.example.com', 2525)
    assert server.calls[0] == 'starttls'
    assert server.calls[1] == ('login', 'clinic')
    _, sender, recipients, message = server.calls[2]
    assert sender == 'clinic@example.com'
    assert recipients == ['asha@example.com']
    assert 'Subject: Appointment Reminder - 12 Hours Notice' in message


def test_smtp_notifier_wraps_transport_errors(monkeypatch) -> None:
    monkeypatch.setattr(mailer.smtplib, 'SMTP', RefusingSMTP)
    notifier = mailer.SmtpNotifier('smtp.example.com', use_tls=False)

    with pytest.raises(NotifierFailure):
        notifier.send('ghost@example.com', 'Subject', 'Body')


def test_build_notifier_without_smtp_host_logs_only(monkeypatch) -> None:
    monkeypatch.setattr(mailer.config, 'SMTP_HOST', '')

    notifier = mailer.build_notifier()

    assert isinstance(notifier, mailer.LoggingNotifier)
    notifier.send('asha@example.com', 'Subject', 'Body')


def test_build_notifier_with_smtp_host(monkeypatch) -> None:
    monkeypatch.setattr(mailer.config, 'SMTP_HOST', 'smtp.example.com')

    assert isinstance(mailer.build_notifier(), mailer.SmtpNotifier)
