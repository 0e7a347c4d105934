from smtplib import SMTPException

from app.utils import notifications
from app.utils.notifications import Notification


def test_dispatch_keeps_going_after_a_failure(monkeypatch):
    delivered = []

    def flaky_send_email(recipient, subject, body):
        if recipient == "broken@acme.io":
            raise SMTPException("recipient refused")
        delivered.append(recipient)

    monkeypatch.setattr(notifications, "send_email", flaky_send_email)

    notifications.dispatch_notifications([
        Notification("broken@acme.io", "Booking Approved", "body"),
        Notification("alice@acme.io", "Booking Approved", "body"),
    ])

    assert delivered == ["alice@acme.io"]


def test_send_email_without_smtp_host_is_skipped(monkeypatch):
    def no_network(*args, **kwargs):
        raise AssertionError("SMTP must not be contacted")

    monkeypatch.setattr(notifications, "SMTP_HOST", None)
    monkeypatch.setattr(notifications.smtplib, "SMTP", no_network)

    notifications.send_email("alice@acme.io", "Booking Approved", "body")


def test_send_email_uses_smtp(monkeypatch):
    sent = []

    class FakeSMTP:
        def __init__(self, host, port, timeout=None):
            self.host, self.port = host, port

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def starttls(self):
            sent.append("starttls")

        def login(self, username, password):
            sent.append(("login", username))

        def send_message(self, message):
            sent.append((message["To"], message["Subject"]))

    monkeypatch.setattr(notifications, "SMTP_HOST", "smtp.acme.io")
    monkeypatch.setattr(notifications, "SMTP_USE_TLS", True)
    monkeypatch.setattr(notifications, "SMTP_USERNAME", "mailer")
    monkeypatch.setattr(notifications, "SMTP_PASSWORD", "secret")
    monkeypatch.setattr(notifications.smtplib, "SMTP", FakeSMTP)

    notifications.send_email("alice@acme.io", "Booking Approved", "body")

    assert sent == ["starttls", ("login", "mailer"), ("alice@acme.io", "Booking Approved")]
