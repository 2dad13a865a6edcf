"""Outgoing mail over SMTP.

Every attempt, delivered or not, leaves an ``EmailLog`` row behind.
"""

import smtplib
import ssl
from contextlib import contextmanager
from dataclasses import dataclass
from email.message import EmailMessage

from flask import current_app

import storage
from errors import UpstreamServiceError
from utils import sanitize_title


@dataclass(frozen=True)
class MailSettings:
    host: str
    port: int
    username: str
    password: str
    use_tls: bool
    use_ssl: bool
    sender: str
    timeout: int

    @classmethod
    def from_config(cls, config) -> "MailSettings":
        return cls(
            host=config["MAIL_HOST"],
            port=config["MAIL_PORT"],
            username=config["MAIL_USERNAME"],
            password=config["MAIL_PASSWORD"],
            use_tls=config["MAIL_USE_TLS"],
            use_ssl=config["MAIL_USE_SSL"],
            sender=config["MAIL_FROM"],
            timeout=config["MAIL_TIMEOUT_SECONDS"],
        )

    @property
    def enabled(self) -> bool:
        return bool(self.host)


def build_message(settings: MailSettings, to_email: str, subject: str, html_body: str) -> EmailMessage:
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = settings.sender
    msg["To"] = to_email
    msg.set_content(sanitize_title(html_body))
    msg.add_alternative(html_body, subtype="html")
    return msg


@contextmanager
def smtp_connection(settings: MailSettings):
    if settings.use_ssl:
        context = ssl.create_default_context()
        with smtplib.SMTP_SSL(settings.host, settings.port, context=context, timeout=settings.timeout) as smtp:
            yield smtp
        return
    with smtplib.SMTP(settings.host, settings.port, timeout=settings.timeout) as smtp:
        if settings.use_tls:
            smtp.starttls(context=ssl.create_default_context())
        yield smtp


def send_email(to_email: str, subject: str, html_body: str, user_id: int) -> None:
    """Deliver one HTML message on behalf of ``user_id``.

    Raises ``UpstreamServiceError`` when mail is not configured or the relay
    refuses the message.
    """
    settings = MailSettings.from_config(current_app.config)
    if not settings.enabled:
        current_app.logger.warning("Email not sent (MAIL_HOST not configured): to=%s", to_email)
        storage.activity.record_email(user_id, to_email, subject, "failed", "mail disabled")
        raise UpstreamServiceError(key="error.email_disabled")

    msg = build_message(settings, to_email, subject, html_body)
    try:
        with smtp_connection(settings) as smtp:
            if settings.username:
                smtp.login(settings.username, settings.password)
            smtp.send_message(msg)
    except (smtplib.SMTPException, OSError) as exc:
        current_app.logger.exception("Email send failed: to=%s subject=%s", to_email, subject)
        storage.activity.record_email(user_id, to_email, subject, "failed", str(exc))
        raise UpstreamServiceError(key="error.email_failed")

    storage.activity.record_email(user_id, to_email, subject, "sent")
    current_app.logger.info("Email sent: to=%s subject=%s", to_email, subject)
