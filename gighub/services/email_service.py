from __future__ import annotations

import smtplib
import ssl
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from email.message import EmailMessage
from typing import Protocol

from gighub.config import Settings
from gighub.errors import DeliveryError
from gighub.utils.logging import logger


class Mailer(Protocol):
    def send(self, to: str, subject: str, body: str) -> None:
        """Deliver one plain-text message or raise DeliveryError."""


FailureObserver = Callable[[str, str, Exception], None]


def log_delivery_failure(to: str, subject: str, exc: Exception) -> None:
    logger.warning("Failed to send email %r to %s: %s", subject, to, exc)


class SmtpMailer:
    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def send(self, to: str, subject: str, body: str) -> None:
        settings = self._settings
        if not settings.smtp_configured:
            raise DeliveryError("SMTP environment variables are not set.")

        message = EmailMessage()
        message["From"] = settings.smtp_from
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        try:
            if settings.smtp_port == 465:
                context = ssl.create_default_context()
                with smtplib.SMTP_SSL(settings.smtp_host, settings.smtp_port, context=context, timeout=20) as smtp:
                    smtp.login(settings.smtp_user, settings.smtp_pass)
                    smtp.send_message(message)
                return

            with smtplib.SMTP(settings.smtp_host, settings.smtp_port, timeout=20) as smtp:
                smtp.starttls(context=ssl.create_default_context())
                smtp.login(settings.smtp_user, settings.smtp_pass)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise DeliveryError(f"SMTP delivery failed: {exc}") from exc


class MailDispatcher:
    """Sends mail on a bounded worker pool, off the request path.

    Delivery errors never propagate to the submitter; they are handed to
    ``on_failure`` instead.
    """

    def __init__(
        self,
        mailer: Mailer,
        *,
        max_workers: int = 2,
        on_failure: FailureObserver = log_delivery_failure,
    ) -> None:
        self._mailer = mailer
        self._on_failure = on_failure
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="mail")

    def submit(self, to: str, subject: str, body: str) -> Future[bool]:
        return self._executor.submit(self._deliver, to, subject, body)

    def _deliver(self, to: str, subject: str, body: str) -> bool:
        try:
            self._mailer.send(to, subject, body)
        except Exception as exc:
            self._on_failure(to, subject, exc)
            return False
        return True

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)


def verification_link(base_url: str, token: str) -> str:
    return f"{base_url}/verify?token={token}"


def verification_email(base_url: str, token: str) -> tuple[str, str]:
    link = verification_link(base_url, token)
    subject = "Verify your email"
    body = f"Please verify your email by clicking here: {link}"
    return subject, body
