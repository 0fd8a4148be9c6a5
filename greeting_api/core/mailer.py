"""
Email adapter for the Greeting API.

The default implementation uses SMTP, reading credentials from Settings.
Services depend on the ``Mailer`` protocol so tests can capture messages.
"""

from __future__ import annotations

from email.mime.text import MIMEText
import smtplib
import ssl
from typing import Protocol

from .config import Settings, get_settings
from .logging import logger


class Mailer(Protocol):
    def send(self, to_email: str, subject: str, body: str) -> bool:
        ...


class SmtpMailer:
    """Send HTML mail through the configured SMTP relay."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def _configured(self) -> bool:
        s = self.settings
        return bool(s.smtp_host and s.smtp_user and s.smtp_password and s.smtp_from and s.smtp_port)

    def send(self, to_email: str, subject: str, body: str) -> bool:
        """Return True when the relay accepted the message; never raises."""
        settings = self.settings
        if not self._configured():
            logger.warning("SMTP configuration missing; skipping e-mail delivery")
            return False
        msg = MIMEText(body, "html", "utf-8")
        msg["Subject"] = subject
        msg["From"] = settings.smtp_from
        msg["To"] = to_email
        port = settings.smtp_port
        try:
            if port == 465:
                context = ssl.create_default_context()
                with smtplib.SMTP_SSL(settings.smtp_host, port, context=context) as server:
                    server.login(settings.smtp_user, settings.smtp_password)
                    server.sendmail(settings.smtp_from, [to_email], msg.as_string())
            else:
                with smtplib.SMTP(settings.smtp_host, port) as server:
                    server.ehlo()
                    if settings.smtp_use_ssl:
                        server.starttls(context=ssl.create_default_context())
                    server.login(settings.smtp_user, settings.smtp_password)
                    server.sendmail(settings.smtp_from, [to_email], msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(f"Failed to send e-mail to {to_email}: {exc}")
            return False
        logger.info(f"E-mail '{subject}' sent to {to_email}")
        return True
