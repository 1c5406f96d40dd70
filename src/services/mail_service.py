"""Outbound email over SMTP."""

import logging
import smtplib
from email.message import EmailMessage

from src.config import Settings, get_settings
from src.exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)


class MailService:
    """Sends plain-text messages through the configured SMTP relay."""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.timeout = 30.0

    def _new_connection(self) -> smtplib.SMTP:
        return smtplib.SMTP(
            host=self.settings.smtp_host,
            port=self.settings.smtp_port,
            timeout=self.timeout,
        )

    def send(self, recipient: str, subject: str, body: str) -> None:
        """Deliver one message; raise ``UpstreamServiceError`` on failure."""
        message = EmailMessage()
        message["From"] = self.settings.smtp_from
        message["To"] = recipient
        message["Subject"] = subject
        message.set_content(body)

        try:
            with self._new_connection() as conn:
                if self.settings.smtp_use_tls:
                    conn.starttls()
                if self.settings.smtp_user and self.settings.smtp_password:
                    conn.login(self.settings.smtp_user, self.settings.smtp_password)
                conn.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send '{subject}' to {recipient}: {e}")
            raise UpstreamServiceError() from e

        logger.info(f"Sent '{subject}' to {recipient}")


def get_mail_service() -> MailService:
    """Get a mail service instance."""
    return MailService()
