"""Email channel — plain-text workflow emails over SMTP."""
import logging
import smtplib
from email.message import EmailMessage
from typing import Optional

from event_approvals.config import settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(Exception):
    """Raised when the SMTP server rejects or cannot take a message."""


class SmtpEmailChannel:
    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        use_tls: Optional[bool] = None,
        sender: Optional[str] = None,
        enabled: Optional[bool] = None,
    ):
        self.host = host or settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.username = settings.SMTP_USERNAME if username is None else username
        self.password = settings.SMTP_PASSWORD if password is None else password
        self.use_tls = settings.SMTP_USE_TLS if use_tls is None else use_tls
        self.sender = sender or settings.EMAIL_FROM
        self.enabled = settings.EMAIL_ENABLED if enabled is None else enabled

    def send(self, to: str, subject: str, body: str) -> bool:
        """Send one message. Returns False when email is switched off."""
        if not self.enabled:
            logger.debug("Email disabled; skipping '%s' to %s", subject, to)
            return False

        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        try:
            with smtplib.SMTP(self.host, self.port, timeout=10) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password)
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as exc:
            raise EmailDeliveryError(f"Could not send '{subject}' to {to}: {exc}") from exc

        logger.info("Sent email '%s' to %s", subject, to)
        return True
