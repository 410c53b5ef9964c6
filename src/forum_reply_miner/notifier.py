"""
Email notification of newly discovered replies.

Notification is best effort: when no SMTP host is configured the notifier
does nothing, and delivery failures are logged instead of raised.
"""

import asyncio
import logging
import smtplib
from email.mime.text import MIMEText

from .config import Settings

logger = logging.getLogger(__name__)

SUBJECT = "new topics"


class EmailNotifier:
    """
    Sends an HTML summary over SMTP.

    Port 465 uses implicit TLS; any other port uses STARTTLS.
    """

    def __init__(
        self,
        host: str = "",
        port: int = 465,
        user: str = "",
        password: str = "",
        to_address: str = "",
        timeout: float = 30.0,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.to_address = to_address
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailNotifier":
        return cls(
            host=settings.email_addr,
            port=settings.email_port,
            user=settings.email_user,
            password=settings.email_password,
            to_address=settings.email_to,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.host)

    def build_message(self, html: str) -> MIMEText:
        msg = MIMEText(html, "html", "utf-8")
        msg["Subject"] = SUBJECT
        msg["From"] = self.user
        msg["To"] = self.to_address
        return msg

    def send(self, html: str) -> bool:
        """
        Send the summary synchronously.

        Returns:
            True if the message was handed to the SMTP server
        """
        if not self.enabled:
            return False

        msg = self.build_message(html)
        try:
            if self.port == 465:
                server = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)
            else:
                server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
            with server:
                if self.port != 465:
                    server.starttls()
                if self.user:
                    server.login(self.user, self.password)
                server.sendmail(self.user, [self.to_address], msg.as_string())
        except (smtplib.SMTPException, OSError, UnicodeError) as e:
            logger.error("Could not send notification to %s: %s", self.to_address, e)
            return False

        logger.info("Notification sent to %s", self.to_address)
        return True

    async def notify(self, html: str) -> bool:
        """Send the summary without blocking the event loop."""
        if not self.enabled:
            return False
        return await asyncio.to_thread(self.send, html)
