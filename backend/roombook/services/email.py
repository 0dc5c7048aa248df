"""SMTP delivery for outgoing notification mail."""

from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.mime.text import MIMEText
from typing import Optional

from roombook.core.config import Settings, settings
from roombook.core.exceptions import DependencyError

logger = logging.getLogger(__name__)


@dataclass
class SmtpConfig:
    host: str
    port: int
    username: str
    password: str
    use_tls: bool = True
    from_email: Optional[str] = None
    timeout: float = 10.0

    @classmethod
    def from_settings(cls, config: Settings) -> SmtpConfig:
        return cls(
            host=config.SMTP_HOST,
            port=config.SMTP_PORT,
            username=config.SMTP_USERNAME,
            password=config.SMTP_PASSWORD,
            use_tls=config.SMTP_USE_TLS,
            from_email=config.SMTP_FROM,
            timeout=config.SMTP_TIMEOUT,
        )


class SmtpEmailSender:
    def __init__(self, config: SmtpConfig):
        self.config = config

    def send(self, to: str, subject: str, body: str) -> None:
        """Send an HTML message; any SMTP or network failure raises DependencyError."""
        sender = self.config.from_email or self.config.username
        message = MIMEText(body, "html", "utf-8")
        message["Subject"] = subject
        message["From"] = sender
        message["To"] = to

        try:
            with smtplib.SMTP(
                self.config.host, self.config.port, timeout=self.config.timeout
            ) as server:
                if self.config.use_tls:
                    server.starttls()
                if self.config.username:
                    server.login(self.config.username, self.config.password)
                server.sendmail(sender, [to], message.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            logger.error(f"Failed to send email '{subject}' to {to}: {exc}")
            raise DependencyError("Mail server is unavailable") from exc

        logger.info(f"Email '{subject}' sent to {to}")


def get_email_sender() -> SmtpEmailSender:
    return SmtpEmailSender(SmtpConfig.from_settings(settings))
