# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
Outgoing mail.

A single mailer instance is built at start-up by :func:`build_mailer` and
handed to the services that need it.  ``send`` never raises on delivery
problems: it logs them and returns ``False`` so callers can decide whether a
failed mail matters (for registration it does not).
"""

import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Protocol

from core.logger import get_logger

log = get_logger("mailer")


class Mailer(Protocol):
    def send(self, to: str, subject: str, body: str, html: Optional[str] = None) -> bool:
        ...


class SmtpMailer:
    """Plain SMTP delivery with optional STARTTLS and login."""

    def __init__(
        self,
        host: str,
        port: int = 587,
        username: str = "",
        password: str = "",
        sender: str = "",
        use_tls: bool = True,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, to: str, subject: str, body: str, html: Optional[str] = None) -> bool:
        msg = MIMEMultipart("alternative")
        msg["From"] = self.sender
        msg["To"] = to
        msg["Subject"] = subject
        msg.attach(MIMEText(body, "plain", "utf-8"))
        if html:
            msg.attach(MIMEText(html, "html", "utf-8"))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            log.error("SMTP delivery to %s failed: %s", to, exc)
            return False

        log.info("Mail '%s' sent to %s", subject, to)
        return True


class LoggingMailer:
    """
    Development mailer: writes the message to the log instead of sending it.
    Used when no SMTP host is configured.
    """

    def send(self, to: str, subject: str, body: str, html: Optional[str] = None) -> bool:
        log.info("Mail to %s | %s\n%s", to, subject, body)
        return True


def build_mailer(settings) -> Mailer:
    """Pick the mailer implementation from configuration."""
    if not settings.smtp_host:
        log.warning("SMTP_HOST not set – outgoing mail will only be logged")
        return LoggingMailer()
    return SmtpMailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        sender=settings.smtp_from,
        use_tls=settings.smtp_use_tls,
    )
