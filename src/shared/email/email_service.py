"""Transactional email over SMTP."""

import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from starlette.concurrency import run_in_threadpool

from src.config.settings import settings

logger = logging.getLogger(__name__)

DEFAULT_FROM = "no-reply@cronostudio.local"


def redact_email(email: str) -> str:
    """Keep enough of an address to correlate logs without exposing it."""
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


class EmailService:
    """SMTP sender for verification and password-reset emails.

    When SMTP is not configured nothing is sent and callers are told so, which
    lets the password-reset flow fall back to returning the link directly.
    """

    def __init__(
        self,
        smtp_host: str | None = None,
        smtp_port: int = 587,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        smtp_use_tls: bool = True,
        from_email: str | None = None,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.smtp_use_tls = smtp_use_tls
        self.from_email = from_email or smtp_user or DEFAULT_FROM

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host)

    def _send(self, to_email: str, subject: str, html_body: str) -> bool:
        if not self.is_configured:
            logger.warning(f"Email delivery disabled; not sending '{subject}' to {redact_email(to_email)}")
            return False

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.from_email
        msg["To"] = to_email
        msg.attach(MIMEText(html_body, "html"))

        context = ssl.create_default_context()
        try:
            if self.smtp_use_tls:
                with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=30) as server:
                    server.starttls(context=context)
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_email, to_email, msg.as_string())
            else:
                with smtplib.SMTP_SSL(self.smtp_host, self.smtp_port, context=context, timeout=30) as server:
                    if self.smtp_user and self.smtp_password:
                        server.login(self.smtp_user, self.smtp_password)
                    server.sendmail(self.from_email, to_email, msg.as_string())
        except (smtplib.SMTPException, ssl.SSLError, OSError) as e:
            logger.error(f"Email to {redact_email(to_email)} failed: {type(e).__name__}: {e}")
            return False

        logger.info(f"Email '{subject}' sent to {redact_email(to_email)}")
        return True

    async def send_email(self, to_email: str, subject: str, html_body: str) -> bool:
        """Send off the event loop; returns whether the message was handed to the SMTP server."""
        return await run_in_threadpool(self._send, to_email, subject, html_body)

    async def send_email_verification(self, to_email: str, verify_url: str) -> bool:
        html_body = (
            "<p>Confirm your email to activate your CronoStudio account.</p>"
            f'<p><a href="{verify_url}">{verify_url}</a></p>'
        )
        return await self.send_email(to_email, "Verify your email - CronoStudio", html_body)

    async def send_password_reset(self, to_email: str, reset_url: str) -> bool:
        html_body = (
            "<p>You asked to reset your password.</p>"
            "<p>Use this link to continue (valid for one hour):</p>"
            f'<p><a href="{reset_url}">{reset_url}</a></p>'
            "<p>If this wasn't you, ignore this email.</p>"
        )
        return await self.send_email(to_email, "Reset your password - CronoStudio", html_body)


def get_email_service() -> EmailService:
    return EmailService(
        smtp_host=settings.smtp_host,
        smtp_port=settings.smtp_port,
        smtp_user=settings.smtp_user,
        smtp_password=settings.smtp_password,
        smtp_use_tls=settings.smtp_use_tls,
        from_email=settings.email_from,
    )
