"""
services/email_service.py
-------------------------
Outgoing email (password reset links).

Messages are handed to the configured SMTP relay from a worker thread so
the event loop is never blocked. Without SMTP_HOST the service runs in
LOG-ONLY mode: the message is logged instead of sent, which is what local
development and the test-suite use.
"""

import asyncio
import smtplib
from email.message import EmailMessage
from html import escape

from wadesk.core.config import settings
from wadesk.core.logging import get_logger

logger = get_logger(__name__)

APP_TITLE = "WhatsApp Client-Developer Management Platform"


class EmailService:

    def __init__(self) -> None:
        self._log_only = not bool(settings.SMTP_HOST)
        if self._log_only:
            logger.info("EmailService in LOG-ONLY mode, set SMTP_HOST to send mail")

    async def send(self, to: str, subject: str, text: str, html: str | None = None) -> bool:
        """Send one message. Returns False instead of raising on delivery errors."""
        message = EmailMessage()
        message["From"] = settings.EMAIL_FROM
        message["To"] = to
        message["Subject"] = subject
        message.set_content(text)
        if html:
            message.add_alternative(html, subtype="html")

        if self._log_only:
            logger.info("Email not sent (log-only mode)", to=to, subject=subject, body=text)
            return True

        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Email delivery failed", to=to, subject=subject, error=str(exc))
            return False

        logger.info("Email sent", to=to, subject=subject)
        return True

    @staticmethod
    def _deliver(message: EmailMessage) -> None:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as smtp:
            if settings.SMTP_USE_TLS:
                smtp.starttls()
            if settings.SMTP_USERNAME:
                smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
            smtp.send_message(message)

    async def send_password_reset(
        self, to: str, reset_link: str, user_name: str, role: str
    ) -> bool:
        account = "your admin account" if role == "admin" else "your developer account"
        expires = settings.RESET_TOKEN_EXPIRE_MINUTES
        subject = f"Password Reset Request - {APP_TITLE}"
        text = (
            f"Hello {user_name},\n\n"
            f"We received a request to reset your password for {account} "
            f"on the {APP_TITLE}.\n\n"
            f"To reset your password, open the link below:\n{reset_link}\n\n"
            f"This link will expire in {expires} minutes.\n\n"
            "If you did not request a password reset, please ignore this email.\n\n"
            f"Thank you,\n{APP_TITLE} Team\n"
        )
        safe_name = escape(user_name)
        safe_link = escape(reset_link, quote=True)
        html = (
            '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">'
            "<h2>Password Reset Request</h2>"
            f"<p>Hello {safe_name},</p>"
            f"<p>We received a request to reset your password for <strong>{account}</strong> "
            f"on the {APP_TITLE}.</p>"
            f'<p><a href="{safe_link}">Reset Password</a></p>'
            f"<p>This link will expire in {expires} minutes.</p>"
            "<p>If you did not request a password reset, please ignore this email.</p>"
            f"<p>Thank you,<br>{APP_TITLE} Team</p>"
            "</div>"
        )
        return await self.send(to, subject, text, html)


# Singleton — shared across all requests
email_service = EmailService()
