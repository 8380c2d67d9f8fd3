"""
app/services/email_service.py

Purpose: Transactional email over SMTP

- OTP mails, admin listing alerts, subscription confirmations, newsletters
- STARTTLS submission (Gmail app passwords by default)
- Blocking smtplib work runs in a worker thread
"""

import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Dict, Any, Optional

from starlette.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)


class EmailService:
    """Service for sending email via SMTP"""

    def __init__(self):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.user = settings.SMTP_USER
        # Gmail app passwords are often pasted with spaces
        self.password = (settings.SMTP_PASSWORD or "").replace(" ", "")
        self.from_name = settings.SMTP_FROM_NAME

    def is_configured(self) -> bool:
        return bool(self.user and self.password)

    def _build_message(self, to: str, subject: str, html: Optional[str], text: Optional[str]) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((self.from_name, self.user))
        message["To"] = to
        message["Subject"] = subject
        message.set_content(text or "Please view this message in an HTML capable client.")
        if html:
            message.add_alternative(html, subtype="html")
        return message

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=15) as smtp:
            smtp.starttls()
            smtp.login(self.user, self.password)
            smtp.send_message(message)

    async def send(
        self,
        to: str,
        subject: str,
        html: Optional[str] = None,
        text: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Sends one email.

        Returns:
            {"success": True/False, "error": "Optional error message"}
        """
        if not self.is_configured():
            logger.warning(f"Email not configured, skipping mail to {to}: {subject}")
            return {"success": False, "error": "Email service not configured"}

        message = self._build_message(to, subject, html, text)

        try:
            await run_in_threadpool(self._deliver, message)
            logger.info(f"📧 Email sent to {to}: {subject}")
            return {"success": True}
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to}: {e}")
            return {"success": False, "error": str(e)}


# Singleton instance
email_service = EmailService()
