"""
Email delivery of password-reset and verification tokens via SMTP.
"""

from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from html import escape
from urllib.parse import urlencode

import aiosmtplib

from identity_service.core.config import Settings
from identity_service.core.logging import get_logger
from identity_service.db.models import Account

logger = get_logger(__name__)


class EmailService:
    """Sends recovery emails via SMTP. Implements ``TokenDelivery``."""

    def __init__(self, settings: Settings):
        self.smtp_host = settings.SMTP_HOST
        self.smtp_port = settings.SMTP_PORT
        self.smtp_user = settings.SMTP_USER
        self.smtp_password = settings.SMTP_PASSWORD
        self.smtp_use_tls = settings.SMTP_USE_TLS
        self.from_email = settings.EMAIL_FROM
        self.from_name = settings.EMAIL_FROM_NAME
        self.frontend_url = settings.FRONTEND_URL.rstrip("/")
        self.reset_minutes = settings.PASSWORD_RESET_EXPIRE_MINUTES
        self.verification_minutes = settings.VERIFICATION_EXPIRE_MINUTES

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str | None = None,
    ) -> bool:
        """
        Send an email via SMTP.

        Args:
            to_email: Recipient email address
            subject: Email subject
            html_content: HTML body content
            text_content: Plain text fallback (optional)

        Returns:
            True if sent successfully, False otherwise
        """
        try:
            message = MIMEMultipart("alternative")
            message["Subject"] = subject
            message["From"] = f"{self.from_name} <{self.from_email}>"
            message["To"] = to_email

            if text_content:
                message.attach(MIMEText(text_content, "plain", "utf-8"))
            message.attach(MIMEText(html_content, "html", "utf-8"))

            await aiosmtplib.send(
                message,
                hostname=self.smtp_host,
                port=self.smtp_port,
                username=self.smtp_user,
                password=self.smtp_password,
                start_tls=self.smtp_use_tls,
            )
            return True

        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email: {e}")
            return False

    async def send_password_reset(self, account: Account, token: str) -> bool:
        link = self._link("reset-password", token)
        sent = await self.send_email(
            to_email=account.email,
            subject="Reset your password",
            html_content=self._format_html(
                account,
                "Someone asked to reset the password for your account.",
                link,
                "Reset password",
                self.reset_minutes,
            ),
            text_content=self._format_text(
                account,
                "Someone asked to reset the password for your account.",
                link,
                self.reset_minutes,
            ),
        )
        if sent:
            logger.info_with_data("Password reset email sent", {"account_id": str(account.id)})
        return sent

    async def send_verification(self, account: Account, token: str) -> bool:
        link = self._link("verify", token)
        sent = await self.send_email(
            to_email=account.email,
            subject="Confirm your account",
            html_content=self._format_html(
                account,
                "Please confirm your account.",
                link,
                "Confirm account",
                self.verification_minutes,
            ),
            text_content=self._format_text(
                account,
                "Please confirm your account.",
                link,
                self.verification_minutes,
            ),
        )
        if sent:
            logger.info_with_data("Verification email sent", {"account_id": str(account.id)})
        return sent

    def _link(self, path: str, token: str) -> str:
        return f"{self.frontend_url}/{path}?{urlencode({'token': token})}"

    def _format_html(self, account: Account, intro: str, link: str, action: str, minutes: int) -> str:
        return f"""
        <!DOCTYPE html>
        <html>
        <head><meta charset="utf-8"></head>
        <body>
            <p>Hi {escape(account.username)},</p>
            <p>{escape(intro)}</p>
            <p><a href="{escape(link, quote=True)}">{escape(action)}</a></p>
            <p>This link expires in {minutes} minutes. If you did not ask for it, ignore this email.</p>
        </body>
        </html>
        """

    def _format_text(self, account: Account, intro: str, link: str, minutes: int) -> str:
        return (
            f"Hi {account.username},\n\n"
            f"{intro}\n\n"
            f"{link}\n\n"
            f"This link expires in {minutes} minutes. "
            "If you did not ask for it, ignore this email.\n"
        )
