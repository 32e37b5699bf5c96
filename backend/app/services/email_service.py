"""
Email Service for AllyNet Auth
==============================
Delivers password-recovery OTP codes over SMTP (Gmail app password by
default). Transport failures are reported in a ``DeliveryResult`` rather
than raised, so callers decide whether to retry.
"""

import aiosmtplib
from dataclasses import dataclass
from datetime import datetime
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.utils import make_msgid
from typing import Optional, Protocol

from app.core.config import settings
from app.core.exceptions import EmailConfigurationError
from app.core.logging_config import logger


@dataclass(frozen=True)
class SMTPConfig:
    username: str
    password: str
    host: str = "smtp.gmail.com"
    port: int = 587
    start_tls: bool = True
    from_name: str = "AllyNet"

    @classmethod
    def from_settings(cls) -> "SMTPConfig":
        return cls(
            username=settings.EMAIL_USER,
            password=settings.EMAIL_PASS,
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            start_tls=settings.SMTP_START_TLS,
            from_name=settings.EMAIL_FROM_NAME,
        )


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    message_id: Optional[str] = None
    error: Optional[str] = None


class OTPDeliveryGateway(Protocol):
    """Anything that can deliver a recovery code to an address"""

    async def send_password_reset_otp(self, email: str, otp: str, expires_in_minutes: int = 15) -> DeliveryResult:
        ...


class EmailService:
    """Async SMTP email service"""

    def __init__(self, config: SMTPConfig):
        if not config.username or not config.password:
            raise EmailConfigurationError()
        self.config = config
        logger.info(f"[Email] Using SMTP {config.host}:{config.port} for email delivery")

    @property
    def from_header(self) -> str:
        return f"{self.config.from_name} <{self.config.username}>"

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: Optional[str] = None
    ) -> DeliveryResult:
        """
        Send an email asynchronously.

        Returns a DeliveryResult; never raises for transport errors.
        """
        message = MIMEMultipart("alternative")
        message["From"] = self.from_header
        message["To"] = to_email
        message["Subject"] = subject
        message["Message-ID"] = make_msgid(domain=self.config.host)

        # Plain text first so HTML is the preferred alternative
        if text_content:
            message.attach(MIMEText(text_content, "plain"))
        message.attach(MIMEText(html_content, "html"))

        try:
            await aiosmtplib.send(
                message,
                hostname=self.config.host,
                port=self.config.port,
                username=self.config.username,
                password=self.config.password,
                start_tls=self.config.start_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error(f"[Email/SMTP] Failed to send email to {to_email}: {e}")
            return DeliveryResult(success=False, error=str(e) or type(e).__name__)

        logger.info(f"[Email/SMTP] Successfully sent email to {to_email}: {subject}")
        return DeliveryResult(success=True, message_id=message["Message-ID"])

    async def send_password_reset_otp(self, email: str, otp: str, expires_in_minutes: int = 15) -> DeliveryResult:
        """Send the password reset OTP"""
        subject = "Password Reset OTP"
        html_content = f"""
        <!DOCTYPE html>
        <html>
        <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
            <div style="background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); padding: 20px; text-align: center;">
                <h1 style="color: white; margin: 0;">Password Reset</h1>
            </div>
            <div style="padding: 30px; background-color: #f9f9f9;">
                <h2 style="color: #333;">Reset Your Password</h2>
                <p style="color: #666; line-height: 1.6;">
                    You requested to reset your password. Use the OTP below to verify your email address:
                </p>
                <div style="background-color: white; padding: 20px; border-radius: 10px; text-align: center; margin: 20px 0;">
                    <h1 style="color: #667eea; font-size: 32px; letter-spacing: 8px; margin: 0;">{otp}</h1>
                </div>
                <p style="color: #666; line-height: 1.6;">
                    This OTP will expire in <strong>{expires_in_minutes} minutes</strong>.
                    If you didn't request this, please ignore this email.
                </p>
                <p style="color: #999; font-size: 12px; border-top: 1px solid #ddd; padding-top: 20px;">
                    This is an automated email. Please do not reply.
                    &copy; {datetime.utcnow().year} {self.config.from_name}
                </p>
            </div>
        </body>
        </html>
        """

        text_content = f"""
Reset Your Password

Your password reset OTP is: {otp}

This OTP will expire in {expires_in_minutes} minutes.
If you didn't request this, please ignore this email.
        """

        return await self.send_email(email, subject, html_content, text_content)
