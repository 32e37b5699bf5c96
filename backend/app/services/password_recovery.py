"""
Password recovery: forgot-password -> OTP delivery -> verify -> reset.

Delivery is retried sequentially with a per-attempt timeout. A timed-out send
is not cancelled (``asyncio.shield``), so a late delivery can still land after
the caller has been told it failed. When every attempt fails the freshly
written OTP is rolled back.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional, Set

from app.core.config import settings
from app.core.exceptions import PrincipalNotFoundError, ServiceUnavailableError, ValidationError
from app.core.logging_config import logger
from app.core.security import generate_otp, get_password_hash
from app.services.email_service import DeliveryResult, OTPDeliveryGateway
from app.services.principal_repository import Principal, PrincipalRepository, normalize_email

SLOW_SERVICE_MESSAGE = "Email service is currently slow. Please try again in a few minutes."
SLOW_SERVICE_RETRY_AFTER = 120
INVALID_OTP_MESSAGE = "Invalid or expired OTP"


@dataclass(frozen=True)
class RecoveryPolicy:
    otp_length: int = 6
    otp_ttl: timedelta = timedelta(minutes=15)
    max_attempts: int = 3
    attempt_timeout: float = 10.0
    retry_delay: float = 2.0
    password_min_length: int = 6
    bcrypt_rounds: Optional[int] = None

    @classmethod
    def from_settings(cls) -> "RecoveryPolicy":
        return cls(
            otp_length=settings.OTP_LENGTH,
            otp_ttl=timedelta(minutes=settings.OTP_EXPIRE_MINUTES),
            max_attempts=settings.OTP_SEND_MAX_ATTEMPTS,
            attempt_timeout=settings.OTP_SEND_TIMEOUT_SECONDS,
            retry_delay=settings.OTP_SEND_RETRY_DELAY_SECONDS,
            password_min_length=settings.PASSWORD_MIN_LENGTH,
            bcrypt_rounds=settings.BCRYPT_ROUNDS,
        )


@dataclass
class DeliveryOutcome:
    delivered: bool
    attempts: int
    last_error: Optional[str] = None

    @property
    def timed_out(self) -> bool:
        return bool(self.last_error) and "timeout" in self.last_error.lower()


class PasswordRecoveryService:
    """OTP-based password recovery over both principal kinds"""

    def __init__(self, repository: PrincipalRepository, gateway: OTPDeliveryGateway,
                 policy: RecoveryPolicy = RecoveryPolicy()):
        self.repository = repository
        self.gateway = gateway
        self.policy = policy
        self._late_sends: Set[asyncio.Future] = set()

    async def forgot_password(self, email: Optional[str]) -> None:
        email = normalize_email(email)
        if not email:
            raise ValidationError("Email is required", field="email")

        principals = await self.repository.find_by_email(email)
        if not principals:
            logger.log_auth_event(event="forgot_password", success=False, user_email=email,
                                  reason="No such principal")
            raise PrincipalNotFoundError("User not found")

        otp = generate_otp(self.policy.otp_length)
        expires_at = datetime.utcnow() + self.policy.otp_ttl
        # Overwrites any earlier code, which implicitly invalidates it
        for principal in principals:
            principal.record.set_reset_otp(otp, expires_at)
        await self.repository.save(*principals)

        outcome = await self.deliver_with_retry(email, otp)
        if not outcome.delivered:
            await self._rollback_otp(principals)
            logger.log_auth_event(
                event="forgot_password",
                success=False,
                user_email=email,
                reason=f"OTP delivery failed after {outcome.attempts} attempts: {outcome.last_error}",
            )
            if outcome.timed_out:
                raise ServiceUnavailableError(SLOW_SERVICE_MESSAGE, retry_after=SLOW_SERVICE_RETRY_AFTER)
            raise ServiceUnavailableError(f"Email service error: {outcome.last_error}")

        logger.log_auth_event(event="forgot_password", success=True, user_email=email,
                              attempts=outcome.attempts)

    async def deliver_with_retry(self, email: str, otp: str) -> DeliveryOutcome:
        """Sequential, bounded retries; each attempt races a timeout"""
        last_error = None
        ttl_minutes = int(self.policy.otp_ttl.total_seconds() // 60)

        for attempt in range(1, self.policy.max_attempts + 1):
            send = None
            try:
                send = asyncio.ensure_future(self.gateway.send_password_reset_otp(email, otp, ttl_minutes))
                result: DeliveryResult = await asyncio.wait_for(
                    asyncio.shield(send), timeout=self.policy.attempt_timeout
                )
                if result is not None and result.success:
                    logger.log_mail_event(email, success=True, attempt=attempt)
                    return DeliveryOutcome(delivered=True, attempts=attempt)
                last_error = (result.error if result is not None else None) or "Unknown error"
            except asyncio.TimeoutError:
                last_error = f"Email timeout after {self.policy.attempt_timeout:g}s (attempt {attempt})"
                self._track_late_send(send, email, attempt)
            except Exception as e:
                # Gateway blew up instead of reporting failure; keep retrying
                last_error = str(e) or type(e).__name__

            logger.log_mail_event(email, success=False, attempt=attempt, error=last_error)

            if attempt < self.policy.max_attempts:
                await asyncio.sleep(self.policy.retry_delay)

        return DeliveryOutcome(delivered=False, attempts=self.policy.max_attempts, last_error=last_error)

    def _track_late_send(self, send: asyncio.Future, email: str, attempt: int) -> None:
        """Collect the outcome of a send that outlived its attempt"""
        self._late_sends.add(send)

        def _on_done(task: asyncio.Future) -> None:
            self._late_sends.discard(task)
            if task.cancelled():
                return
            error = task.exception()
            if error is not None:
                reason = str(error) or type(error).__name__
            else:
                result = task.result()
                if result is not None and result.success:
                    logger.log_mail_event(email, success=True, attempt=attempt, late=True)
                    return
                reason = (result.error if result is not None else None) or "Unknown error"
            logger.log_mail_event(email, success=False, attempt=attempt,
                                  error=f"Late send failed: {reason}", late=True)

        send.add_done_callback(_on_done)

    async def _rollback_otp(self, principals: List[Principal]) -> None:
        for principal in principals:
            principal.record.clear_reset_otp()
        await self.repository.save(*principals)

    async def verify_otp(self, email: Optional[str], otp: Optional[str]) -> None:
        """Check the code without consuming it"""
        email = normalize_email(email)
        otp = (otp or "").strip()
        if not email or not otp:
            raise ValidationError("Email and OTP are required")

        matches = await self.repository.find_with_valid_otp(email, otp, datetime.utcnow())
        if not matches:
            logger.log_auth_event(event="verify_otp", success=False, user_email=email,
                                  reason="Invalid or expired OTP")
            raise ValidationError(INVALID_OTP_MESSAGE, field="otp")

        logger.log_auth_event(event="verify_otp", success=True, user_email=email)

    async def reset_password(self, email: Optional[str], otp: Optional[str],
                             new_password: Optional[str], confirm_password: Optional[str]) -> None:
        email = normalize_email(email)
        otp = (otp or "").strip()
        if not email or not otp or not new_password or not confirm_password:
            raise ValidationError("All fields are required")
        if new_password != confirm_password:
            raise ValidationError("Passwords do not match", field="confirmPassword")
        if len(new_password) < self.policy.password_min_length:
            raise ValidationError(
                f"Password must be at least {self.policy.password_min_length} characters long",
                field="newPassword",
            )

        matches = await self.repository.find_with_valid_otp(email, otp, datetime.utcnow())
        if not matches:
            logger.log_auth_event(event="reset_password", success=False, user_email=email,
                                  reason="Invalid or expired OTP")
            raise ValidationError(INVALID_OTP_MESSAGE, field="otp")

        hashed = get_password_hash(new_password, self.policy.bcrypt_rounds)
        for principal in matches:
            principal.record.hashed_password = hashed
            principal.record.clear_reset_otp()
        await self.repository.save(*matches)

        logger.log_auth_event(event="reset_password", success=True, user_email=email)
