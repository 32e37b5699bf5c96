"""
Rate Limiting for AllyNet Auth
==============================
Implements per-client rate limiting using slowapi.

Credential endpoints carry tighter limits than the default:
- /auth/login: LOGIN_RATE_LIMIT (brute force protection)
- /auth/forgot-password, /auth/verify-otp, /auth/reset-password:
  RECOVERY_RATE_LIMIT (OTP guessing and mail flooding)
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.logging_config import logger


def get_client_identifier(request: Request) -> str:
    """
    Rate limit key.

    Authenticated principal first (set by the auth dependency), else client IP.
    """
    principal_id = getattr(request.state, 'principal_id', None)
    if principal_id:
        return f"principal:{principal_id}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(
    key_func=get_client_identifier,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    strategy="fixed-window",
    enabled=settings.RATE_LIMIT_ENABLED,
)


def login_rate_limit():
    """Rate limit for login (brute force protection)"""
    return limiter.limit(settings.LOGIN_RATE_LIMIT)


def recovery_rate_limit():
    """Rate limit for the OTP recovery endpoints"""
    return limiter.limit(settings.RECOVERY_RATE_LIMIT)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """Return a JSON 429 body in the same shape as other errors"""
    logger.warning(
        f"[RateLimit] Exceeded for {get_client_identifier(request)}: {exc.detail}"
    )

    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "message": "Too many requests. Please slow down.",
            "error": {
                "code": "RATE_LIMITED",
                "message": "Too many requests. Please slow down.",
                "details": {"limit": str(exc.detail)},
            },
        },
        headers={"Retry-After": "60"},
    )
