from fastapi import APIRouter, Depends, Request, Response, status
from typing import Optional

from app.core.config import settings
from app.core.rate_limiter import login_rate_limit, recovery_rate_limit
from app.core.security import TokenPair
from app.modules.auth.dependencies import (
    get_current_principal,
    get_recovery_service,
    get_session_service,
)
from app.schemas.auth import (
    ApiResponse,
    ChangePasswordRequest,
    ForgotPasswordRequest,
    LoginData,
    LoginRequest,
    PrincipalData,
    RefreshTokenRequest,
    RegisterRequest,
    ResetPasswordRequest,
    TokenPairData,
    VerifyOTPRequest,
)
from app.services.password_recovery import PasswordRecoveryService
from app.services.principal_repository import Principal
from app.services.session_service import SessionService

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"

router = APIRouter()


def _cookie_options() -> dict:
    return {
        "httponly": True,
        "secure": settings.cookie_secure,
        "samesite": "lax",
    }


def set_auth_cookies(response: Response, pair: TokenPair) -> None:
    options = _cookie_options()
    response.set_cookie(ACCESS_COOKIE, pair.access_token, **options)
    response.set_cookie(REFRESH_COOKIE, pair.refresh_token, **options)


def clear_auth_cookies(response: Response) -> None:
    options = _cookie_options()
    response.delete_cookie(ACCESS_COOKIE, **options)
    response.delete_cookie(REFRESH_COOKIE, **options)


# ============================================
# Session
# ============================================

@router.post("/register", response_model=ApiResponse[PrincipalData], status_code=status.HTTP_201_CREATED)
@login_rate_limit()
async def register(
    request: Request,
    body: RegisterRequest,
    sessions: SessionService = Depends(get_session_service),
):
    """Register a new user account"""
    principal = await sessions.register_user(body.name, body.email, body.password, body.role)
    return ApiResponse(
        message="User registered successfully",
        data=PrincipalData(principal=principal.public_dict(), user_type=principal.kind.value),
    )


@router.post("/login", response_model=ApiResponse[LoginData])
@login_rate_limit()
async def login(
    request: Request,
    response: Response,
    credentials: LoginRequest,
    sessions: SessionService = Depends(get_session_service),
):
    """Login as a user or admin; sets accessToken/refreshToken cookies"""
    result = await sessions.login(credentials.email, credentials.password)
    set_auth_cookies(response, TokenPair(result.access_token, result.refresh_token))

    public = result.principal.public_dict()
    return ApiResponse(
        message=f"{result.user_type.title()} logged in successfully",
        data=LoginData(
            user=public if result.principal.is_user else None,
            admin=public if result.principal.is_admin else None,
            access_token=result.access_token,
            refresh_token=result.refresh_token,
            user_type=result.user_type,
        ),
    )


@router.post("/logout", response_model=ApiResponse[dict])
async def logout(
    response: Response,
    principal: Principal = Depends(get_current_principal),
    sessions: SessionService = Depends(get_session_service),
):
    """Drop the stored refresh token and clear auth cookies"""
    await sessions.logout(principal)
    clear_auth_cookies(response)
    return ApiResponse(message=f"{principal.kind.value.title()} logged out successfully", data={})


@router.post("/refresh-token", response_model=ApiResponse[TokenPairData])
async def refresh_token(
    request: Request,
    response: Response,
    token_request: Optional[RefreshTokenRequest] = None,
    sessions: SessionService = Depends(get_session_service),
):
    """Rotate the refresh token; the cookie wins over the body token"""
    incoming = request.cookies.get(REFRESH_COOKIE)
    incoming = incoming or (token_request.incoming_token if token_request else None)

    pair = await sessions.refresh(incoming)
    set_auth_cookies(response, pair)
    return ApiResponse(
        message="Access token refreshed",
        data=TokenPairData(access_token=pair.access_token, refresh_token=pair.refresh_token),
    )


@router.get("/me", response_model=ApiResponse[PrincipalData])
async def get_current_principal_info(
    principal: Principal = Depends(get_current_principal),
):
    """Current user or admin"""
    return ApiResponse(
        message="Current principal fetched successfully",
        data=PrincipalData(principal=principal.public_dict(), user_type=principal.kind.value),
    )


@router.post("/change-password", response_model=ApiResponse[dict])
async def change_password(
    body: ChangePasswordRequest,
    principal: Principal = Depends(get_current_principal),
    sessions: SessionService = Depends(get_session_service),
):
    await sessions.change_password(principal, body.old_password, body.new_password)
    return ApiResponse(message="Password changed successfully", data={})


# ============================================
# Password recovery
# ============================================

@router.post("/forgot-password", response_model=ApiResponse[dict])
@recovery_rate_limit()
async def forgot_password(
    request: Request,
    body: ForgotPasswordRequest,
    recovery: PasswordRecoveryService = Depends(get_recovery_service),
):
    """
    Email a 6-digit OTP to the account.

    Delivery is retried; the code is never returned in the response.
    """
    await recovery.forgot_password(body.email)
    return ApiResponse(message="OTP sent to email successfully", data={})


@router.post("/verify-otp", response_model=ApiResponse[dict])
@recovery_rate_limit()
async def verify_otp(
    request: Request,
    body: VerifyOTPRequest,
    recovery: PasswordRecoveryService = Depends(get_recovery_service),
):
    """Check an OTP without consuming it"""
    await recovery.verify_otp(body.email, body.otp)
    return ApiResponse(message="OTP verified", data={})


@router.post("/reset-password", response_model=ApiResponse[dict])
@recovery_rate_limit()
async def reset_password(
    request: Request,
    body: ResetPasswordRequest,
    recovery: PasswordRecoveryService = Depends(get_recovery_service),
):
    """Set a new password with a valid OTP; consumes the OTP"""
    await recovery.reset_password(body.email, body.otp, body.new_password, body.confirm_password)
    return ApiResponse(message="Password reset successfully", data={})
