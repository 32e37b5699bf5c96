# Pydantic schemas
from app.schemas.auth import (
    ApiResponse,
    LoginRequest,
    RegisterRequest,
    RefreshTokenRequest,
    ForgotPasswordRequest,
    VerifyOTPRequest,
    ResetPasswordRequest,
    ChangePasswordRequest,
    LoginData,
    TokenPairData,
    PrincipalData,
)
