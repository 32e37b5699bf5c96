from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")


class CamelModel(BaseModel):
    """camelCase on the wire, snake_case in Python"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================
# Requests
# ============================================
# All fields are optional; missing values surface as 400 validation errors
# raised by the services.

class LoginRequest(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RegisterRequest(CamelModel):
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    role: Optional[str] = None


class RefreshTokenRequest(CamelModel):
    refresh_token: Optional[str] = None
    token: Optional[str] = None  # legacy clients post {"token": ...}

    @property
    def incoming_token(self) -> Optional[str]:
        return self.refresh_token or self.token


class ForgotPasswordRequest(CamelModel):
    email: Optional[str] = None


class VerifyOTPRequest(CamelModel):
    email: Optional[str] = None
    otp: Optional[str] = None


class ResetPasswordRequest(CamelModel):
    email: Optional[str] = None
    otp: Optional[str] = None
    new_password: Optional[str] = None
    confirm_password: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    old_password: Optional[str] = None
    new_password: Optional[str] = None


# ============================================
# Responses
# ============================================

class ApiResponse(CamelModel, Generic[T]):
    """Envelope shared by every successful response"""
    success: bool = True
    message: str
    data: Optional[T] = None


class TokenPairData(CamelModel):
    access_token: str
    refresh_token: str


class LoginData(CamelModel):
    user: Optional[Dict[str, Any]] = None
    admin: Optional[Dict[str, Any]] = None
    access_token: str
    refresh_token: str
    user_type: str


class PrincipalData(CamelModel):
    principal: Dict[str, Any]
    user_type: str
