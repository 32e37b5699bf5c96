# Authentication module

from app.modules.auth.dependencies import (
    get_current_principal,
    get_otp_gateway,
    get_principal_repository,
    get_recovery_service,
    get_session_service,
    get_token_service,
)

__all__ = [
    "get_current_principal",
    "get_otp_gateway",
    "get_principal_repository",
    "get_recovery_service",
    "get_session_service",
    "get_token_service",
]
