from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Optional

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import AuthenticationError, NotFoundError
from app.core.logging_config import set_principal_id
from app.core.security import TokenConfig, TokenService
from app.services.email_service import OTPDeliveryGateway, EmailService, SMTPConfig
from app.services.password_recovery import PasswordRecoveryService, RecoveryPolicy
from app.services.principal_repository import Principal, PrincipalRepository
from app.services.session_service import SessionService

# auto_error=False: fall back to the accessToken cookie
security = HTTPBearer(auto_error=False)

_token_service: Optional[TokenService] = None
_otp_gateway: Optional[OTPDeliveryGateway] = None


def get_token_service() -> TokenService:
    global _token_service
    if _token_service is None:
        _token_service = TokenService(TokenConfig.from_settings())
    return _token_service


def get_otp_gateway() -> OTPDeliveryGateway:
    """Mail gateway; raises EmailConfigurationError if credentials are missing"""
    global _otp_gateway
    if _otp_gateway is None:
        _otp_gateway = EmailService(SMTPConfig.from_settings())
    return _otp_gateway


def get_principal_repository(db: AsyncSession = Depends(get_db)) -> PrincipalRepository:
    return PrincipalRepository(db)


def get_session_service(
    repository: PrincipalRepository = Depends(get_principal_repository),
    tokens: TokenService = Depends(get_token_service),
) -> SessionService:
    return SessionService(
        repository,
        tokens,
        password_min_length=settings.PASSWORD_MIN_LENGTH,
        bcrypt_rounds=settings.BCRYPT_ROUNDS,
    )


def get_recovery_service(
    repository: PrincipalRepository = Depends(get_principal_repository),
    gateway: OTPDeliveryGateway = Depends(get_otp_gateway),
) -> PasswordRecoveryService:
    return PasswordRecoveryService(repository, gateway, RecoveryPolicy.from_settings())


def extract_access_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    """Authorization header first, then the accessToken cookie"""
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get("accessToken")


async def get_current_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    repository: PrincipalRepository = Depends(get_principal_repository),
    tokens: TokenService = Depends(get_token_service),
) -> Principal:
    """Authenticated user or admin behind the access token"""
    token = extract_access_token(request, credentials)
    if not token:
        raise AuthenticationError("Unauthorized request")

    payload = tokens.decode_access_token(token)

    principal = await repository.find_by_id(payload["sub"])
    if principal is None:
        raise NotFoundError("Invalid access token")

    set_principal_id(principal.id)
    request.state.principal_id = principal.id
    return principal
