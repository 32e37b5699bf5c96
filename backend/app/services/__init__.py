from app.services.principal_repository import Principal, PrincipalRepository
from app.services.email_service import EmailService, OTPDeliveryGateway, SMTPConfig
from app.services.session_service import SessionService, LoginResult
from app.services.password_recovery import PasswordRecoveryService, RecoveryPolicy

__all__ = [
    # Credential store
    "Principal",
    "PrincipalRepository",
    # Mail
    "EmailService",
    "OTPDeliveryGateway",
    "SMTPConfig",
    # Auth flows
    "SessionService",
    "LoginResult",
    "PasswordRecoveryService",
    "RecoveryPolicy",
]
