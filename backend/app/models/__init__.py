from app.models.principal import (
    Admin,
    AdminRole,
    BanStatus,
    PrincipalKind,
    User,
    UserRole,
)

__all__ = [
    "User",
    "Admin",
    "PrincipalKind",
    "UserRole",
    "AdminRole",
    "BanStatus",
]
