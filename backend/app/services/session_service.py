"""
Session management: login, logout, refresh-token rotation, plus the
account-level operations that need an authenticated principal (register,
change password).
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from app.core.exceptions import (
    AllyNetError,
    AuthenticationError,
    InternalError,
    PrincipalNotFoundError,
    ValidationError,
)
from app.core.logging_config import logger, set_principal_id
from app.core.security import TokenPair, TokenService, get_password_hash, verify_password
from app.models.principal import PrincipalKind, User, UserRole
from app.services.principal_repository import Principal, PrincipalRepository, normalize_email


@dataclass
class LoginResult:
    principal: Principal
    access_token: str
    refresh_token: str

    @property
    def user_type(self) -> str:
        return self.principal.kind.value


class SessionService:
    """Login, logout and refresh-token rotation over both principal kinds"""

    def __init__(self, repository: PrincipalRepository, tokens: TokenService,
                 password_min_length: int = 6, bcrypt_rounds: Optional[int] = None):
        self.repository = repository
        self.tokens = tokens
        self.password_min_length = password_min_length
        self.bcrypt_rounds = bcrypt_rounds

    async def issue_tokens(self, principal: Principal) -> TokenPair:
        """Sign a new pair and persist the refresh token, replacing any old one"""
        try:
            pair = self.tokens.issue_pair(principal)
            principal.record.refresh_token = pair.refresh_token
            await self.repository.save(principal)
        except AllyNetError as e:
            logger.log_error_with_context(e, context="issue_tokens", principal_kind=principal.kind.value)
            raise InternalError(f"Error generating {principal.kind.value} token") from e
        return pair

    async def login(self, email: Optional[str], password: Optional[str]) -> LoginResult:
        if not email or not password:
            raise ValidationError("Email and password are required")

        email = normalize_email(email)
        matches = await self.repository.find_by_email(email)
        if not matches:
            logger.log_auth_event(event="login", success=False, user_email=email, reason="No such principal")
            raise PrincipalNotFoundError("Invalid email or password")

        if len(matches) > 1:
            logger.warning(
                f"[Auth] {email} exists as both user and admin; logging in as user",
                extra={"event_type": "auth", "user_email": email},
            )
        principal = matches[0]

        if not verify_password(password, principal.record.hashed_password):
            logger.log_auth_event(
                event="login",
                success=False,
                user_email=email,
                reason="Incorrect password",
                principal_kind=principal.kind.value,
            )
            raise AuthenticationError("Incorrect password. Please try again.")

        # Bans never block login; restricted actions are enforced elsewhere.
        # A lifted ban is persisted together with the new refresh token.
        if principal.is_user and principal.record.temp_ban_expired(datetime.utcnow()):
            principal.record.lift_ban()
            logger.info(f"[Auth] Temporary ban expired for {email}, lifted on login")

        pair = await self.issue_tokens(principal)
        set_principal_id(principal.id)

        logger.log_auth_event(
            event="login",
            success=True,
            user_email=email,
            principal_kind=principal.kind.value,
        )
        return LoginResult(principal, pair.access_token, pair.refresh_token)

    async def refresh(self, incoming_refresh_token: Optional[str]) -> TokenPair:
        if not incoming_refresh_token:
            raise AuthenticationError("Unauthorized request")

        try:
            payload = self.tokens.decode_refresh_token(incoming_refresh_token)
        except AuthenticationError as e:
            logger.log_auth_event(event="token_refresh", success=False, reason=e.message)
            raise AuthenticationError("Invalid refresh token")

        principal = await self.repository.find_by_id(payload["sub"])
        if principal is None:
            logger.log_auth_event(event="token_refresh", success=False, reason="Principal not found")
            raise AuthenticationError("Invalid refresh token")

        # A rotated-out token no longer matches what is stored
        if principal.record.refresh_token != incoming_refresh_token:
            logger.log_auth_event(
                event="token_refresh",
                success=False,
                user_email=principal.email,
                reason="Refresh token reuse",
            )
            raise AuthenticationError("Refresh token is expired or used")

        pair = await self.issue_tokens(principal)
        logger.log_auth_event(event="token_refresh", success=True, user_email=principal.email)
        return pair

    async def logout(self, principal: Optional[Principal]) -> None:
        if principal is None:
            raise ValidationError("No active session found")

        await self.repository.clear_refresh_token(principal)
        logger.log_auth_event(
            event="logout",
            success=True,
            user_email=principal.email,
            principal_kind=principal.kind.value,
        )

    async def change_password(self, principal: Principal, old_password: Optional[str],
                              new_password: Optional[str]) -> None:
        if not old_password or not new_password:
            raise ValidationError("All fields are required")
        if old_password == new_password:
            raise ValidationError("New password must be different from old password")
        if len(new_password) < self.password_min_length:
            raise ValidationError(
                f"Password must be at least {self.password_min_length} characters long",
                field="newPassword",
            )
        if not verify_password(old_password, principal.record.hashed_password):
            logger.log_auth_event(
                event="change_password",
                success=False,
                user_email=principal.email,
                reason="Invalid old password",
            )
            raise ValidationError("Invalid old password", field="oldPassword")

        principal.record.hashed_password = get_password_hash(new_password, self.bcrypt_rounds)
        await self.repository.save(principal)
        logger.log_auth_event(event="change_password", success=True, user_email=principal.email)

    async def register_user(self, name: Optional[str], email: Optional[str], password: Optional[str],
                            role: Optional[str] = None) -> Principal:
        name = (name or "").strip()
        email = normalize_email(email)

        if not name or not email or not password:
            raise ValidationError("Name, email and password are required")
        if len(name) < 3:
            raise ValidationError("Name must be at least 3 characters long", field="name")
        if len(password) < self.password_min_length:
            raise ValidationError(
                f"Password must be at least {self.password_min_length} characters long",
                field="password",
            )
        try:
            user_role = UserRole(role or UserRole.STUDENT.value)
        except ValueError:
            raise ValidationError(f"Invalid role '{role}'", field="role")

        if await self.repository.email_exists(PrincipalKind.USER, email):
            logger.log_auth_event(event="register", success=False, user_email=email,
                                  reason="Email already registered")
            raise ValidationError("Email already registered", field="email")

        principal = await self.repository.add(User(
            name=name,
            email=email,
            hashed_password=get_password_hash(password, self.bcrypt_rounds),
            role=user_role,
        ))
        logger.log_auth_event(event="register", success=True, user_email=email)
        return principal
