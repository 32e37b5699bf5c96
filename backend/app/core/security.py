from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, TYPE_CHECKING
import secrets
import string
import uuid

import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt

from app.core.config import settings
from app.core.exceptions import InvalidTokenError, TokenExpiredError

if TYPE_CHECKING:
    from app.services.principal_repository import Principal


ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password"""
    if not plain_password or not hashed_password:
        return False
    # Bcrypt has a 72 byte limit - truncate password if necessary
    password_bytes = plain_password.encode('utf-8')[:72]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False


def get_password_hash(password: str, rounds: int = None) -> str:
    """Hash password with configurable rounds (BCRYPT_ROUNDS in .env)"""
    password_bytes = password.encode('utf-8')[:72]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS))
    return hashed.decode('utf-8')


def generate_otp(length: int = 6) -> str:
    """Numeric one-time password: digits only, no letters or symbols"""
    return "".join(secrets.choice(string.digits) for _ in range(length))


@dataclass(frozen=True)
class TokenConfig:
    access_secret: str
    refresh_secret: str
    algorithm: str = "HS256"
    access_ttl: timedelta = timedelta(minutes=15)
    refresh_ttl: timedelta = timedelta(days=10)

    @classmethod
    def from_settings(cls) -> "TokenConfig":
        return cls(
            access_secret=settings.ACCESS_TOKEN_SECRET,
            refresh_secret=settings.REFRESH_TOKEN_SECRET,
            algorithm=settings.JWT_ALGORITHM,
            access_ttl=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
            refresh_ttl=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
        )


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


class TokenService:
    """
    Signs and verifies the access/refresh JWT pair.

    Access and refresh tokens use distinct secrets and lifetimes. Every token
    carries a random ``jti`` so two tokens minted in the same second still
    differ, which keeps refresh-token rotation observable.
    """

    def __init__(self, config: TokenConfig):
        self.config = config

    def _encode(self, claims: Dict[str, Any], secret: str, ttl: timedelta, token_type: str) -> str:
        now = datetime.utcnow()
        to_encode = dict(claims)
        to_encode.update({
            "type": token_type,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + ttl,
        })
        return jwt.encode(to_encode, secret, algorithm=self.config.algorithm)

    def create_access_token(self, principal: "Principal") -> str:
        """Short-lived token carrying identity claims"""
        claims = {
            "sub": principal.id,
            "kind": principal.kind.value,
            "email": principal.email,
            "name": principal.name,
            "role": principal.role,
        }
        return self._encode(claims, self.config.access_secret, self.config.access_ttl, ACCESS_TOKEN_TYPE)

    def create_refresh_token(self, principal: "Principal") -> str:
        """Long-lived token carrying only the principal id"""
        claims = {"sub": principal.id, "kind": principal.kind.value}
        return self._encode(claims, self.config.refresh_secret, self.config.refresh_ttl, REFRESH_TOKEN_TYPE)

    def issue_pair(self, principal: "Principal") -> TokenPair:
        return TokenPair(
            access_token=self.create_access_token(principal),
            refresh_token=self.create_refresh_token(principal),
        )

    def _decode(self, token: str, secret: str, expected_type: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(token, secret, algorithms=[self.config.algorithm])
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTError:
            raise InvalidTokenError()

        if payload.get("type") != expected_type or not payload.get("sub"):
            raise InvalidTokenError()
        return payload

    def decode_access_token(self, token: str) -> Dict[str, Any]:
        return self._decode(token, self.config.access_secret, ACCESS_TOKEN_TYPE)

    def decode_refresh_token(self, token: str) -> Dict[str, Any]:
        return self._decode(token, self.config.refresh_secret, REFRESH_TOKEN_TYPE)
