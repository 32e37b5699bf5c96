from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum, Text
from datetime import datetime
import enum
import uuid

from app.core.database import Base


def generate_uuid() -> str:
    """Generate a UUID string"""
    return str(uuid.uuid4())


class PrincipalKind(str, enum.Enum):
    """Which table a principal lives in"""
    USER = "user"
    ADMIN = "admin"


class UserRole(str, enum.Enum):
    STUDENT = "student"
    ALUMNI = "alumni"


class AdminRole(str, enum.Enum):
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


class BanStatus(str, enum.Enum):
    ACTIVE = "active"
    TEMP_BANNED = "temp_banned"
    SUSPENDED = "suspended"


class PrincipalMixin:
    """Columns shared by every account that can authenticate"""

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    # Always stored trimmed + lowercased, see normalize_email()
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    avatar = Column(Text, nullable=True)

    # Single active refresh token; issuing a new one overwrites it
    refresh_token = Column(Text, nullable=True)

    # Password recovery: both set or both NULL
    reset_otp = Column(String(12), nullable=True)
    reset_otp_expires_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def set_reset_otp(self, otp: str, expires_at: datetime) -> None:
        self.reset_otp = otp
        self.reset_otp_expires_at = expires_at

    def clear_reset_otp(self) -> None:
        self.reset_otp = None
        self.reset_otp_expires_at = None

    def has_valid_otp(self, otp: str, now: datetime) -> bool:
        """An OTP is valid only while now is strictly before its expiry"""
        if not self.reset_otp or self.reset_otp_expires_at is None:
            return False
        return self.reset_otp == otp and now < self.reset_otp_expires_at


class User(PrincipalMixin, Base):
    """Alumni network member"""
    __tablename__ = "users"

    kind = PrincipalKind.USER

    role = Column(SQLEnum(UserRole), default=UserRole.STUDENT, nullable=False)
    is_verified = Column(Boolean, default=False)

    # Moderation
    ban_status = Column(SQLEnum(BanStatus), default=BanStatus.ACTIVE, nullable=False)
    ban_reason = Column(Text, nullable=True)
    ban_expires_at = Column(DateTime, nullable=True)

    def temp_ban_expired(self, now: datetime) -> bool:
        return (
            self.ban_status == BanStatus.TEMP_BANNED
            and self.ban_expires_at is not None
            and now > self.ban_expires_at
        )

    def lift_ban(self) -> None:
        self.ban_status = BanStatus.ACTIVE
        self.ban_reason = None
        self.ban_expires_at = None

    def __repr__(self):
        return f"<User {self.email}>"


class Admin(PrincipalMixin, Base):
    """Platform administrator"""
    __tablename__ = "admins"

    kind = PrincipalKind.ADMIN

    role = Column(SQLEnum(AdminRole), default=AdminRole.ADMIN, nullable=False)

    def __repr__(self):
        return f"<Admin {self.email}>"
