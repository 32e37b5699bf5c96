"""
Credential store access for the two principal kinds (User, Admin).

Callers get a ``Principal``: the stored record plus its kind tag, resolved
once per request. Lookups always probe users before admins.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional, Type, Union

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from pydantic.alias_generators import to_camel

from app.core.exceptions import InternalError
from app.core.logging_config import logger
from app.models.principal import Admin, PrincipalKind, User

PrincipalRecord = Union[User, Admin]

# Lookup order matters: a user shadows an admin with the same email
PRINCIPAL_MODELS: List[Type[PrincipalRecord]] = [User, Admin]

# Never leave the credential store
PRIVATE_FIELDS = {"hashed_password", "refresh_token", "reset_otp", "reset_otp_expires_at"}


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def _serialize(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if hasattr(value, "value"):
        return value.value
    return value


@dataclass
class Principal:
    """A User or Admin account, tagged with its kind"""

    kind: PrincipalKind
    record: PrincipalRecord

    @classmethod
    def wrap(cls, record: PrincipalRecord) -> "Principal":
        return cls(kind=record.kind, record=record)

    @property
    def id(self) -> str:
        return str(self.record.id)

    @property
    def email(self) -> str:
        return self.record.email

    @property
    def name(self) -> str:
        return self.record.name

    @property
    def role(self) -> str:
        return _serialize(self.record.role)

    @property
    def is_user(self) -> bool:
        return self.kind == PrincipalKind.USER

    @property
    def is_admin(self) -> bool:
        return self.kind == PrincipalKind.ADMIN

    def public_dict(self) -> Dict[str, Any]:
        """Sanitized camelCase view: no password hash, refresh token or OTP fields"""
        table = self.record.__table__
        return {
            to_camel(column.name): _serialize(getattr(self.record, column.name))
            for column in table.columns
            if column.name not in PRIVATE_FIELDS
        }


class PrincipalRepository:
    """Async repository over the users and admins tables"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_email(self, email: str) -> List[Principal]:
        """Every principal (user first, then admin) registered under email"""
        email = normalize_email(email)
        matches = []
        for model in PRINCIPAL_MODELS:
            result = await self.db.execute(select(model).where(model.email == email))
            record = result.scalar_one_or_none()
            if record is not None:
                matches.append(Principal.wrap(record))
        return matches

    async def find_by_id(self, principal_id: str) -> Optional[Principal]:
        if not principal_id:
            return None
        for model in PRINCIPAL_MODELS:
            record = await self.db.get(model, str(principal_id))
            if record is not None:
                return Principal.wrap(record)
        return None

    async def find_with_valid_otp(self, email: str, otp: str, now: datetime) -> List[Principal]:
        """Principals whose stored OTP equals otp and has not yet expired"""
        email = normalize_email(email)
        matches = []
        for model in PRINCIPAL_MODELS:
            result = await self.db.execute(
                select(model).where(
                    model.email == email,
                    model.reset_otp == otp,
                    model.reset_otp_expires_at > now,
                )
            )
            record = result.scalar_one_or_none()
            if record is not None:
                matches.append(Principal.wrap(record))
        return matches

    async def email_exists(self, kind: PrincipalKind, email: str) -> bool:
        model = User if kind == PrincipalKind.USER else Admin
        result = await self.db.execute(
            select(model.id).where(model.email == normalize_email(email))
        )
        return result.first() is not None

    async def add(self, record: PrincipalRecord) -> Principal:
        record.email = normalize_email(record.email)
        self.db.add(record)
        await self._commit("add")
        await self.db.refresh(record)
        return Principal.wrap(record)

    async def save(self, *principals: Principal) -> None:
        """Persist pending changes on one or more principals"""
        await self._commit("save")
        for principal in principals:
            await self.db.refresh(principal.record)

    async def clear_refresh_token(self, principal: Principal) -> None:
        principal.record.refresh_token = None
        await self.save(principal)

    async def _commit(self, operation: str) -> None:
        try:
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.log_error_with_context(e, context=f"principal_repository.{operation}")
            raise InternalError("Credential store unavailable") from e
