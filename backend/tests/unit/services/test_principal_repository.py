"""
Unit Tests for PrincipalRepository
"""
import pytest
from datetime import datetime, timedelta
from unittest.mock import AsyncMock
from sqlalchemy.exc import OperationalError

from app.core.exceptions import InternalError
from app.core.security import get_password_hash
from app.models.principal import Admin, AdminRole, PrincipalKind, User
from app.services.principal_repository import Principal, PrincipalRepository, normalize_email


async def add_admin_with_email(repository: PrincipalRepository, email: str) -> Principal:
    return await repository.add(Admin(
        name="Shadow Admin",
        email=email,
        hashed_password=get_password_hash("adminpassword123", 4),
        role=AdminRole.ADMIN,
    ))


class TestNormalizeEmail:

    def test_trims_and_lowercases(self):
        assert normalize_email("  Asha.Rao@AllyNet.DEV ") == "asha.rao@allynet.dev"

    def test_none(self):
        assert normalize_email(None) == ""


class TestLookups:

    @pytest.mark.asyncio
    async def test_find_by_email_user(self, repository: PrincipalRepository, test_user: User):
        matches = await repository.find_by_email(test_user.email.upper())

        assert len(matches) == 1
        assert matches[0].kind == PrincipalKind.USER
        assert matches[0].id == test_user.id

    @pytest.mark.asyncio
    async def test_find_by_email_admin(self, repository: PrincipalRepository, admin_user: Admin):
        matches = await repository.find_by_email(admin_user.email)

        assert [m.kind for m in matches] == [PrincipalKind.ADMIN]

    @pytest.mark.asyncio
    async def test_find_by_email_both_kinds_user_first(self, repository: PrincipalRepository, test_user: User):
        await add_admin_with_email(repository, test_user.email)

        matches = await repository.find_by_email(test_user.email)

        assert [m.kind for m in matches] == [PrincipalKind.USER, PrincipalKind.ADMIN]

    @pytest.mark.asyncio
    async def test_find_by_email_unknown(self, repository: PrincipalRepository):
        assert await repository.find_by_email("nobody@allynet.dev") == []

    @pytest.mark.asyncio
    async def test_find_by_id(self, repository: PrincipalRepository, test_user: User, admin_user: Admin):
        user = await repository.find_by_id(test_user.id)
        admin = await repository.find_by_id(admin_user.id)

        assert user.is_user and user.email == test_user.email
        assert admin.is_admin and admin.email == admin_user.email
        assert await repository.find_by_id("missing") is None
        assert await repository.find_by_id("") is None

    @pytest.mark.asyncio
    async def test_find_with_valid_otp(self, repository: PrincipalRepository, test_user: User):
        now = datetime.utcnow()
        principal = Principal.wrap(test_user)
        test_user.set_reset_otp("123456", now + timedelta(minutes=15))
        await repository.save(principal)

        assert len(await repository.find_with_valid_otp(test_user.email, "123456", now)) == 1
        assert await repository.find_with_valid_otp(test_user.email, "654321", now) == []
        # Expiry is exclusive
        assert await repository.find_with_valid_otp(test_user.email, "123456", now + timedelta(minutes=15)) == []

    @pytest.mark.asyncio
    async def test_email_exists_is_per_kind(self, repository: PrincipalRepository, test_user: User):
        assert await repository.email_exists(PrincipalKind.USER, test_user.email) is True
        assert await repository.email_exists(PrincipalKind.ADMIN, test_user.email) is False


class TestWrites:

    @pytest.mark.asyncio
    async def test_add_normalizes_email(self, repository: PrincipalRepository):
        principal = await add_admin_with_email(repository, "  Ops@AllyNet.Dev ")

        assert principal.email == "ops@allynet.dev"
        assert principal.id

    @pytest.mark.asyncio
    async def test_clear_refresh_token(self, repository: PrincipalRepository, test_user: User):
        principal = Principal.wrap(test_user)
        test_user.refresh_token = "some-token"
        await repository.save(principal)

        await repository.clear_refresh_token(principal)

        reloaded = await repository.find_by_id(test_user.id)
        assert reloaded.record.refresh_token is None

    @pytest.mark.asyncio
    async def test_commit_failure_becomes_internal_error(self, repository: PrincipalRepository, test_user: User):
        repository.db.commit = AsyncMock(side_effect=OperationalError("COMMIT", {}, Exception("disk I/O error")))
        repository.db.rollback = AsyncMock()

        with pytest.raises(InternalError):
            await repository.save(Principal.wrap(test_user))
        repository.db.rollback.assert_awaited_once()


class TestPublicDict:

    @pytest.mark.asyncio
    async def test_private_fields_are_stripped(self, test_user: User):
        test_user.refresh_token = "secret-refresh"
        test_user.reset_otp = "123456"

        public = Principal.wrap(test_user).public_dict()

        assert public["email"] == test_user.email
        assert public["role"] == "student"
        assert public["banStatus"] == "active"
        assert "isVerified" in public and "createdAt" in public
        for key in ("hashedPassword", "refreshToken", "resetOtp", "resetOtpExpiresAt"):
            assert key not in public
