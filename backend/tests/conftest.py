"""
AllyNet Auth - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from faker import Faker

# Set testing environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test.db'
os.environ['ACCESS_TOKEN_SECRET'] = 'test-access-secret-for-testing-only'
os.environ['REFRESH_TOKEN_SECRET'] = 'test-refresh-secret-for-testing-only'
os.environ['EMAIL_USER'] = 'noreply@allynet.test'
os.environ['EMAIL_PASS'] = 'test-app-password'
os.environ['BCRYPT_ROUNDS'] = '4'
os.environ['RATE_LIMIT_ENABLED'] = 'false'
os.environ['OTP_SEND_TIMEOUT_SECONDS'] = '0.2'
os.environ['OTP_SEND_RETRY_DELAY_SECONDS'] = '0'

from app.main import app
from app.core.database import Base, get_db
from app.core.security import TokenConfig, TokenService, get_password_hash
from app.models.principal import Admin, AdminRole, User, UserRole
from app.modules.auth.dependencies import get_otp_gateway
from app.services.password_recovery import RecoveryPolicy
from app.services.principal_repository import Principal, PrincipalRepository
from tests.mocks.mock_mail import FakeOTPGateway

fake = Faker()

USER_PASSWORD = 'testpassword123'
ADMIN_PASSWORD = 'adminpassword123'

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test.db'
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False
)


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def mail_gateway() -> FakeOTPGateway:
    """Mail gateway that always delivers"""
    return FakeOTPGateway()


@pytest.fixture
async def client(db_session: AsyncSession, mail_gateway: FakeOTPGateway) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database and mail overrides"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_otp_gateway] = lambda: mail_gateway

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def repository(db_session: AsyncSession) -> PrincipalRepository:
    return PrincipalRepository(db_session)


@pytest.fixture
def token_service() -> TokenService:
    return TokenService(TokenConfig.from_settings())


@pytest.fixture
def fast_policy() -> RecoveryPolicy:
    """Recovery policy with tiny timeouts so retry tests run quickly"""
    return RecoveryPolicy(attempt_timeout=0.05, retry_delay=0.0, bcrypt_rounds=4)


@pytest.fixture
async def test_user(db_session: AsyncSession) -> User:
    """Create a test user"""
    user = User(
        name=fake.name(),
        email=fake.unique.email().lower(),
        hashed_password=get_password_hash(USER_PASSWORD, 4),
        role=UserRole.STUDENT,
        is_verified=True
    )
    db_session.add(user)
    await db_session.commit()
    await db_session.refresh(user)
    return user


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> Admin:
    """Create an admin"""
    admin = Admin(
        name=fake.name(),
        email=fake.unique.email().lower(),
        hashed_password=get_password_hash(ADMIN_PASSWORD, 4),
        role=AdminRole.ADMIN,
    )
    db_session.add(admin)
    await db_session.commit()
    await db_session.refresh(admin)
    return admin


@pytest.fixture
def auth_headers(test_user: User, token_service: TokenService) -> dict:
    """Generate authentication headers for test user"""
    token = token_service.create_access_token(Principal.wrap(test_user))
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def admin_auth_headers(admin_user: Admin, token_service: TokenService) -> dict:
    """Generate authentication headers for admin"""
    token = token_service.create_access_token(Principal.wrap(admin_user))
    return {'Authorization': f'Bearer {token}'}
