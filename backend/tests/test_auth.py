import pytest
from httpx import AsyncClient


@pytest.fixture
def test_user_data():
    return {
        "name": "Asha Rao",
        "email": "asha.rao@allynet.dev",
        "password": "testpassword123",
        "role": "student",
    }


@pytest.mark.asyncio
async def test_register_user(client: AsyncClient, test_user_data):
    """Test user registration"""
    response = await client.post("/api/v1/auth/register", json=test_user_data)

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["principal"]["email"] == test_user_data["email"]
    assert data["principal"]["role"] == test_user_data["role"]
    assert data["userType"] == "user"
    assert "id" in data["principal"]


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient, test_user_data):
    """Test registration with duplicate email"""
    await client.post("/api/v1/auth/register", json=test_user_data)

    response = await client.post("/api/v1/auth/register", json=test_user_data)

    assert response.status_code == 400
    assert "already registered" in response.json()["message"]


@pytest.mark.asyncio
async def test_register_short_password(client: AsyncClient, test_user_data):
    test_user_data["password"] = "123"

    response = await client.post("/api/v1/auth/register", json=test_user_data)

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, test_user_data):
    """Test successful login"""
    await client.post("/api/v1/auth/register", json=test_user_data)

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": test_user_data["email"], "password": test_user_data["password"]}
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert "accessToken" in data
    assert "refreshToken" in data
    assert data["userType"] == "user"


@pytest.mark.asyncio
async def test_login_invalid_credentials(client: AsyncClient, test_user_data):
    """Test login with invalid credentials"""
    await client.post("/api/v1/auth/register", json=test_user_data)

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": test_user_data["email"], "password": "wrongpassword"}
    )

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_get_current_user(client: AsyncClient, test_user_data):
    """Test getting current user info"""
    await client.post("/api/v1/auth/register", json=test_user_data)
    login_response = await client.post(
        "/api/v1/auth/login",
        json={"email": test_user_data["email"], "password": test_user_data["password"]}
    )
    token = login_response.json()["data"]["accessToken"]

    response = await client.get(
        "/api/v1/auth/me",
        headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 200
    assert response.json()["data"]["principal"]["email"] == test_user_data["email"]
