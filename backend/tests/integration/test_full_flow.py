"""
Integration Tests for complete session and recovery flows
"""
import pytest
from httpx import AsyncClient
from faker import Faker

from tests.mocks.mock_mail import FakeOTPGateway

fake = Faker()


class TestAuthenticationFlow:
    """Test complete authentication flow"""

    @pytest.mark.asyncio
    async def test_register_login_refresh_logout(self, client: AsyncClient):
        """Register, log in, use the access token, rotate, log out"""
        email = fake.unique.email().lower()
        password = 'securePassword123!'

        register_response = await client.post('/api/v1/auth/register', json={
            'name': fake.name(),
            'email': email,
            'password': password,
            'role': 'student'
        })
        assert register_response.status_code == 201

        login_response = await client.post('/api/v1/auth/login', json={
            'email': email,
            'password': password
        })
        assert login_response.status_code == 200
        tokens = login_response.json()['data']

        headers = {'Authorization': f'Bearer {tokens["accessToken"]}'}
        me_response = await client.get('/api/v1/auth/me', headers=headers)
        assert me_response.status_code == 200
        assert me_response.json()['data']['principal']['email'] == email

        refresh_response = await client.post('/api/v1/auth/refresh-token', json={
            'refreshToken': tokens['refreshToken']
        })
        assert refresh_response.status_code == 200
        rotated = refresh_response.json()['data']

        # The new access token works, the old refresh token does not
        new_headers = {'Authorization': f'Bearer {rotated["accessToken"]}'}
        assert (await client.get('/api/v1/auth/me', headers=new_headers)).status_code == 200
        client.cookies.clear()
        replay =await client.post('/api/v1/auth/refresh-token', json={'refreshToken': tokens['refreshToken']})
        assert replay.status_code == 401

        logout_response = await client.post('/api/v1/auth/logout', headers=new_headers)
        assert logout_response.status_code == 200

        after_logout = await client.post('/api/v1/auth/refresh-token', json={
            'refreshToken': rotated['refreshToken']
        })
        assert after_logout.status_code == 401


class TestPasswordRecoveryFlow:
    """Test forgot -> verify -> reset -> login"""

    @pytest.mark.asyncio
    async def test_full_recovery(self, client: AsyncClient, mail_gateway: FakeOTPGateway, test_user):
        forgot = await client.post('/api/v1/auth/forgot-password', json={'email': test_user.email.upper()})
        assert forgot.status_code == 200
        otp = mail_gateway.last_otp

        verify = await client.post('/api/v1/auth/verify-otp', json={'email': test_user.email, 'otp': otp})
        assert verify.status_code == 200

        reset = await client.post('/api/v1/auth/reset-password', json={
            'email': test_user.email,
            'otp': otp,
            'newPassword': 'recovered-pass',
            'confirmPassword': 'recovered-pass',
        })
        assert reset.status_code == 200

        # Code is consumed
        again = await client.post('/api/v1/auth/verify-otp', json={'email': test_user.email, 'otp': otp})
        assert again.status_code == 400

        login = await client.post('/api/v1/auth/login', json={
            'email': test_user.email,
            'password': 'recovered-pass'
        })
        assert login.status_code == 200

    @pytest.mark.asyncio
    async def test_second_request_invalidates_first_code(self, client: AsyncClient,
                                                          mail_gateway: FakeOTPGateway, test_user):
        await client.post('/api/v1/auth/forgot-password', json={'email': test_user.email})
        first = mail_gateway.last_otp
        await client.post('/api/v1/auth/forgot-password', json={'email': test_user.email})
        second = mail_gateway.last_otp

        if first != second:
            stale = await client.post('/api/v1/auth/verify-otp', json={'email': test_user.email, 'otp': first})
            assert stale.status_code == 400
        fresh = await client.post('/api/v1/auth/verify-otp', json={'email': test_user.email, 'otp': second})
        assert fresh.status_code == 200

    @pytest.mark.asyncio
    async def test_admin_recovery(self, client: AsyncClient, mail_gateway: FakeOTPGateway, admin_user):
        await client.post('/api/v1/auth/forgot-password', json={'email': admin_user.email})

        reset = await client.post('/api/v1/auth/reset-password', json={
            'email': admin_user.email,
            'otp': mail_gateway.last_otp,
            'newPassword': 'admin-recovered',
            'confirmPassword': 'admin-recovered',
        })
        assert reset.status_code == 200

        login = await client.post('/api/v1/auth/login', json={
            'email': admin_user.email,
            'password': 'admin-recovered'
        })
        assert login.json()['data']['userType'] == 'admin'


class TestAPIHealthCheck:
    """Test API health and basic endpoints"""

    @pytest.mark.asyncio
    async def test_health_endpoint(self, client: AsyncClient):
        response = await client.get('/health')

        assert response.status_code == 200
        data = response.json()
        assert data['status'] == 'healthy'
        assert data['app_name'] == 'AllyNet Auth'

    @pytest.mark.asyncio
    async def test_unknown_route(self, client: AsyncClient):
        response = await client.get('/api/v1/auth/does-not-exist')
        assert response.status_code == 404
