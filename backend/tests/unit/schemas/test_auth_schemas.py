"""
Unit Tests for Auth Schemas
Tests for: camelCase wire format, optional request fields, response envelope
"""
import pytest
from pydantic import ValidationError

from app.schemas.auth import (
    ApiResponse,
    ChangePasswordRequest,
    LoginData,
    LoginRequest,
    RefreshTokenRequest,
    ResetPasswordRequest,
    TokenPairData,
)


class TestRequests:
    """Request bodies accept camelCase keys"""

    def test_reset_password_camel_case(self):
        body = ResetPasswordRequest.model_validate({
            "email": "asha@allynet.dev",
            "otp": "042917",
            "newPassword": "new-secret",
            "confirmPassword": "new-secret",
        })

        assert body.new_password == "new-secret"
        assert body.confirm_password == "new-secret"

    def test_snake_case_also_accepted(self):
        body = ChangePasswordRequest(old_password="old-secret", new_password="new-secret")
        assert body.old_password == "old-secret"

    def test_missing_fields_are_none(self):
        """Presence checks happen in the services so the messages are readable"""
        body = LoginRequest.model_validate({})
        assert body.email is None and body.password is None

    def test_wrong_type_rejected(self):
        with pytest.raises(ValidationError):
            LoginRequest.model_validate({"email": ["not", "a", "string"]})

    @pytest.mark.parametrize("payload, expected", [
        ({"refreshToken": "abc"}, "abc"),
        ({"token": "legacy"}, "legacy"),
        ({"refreshToken": "abc", "token": "legacy"}, "abc"),
        ({}, None),
    ])
    def test_refresh_token_sources(self, payload, expected):
        assert RefreshTokenRequest.model_validate(payload).incoming_token == expected


class TestResponses:

    def test_envelope_serializes_camel_case(self):
        response = ApiResponse[TokenPairData](
            message="Access token refreshed",
            data=TokenPairData(access_token="a", refresh_token="r"),
        )

        assert response.model_dump(by_alias=True) == {
            "success": True,
            "message": "Access token refreshed",
            "data": {"accessToken": "a", "refreshToken": "r"},
        }

    def test_login_data(self):
        data = LoginData(user={"email": "asha@allynet.dev"}, access_token="a",
                         refresh_token="r", user_type="user")

        dumped = data.model_dump(by_alias=True)
        assert dumped["userType"] == "user"
        assert dumped["admin"] is None
