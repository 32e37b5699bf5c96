"""
Custom Exceptions for AllyNet Auth
==================================

Every controller-level failure is one of these. The API layer turns them into
a JSON error body with the matching HTTP status code.

Usage:
    from app.core.exceptions import ValidationError, NotFoundError

    if not email:
        raise ValidationError("Email is required", field="email")
"""

from typing import Optional, Any, Dict


class AllyNetError(Exception):
    """Base exception for all AllyNet errors"""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


# ============================================
# Validation Errors (400)
# ============================================

class ValidationError(AllyNetError):
    """Caller-fixable input problem"""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None):
        details = {"field": field} if field else {}
        super().__init__(message, code="VALIDATION_ERROR", details=details)


# ============================================
# Authentication Errors (401)
# ============================================

class AuthenticationError(AllyNetError):
    """Bad credentials or token"""

    status_code = 401

    def __init__(self, message: str = "Authentication failed"):
        super().__init__(message, code="AUTH_FAILED")


class TokenExpiredError(AuthenticationError):
    """JWT token has expired"""

    def __init__(self, message: str = "Token has expired"):
        super().__init__(message)
        self.code = "TOKEN_EXPIRED"


class InvalidTokenError(AuthenticationError):
    """JWT token is invalid"""

    def __init__(self, message: str = "Invalid token"):
        super().__init__(message)
        self.code = "INVALID_TOKEN"


# ============================================
# Resource Errors (404)
# ============================================

class NotFoundError(AllyNetError):
    """No matching resource"""

    status_code = 404

    def __init__(self, message: str = "Not found"):
        super().__init__(message, code="NOT_FOUND")


class PrincipalNotFoundError(NotFoundError):
    """No user or admin matches the lookup"""

    def __init__(self, message: str = "User not found"):
        super().__init__(message)
        self.code = "PRINCIPAL_NOT_FOUND"


# ============================================
# Server-side Errors (500 / 503)
# ============================================

class InternalError(AllyNetError):
    """Unexpected failure, usually the credential store"""

    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message, code="INTERNAL_ERROR")


class EmailConfigurationError(InternalError):
    """Mail transport credentials are missing"""

    def __init__(self, message: str = "Email credentials are not configured. Set EMAIL_USER and EMAIL_PASS."):
        super().__init__(message)
        self.code = "EMAIL_NOT_CONFIGURED"


class ServiceUnavailableError(AllyNetError):
    """A downstream service (mail gateway) is exhausted"""

    status_code = 503

    def __init__(self, message: str, retry_after: Optional[int] = None):
        super().__init__(message, code="SERVICE_UNAVAILABLE")
        if retry_after:
            self.details["retry_after_seconds"] = retry_after


# ============================================
# Helper function for API responses
# ============================================

def error_response(error: AllyNetError) -> Dict[str, Any]:
    """Convert exception to API error response format"""
    return {
        "success": False,
        "message": error.message,
        "error": error.to_dict()
    }
