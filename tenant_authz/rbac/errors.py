"""
Authorization error taxonomy.

Every error carries the HTTP status the outer boundary should answer with
and a generic, non-revealing detail message.
"""

from fastapi import status


class AuthorizationError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "Authorization failed"

    def __init__(self, detail: str | None = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class ConfigurationError(AuthorizationError):
    """Tenant database handle or tenant identity missing from the request."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Tenant context missing"


class Unauthorized(AuthorizationError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Unauthorized"


class AccountInactive(AuthorizationError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Account is not active"


class InsufficientPermissions(AuthorizationError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Forbidden: insufficient permissions"


class StoreFailure(AuthorizationError):
    """A role or user store read failed; the original error is chained."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail = "Authorization store unavailable"
