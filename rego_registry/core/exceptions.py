from typing import Any

from fastapi import status


class RegoRegistryError(Exception):
    """Base class for rule violations surfaced to API callers.

    Each subclass maps to one HTTP status and one machine-readable ``error_type``;
    the message is business-facing and safe to return as-is.
    """

    status_code: int = status.HTTP_400_BAD_REQUEST
    error_type: str = "error"
    retryable: bool = False

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(RegoRegistryError):
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    error_type = "validation_error"


class AuthenticationError(RegoRegistryError):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_type = "authentication_error"


class AccountLockedError(AuthenticationError):
    status_code = status.HTTP_423_LOCKED
    error_type = "account_locked"


class AuthorizationError(RegoRegistryError):
    status_code = status.HTTP_403_FORBIDDEN
    error_type = "authorization_error"


class NotFoundError(RegoRegistryError):
    status_code = status.HTTP_404_NOT_FOUND
    error_type = "not_found"


class ConflictError(RegoRegistryError):
    status_code = status.HTTP_409_CONFLICT
    error_type = "conflict"


class InsufficientQuantityError(ConflictError):
    error_type = "insufficient_quantity"


class ResourceExhausted(RegoRegistryError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    error_type = "resource_exhausted"
    retryable = True


class InternalError(RegoRegistryError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_type = "internal_error"
