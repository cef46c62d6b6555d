"""
Typed application errors.

Services raise these; the HTTP layer maps each kind to a status code. Every error
carries a human readable message and a machine readable error code.
"""

import enum
from typing import Any, Dict, Optional


class ErrorCode(str, enum.Enum):
    ACCESS_UNAUTHORIZED = "ACCESS_UNAUTHORIZED"
    AUTH_UNAUTHORIZED_ACCESS = "AUTH_UNAUTHORIZED_ACCESS"
    AUTH_INVALID_CREDENTIALS = "AUTH_INVALID_CREDENTIALS"
    AUTH_EMAIL_ALREADY_EXISTS = "AUTH_EMAIL_ALREADY_EXISTS"
    AUTH_USER_NOT_FOUND = "AUTH_USER_NOT_FOUND"
    AUTH_INVALID_TOKEN = "AUTH_INVALID_TOKEN"
    ACCESS_FORBIDDEN = "ACCESS_FORBIDDEN"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INTERNAL_SERVER_ERROR = "INTERNAL_SERVER_ERROR"


class AppError(Exception):
    """Base class for errors that the API turns into a JSON response."""

    status_code = 500
    default_code = ErrorCode.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, error_code: Optional[ErrorCode] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.message, "error_code": self.error_code.value}


class NotFoundError(AppError):
    status_code = 404
    default_code = ErrorCode.RESOURCE_NOT_FOUND


class BadRequestError(AppError):
    status_code = 400
    default_code = ErrorCode.VALIDATION_ERROR


class ConflictError(BadRequestError):
    """Uniqueness violation (duplicate email, duplicate membership, ...)."""

    default_code = ErrorCode.RESOURCE_CONFLICT


class UnauthorizedError(AppError):
    status_code = 401
    default_code = ErrorCode.ACCESS_UNAUTHORIZED


class ForbiddenError(AppError):
    status_code = 403
    default_code = ErrorCode.ACCESS_FORBIDDEN


class InternalError(AppError):
    """Data-integrity fault, e.g. the role catalog was never seeded."""

    status_code = 500
    default_code = ErrorCode.INTERNAL_SERVER_ERROR
