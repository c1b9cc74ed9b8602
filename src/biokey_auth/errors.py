"""
Error taxonomy for authentication operations.

Every failure raised by the auth services is an `AuthError` tagged with an
`ErrorCode`. Callers branch on `exc.code`, never on the concrete class, and
the HTTP layer translates a code to a status through `STATUS_BY_CODE`.
"""

from enum import Enum
from typing import Dict

from fastapi import status


class ErrorCode(str, Enum):
    VALIDATION = "validation_error"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    INTERNAL = "internal_error"


STATUS_BY_CODE: Dict[ErrorCode, int] = {
    ErrorCode.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class AuthError(Exception):
    """Base class for all authentication failures."""

    code: ErrorCode = ErrorCode.INTERNAL

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def status_code(self) -> int:
        return STATUS_BY_CODE[self.code]

    def to_dict(self) -> Dict[str, str]:
        return {"error": self.code.value, "message": self.message}


class ValidationError(AuthError):
    """Malformed or missing input, weak password, non-hex key, expired session."""

    code = ErrorCode.VALIDATION


class NotFoundError(AuthError):
    """Unknown user or missing session."""

    code = ErrorCode.NOT_FOUND


class UnauthorizedError(AuthError):
    """Credential or signature mismatch, duplicate pending session."""

    code = ErrorCode.UNAUTHORIZED


class ForbiddenError(AuthError):
    """Authenticated, but the role does not allow the operation."""

    code = ErrorCode.FORBIDDEN


class ConflictError(AuthError):
    """Duplicate email."""

    code = ErrorCode.CONFLICT


class InternalError(AuthError):
    """Unexpected store or crypto failure."""

    code = ErrorCode.INTERNAL
