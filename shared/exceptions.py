"""
shared/exceptions.py
Domain errors raised by the calendar store, lifecycle engine and auth service.
The HTTP boundary (main.py) maps each ErrorCode to a status code.
"""

from enum import Enum


class ErrorCode(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    AUTHENTICATION_FAILED = "AUTHENTICATION_FAILED"


class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class NotFoundError(DomainError):
    """Date or record absent from the calendar."""

    code = ErrorCode.NOT_FOUND


class ConflictError(DomainError):
    """Requested transition violates the record's current state."""

    code = ErrorCode.CONFLICT


class ValidationFailure(DomainError):
    code = ErrorCode.VALIDATION_FAILED


class AuthenticationError(DomainError):
    """Missing, invalid or expired admin credential."""

    code = ErrorCode.AUTHENTICATION_FAILED
