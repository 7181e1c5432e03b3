"""Error types raised by the admin backend and their wire representation.

Every error reaches the client as ``{"error": {"code", "message", "details"}}``.
Raw HTTP errors raised by FastAPI or Starlette are mapped onto the same codes
and public messages through the tables at the bottom of this module.
"""
from typing import Any

from fastapi import status


class AppError(Exception):
    code: str = "APP_ERROR"
    message: str = "Application error"
    status_code: int = status.HTTP_400_BAD_REQUEST
    details: Any | None = None

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        status_code: int | None = None,
        details: Any | None = None,
    ):
        if message is not None:
            self.message = message
        if code is not None:
            self.code = code
        if status_code is not None:
            self.status_code = status_code
        if details is not None:
            self.details = details

        super().__init__(self.message)


class ValidationError(AppError):
    code = "VALIDATION_ERROR"
    message = "Validation error"
    status_code = status.HTTP_400_BAD_REQUEST


class AuthError(AppError):
    """No usable admin session, or rejected login credentials."""

    code = "AUTH_ERROR"
    message = "Authentication failed"
    status_code = status.HTTP_401_UNAUTHORIZED


class AccessDeniedError(AppError):
    """Signed in, but the principal lacks a required permission."""

    code = "PERMISSION_DENIED"
    message = "Insufficient permissions"
    status_code = status.HTTP_403_FORBIDDEN


class NotFoundError(AppError):
    code = "NOT_FOUND"
    message = "Resource not found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    code = "CONFLICT_ERROR"
    message = "Resource conflict"
    status_code = status.HTTP_409_CONFLICT


class RateLimitError(AppError):
    """Too many failed admin logins for one client and email."""

    code = "RATE_LIMITED"
    message = "Too many attempts, try again later"
    status_code = status.HTTP_429_TOO_MANY_REQUESTS


class InternalError(AppError):
    code = "INTERNAL_ERROR"
    message = "Internal server error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


CLIENT_ERRORS: tuple[type[AppError], ...] = (
    ValidationError,
    AuthError,
    AccessDeniedError,
    NotFoundError,
    ConflictError,
    RateLimitError,
)

ERROR_CODE_BY_STATUS: dict[int, str] = {error.status_code: error.code for error in CLIENT_ERRORS}
PUBLIC_MESSAGE_BY_STATUS: dict[int, str] = {error.status_code: error.message for error in CLIENT_ERRORS}

# Request body validation failures share the 400 code and text
ERROR_CODE_BY_STATUS[status.HTTP_422_UNPROCESSABLE_ENTITY] = ValidationError.code
PUBLIC_MESSAGE_BY_STATUS[status.HTTP_422_UNPROCESSABLE_ENTITY] = ValidationError.message


def error_payload(
    code: str,
    message: str,
    details: Any | None = None,
) -> dict[str, Any]:
    return {"error": {"code": code, "message": message, "details": details}}


def resolve_error_code(status_code: int) -> str:
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        return InternalError.code
    return ERROR_CODE_BY_STATUS.get(status_code, "UNKNOWN_ERROR")


def public_message(status_code: int) -> str:
    """Client-facing text for a raw HTTP error; internal detail stays in the logs."""
    if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        return InternalError.message
    return PUBLIC_MESSAGE_BY_STATUS.get(status_code, "Request failed")
