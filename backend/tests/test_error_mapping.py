import pytest

from app.errors import (
    AccessDeniedError,
    AuthError,
    RateLimitError,
    error_payload,
    public_message,
    resolve_error_code,
)


@pytest.mark.parametrize(
    "status_code, code",
    [
        (400, "VALIDATION_ERROR"),
        (401, "AUTH_ERROR"),
        (403, "PERMISSION_DENIED"),
        (404, "NOT_FOUND"),
        (409, "CONFLICT_ERROR"),
        (422, "VALIDATION_ERROR"),
        (429, "RATE_LIMITED"),
        (500, "INTERNAL_ERROR"),
        (503, "INTERNAL_ERROR"),
        (418, "UNKNOWN_ERROR"),
    ],
)
def test_resolve_error_code(status_code: int, code: str) -> None:
    assert resolve_error_code(status_code) == code


def test_public_message_hides_server_detail() -> None:
    assert public_message(429) == RateLimitError.message
    assert public_message(422) == "Validation error"
    assert public_message(502) == "Internal server error"
    assert public_message(418) == "Request failed"


def test_error_overrides_and_payload() -> None:
    error = AccessDeniedError(details={"required_permissions": ["users.edit"]})

    assert error.status_code == 403
    assert str(error) == "Insufficient permissions"
    assert error_payload(error.code, error.message, error.details) == {
        "error": {
            "code": "PERMISSION_DENIED",
            "message": "Insufficient permissions",
            "details": {"required_permissions": ["users.edit"]},
        }
    }
    assert AuthError("Not authenticated").message == "Not authenticated"
