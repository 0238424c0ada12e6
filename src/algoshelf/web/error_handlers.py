import logging

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from algoshelf.errors import (
    AuthenticationError,
    InvalidCredentialError,
    InvalidSignatureError,
    LockedOutError,
    MalformedTokenError,
    NotFoundError,
    PayloadTooLargeError,
    RangeNotSatisfiableError,
    StorageFailureError,
    TokenExpiredError,
    UnsupportedMediaTypeError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# Most specific classes first: isinstance() picks the first match
USER_ERROR_STATUSES: list[tuple[type[Exception], int, str]] = [
    (InvalidCredentialError, 401, "invalid_credential"),
    (LockedOutError, 429, "locked_out"),
    (TokenExpiredError, 401, "token_expired"),
    (MalformedTokenError, 401, "malformed_token"),
    (InvalidSignatureError, 401, "invalid_signature"),
    (AuthenticationError, 401, "authentication_error"),
    (NotFoundError, 404, "not_found"),
    (ValidationError, 400, "validation_error"),
    (PayloadTooLargeError, 413, "payload_too_large"),
    (UnsupportedMediaTypeError, 415, "unsupported_media_type"),
    (RangeNotSatisfiableError, 416, "range_not_satisfiable"),
]


def create_json_error_response(
    status_code: int, message: str, error_type: str | None = None, headers: dict[str, str] | None = None
) -> JSONResponse:
    """Create JSON error response with optional type for machine parsing."""
    content = {"message": message}
    if error_type:
        content["type"] = error_type
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def user_error_handler(_: Request, exc: Exception) -> Response:
    """Handle all UserError subclasses with appropriate status codes."""
    status_code, error_type = 400, "bad_request"
    for error_class, status, kind in USER_ERROR_STATUSES:
        if isinstance(exc, error_class):
            status_code, error_type = status, kind
            break

    headers: dict[str, str] = {}
    if isinstance(exc, AuthenticationError) and status_code == 401:
        headers["WWW-Authenticate"] = "Bearer"
    if isinstance(exc, LockedOutError):
        headers["Retry-After"] = str(exc.retry_after)
    if isinstance(exc, RangeNotSatisfiableError):
        headers["Content-Range"] = f"bytes */{exc.size}"

    return create_json_error_response(status_code=status_code, message=str(exc), error_type=error_type, headers=headers)


async def storage_failure_handler(_: Request, exc: Exception) -> Response:
    """Handle storage failures (507). Details were logged where they happened; none reach the client."""
    logger.error("Storage failure: %s", exc)
    return create_json_error_response(
        status_code=507, message="The file storage is currently unavailable.", error_type="storage_failure"
    )


async def general_exception_handler(_: Request, exc: Exception) -> Response:
    """Handle unexpected errors (500)."""
    logger.exception("Unexpected error: %s", exc)
    return create_json_error_response(
        status_code=500, message="An unexpected error occurred.", error_type="internal_server_error"
    )
