from abc import ABC


class UserError(ABC, Exception):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information.
    """


class NotFoundError(UserError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "Document not found") -> None:
        super().__init__(message)


class ValidationError(UserError):
    """Raised when user input fails validation."""


# === Authentication ===


class AuthenticationError(UserError):
    """Raised when authentication fails or no credentials were presented."""

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class InvalidCredentialError(AuthenticationError):
    """Raised when the supplied admin secret does not match."""

    def __init__(self, message: str = "Invalid credentials") -> None:
        super().__init__(message)


class LockedOutError(AuthenticationError):
    """Raised when the client address is temporarily locked out after repeated failures."""

    def __init__(self, retry_after: int) -> None:
        super().__init__(f"Too many failed login attempts, try again in {retry_after} seconds")
        self.retry_after = retry_after


class TokenExpiredError(AuthenticationError):
    """Raised when a session token is past its expiry."""

    def __init__(self, message: str = "Token has expired") -> None:
        super().__init__(message)


class MalformedTokenError(AuthenticationError):
    """Raised when a token cannot be parsed or carries an unexpected payload."""

    def __init__(self, message: str = "Malformed token") -> None:
        super().__init__(message)


class InvalidSignatureError(AuthenticationError):
    """Raised when a token signature does not verify against any known key."""

    def __init__(self, message: str = "Invalid token signature") -> None:
        super().__init__(message)


# === Files ===


class PayloadTooLargeError(UserError):
    """Raised when an upload exceeds the configured size ceiling."""

    def __init__(self, limit: int) -> None:
        super().__init__(f"Payload exceeds the maximum upload size of {limit} bytes")
        self.limit = limit


class UnsupportedMediaTypeError(UserError):
    """Raised when an upload's media type is not in the allow-list."""

    def __init__(self, mime_type: str) -> None:
        super().__init__(f"Unsupported media type: {mime_type}")
        self.mime_type = mime_type


class RangeNotSatisfiableError(UserError):
    """Raised when a requested byte range lies outside the file."""

    def __init__(self, size: int) -> None:
        super().__init__("Requested range not satisfiable")
        self.size = size


class StorageFailureError(Exception):
    """Raised when the file storage layer fails (disk full, permissions, missing bytes).

    Not a UserError: the message is never shown to clients, the web layer
    replies with a generic storage failure response.
    """
