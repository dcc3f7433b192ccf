"""Application exception hierarchy.

Every error raised by services derives from ``AppError`` so route handlers
can translate them into HTTP responses in one place.
"""

from typing import Optional


class AppError(Exception):
    """Base exception for application errors."""

    code = "APP_ERROR"

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class APIClientError(AppError):
    """Raised when an external API call fails."""

    code = "SOURCE_ERROR"


class APITimeoutError(APIClientError):
    """Raised when an external API call times out."""

    code = "SOURCE_TIMEOUT"


class RateLimitError(APIClientError):
    """Raised when the source API keeps answering 429 after all retries."""

    code = "SOURCE_RATE_LIMITED"


class DatabaseError(AppError):
    """Raised when a database operation fails."""

    code = "DATABASE_ERROR"


class ValidationError(AppError):
    """Raised when input validation fails."""

    code = "VALIDATION_ERROR"


class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""

    code = "SOURCE_NOT_CONFIGURED"


class NotFoundError(AppError):
    """Raised when a requested resource does not exist."""

    code = "NOT_FOUND"


class ConflictError(AppError):
    """Raised when a write would violate a uniqueness or safety rule."""

    code = "CONFLICT"


class AuthorizationError(AppError):
    """Raised when the caller may not perform the operation.

    ``code`` is overridable per instance so account-state failures
    (``USER_INACTIVE``, ``USER_DELETED``) reach the client unchanged.
    """

    code = "FORBIDDEN"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: int = 403,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(message, original_error)
        if code:
            self.code = code
        self.status_code = status_code
