"""Translate application errors into HTTP responses."""

from fastapi import HTTPException, status

from duri_tracking.core.exceptions import (
    AppError,
    AuthorizationError,
    ConfigurationError,
    ConflictError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from duri_tracking.schemas.common import ErrorDetail

STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (ConfigurationError, status.HTTP_401_UNAUTHORIZED),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (ConflictError, status.HTTP_409_CONFLICT),
    (DatabaseError, status.HTTP_500_INTERNAL_SERVER_ERROR),
)


def http_error(status_code: int, code: str, message: str, detail: str = "") -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail=ErrorDetail(error=code, message=message, detail=detail).model_dump(),
    )


def to_http_exception(error: AppError) -> HTTPException:
    """Map an ``AppError`` onto its HTTP status with an ``ErrorDetail`` body.

    Upstream failures not listed above become 502.
    """
    if isinstance(error, AuthorizationError):
        return http_error(error.status_code, error.code, error.message)

    status_code = status.HTTP_502_BAD_GATEWAY
    for error_type, mapped in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            status_code = mapped
            break

    cause = str(error.original_error) if error.original_error else ""
    return http_error(status_code, error.code, error.message, cause)
