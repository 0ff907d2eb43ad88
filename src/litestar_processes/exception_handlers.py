"""HTTP mapping of engine errors for Litestar applications."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from litestar import Response
from litestar.status_codes import (
    HTTP_400_BAD_REQUEST,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from litestar_processes.exceptions import (
    DependencyUnavailableError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ProcessError,
    ValidationFailedError,
)

if TYPE_CHECKING:  # pragma: no cover
    from litestar import Request

__all__ = ["process_error_handler", "status_code_for"]

_STATUS_CODES: list[tuple[type[ProcessError], int, str]] = [
    (ValidationFailedError, HTTP_400_BAD_REQUEST, "validation_failed"),
    (NotFoundError, HTTP_404_NOT_FOUND, "not_found"),
    (InvalidStateError, HTTP_409_CONFLICT, "invalid_state"),
    (ForbiddenError, HTTP_403_FORBIDDEN, "forbidden"),
    (DependencyUnavailableError, HTTP_503_SERVICE_UNAVAILABLE, "dependency_unavailable"),
]


def status_code_for(exc: ProcessError) -> tuple[int, str]:
    """Return the HTTP status code and error code for an engine error."""
    for exc_type, status_code, error in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return status_code, error
    return HTTP_500_INTERNAL_SERVER_ERROR, "process_error"


def process_error_handler(
    _request: Request,
    exc: ProcessError,
) -> Response:
    """Exception handler for ProcessError and its subclasses.

    Args:
        _request: The Litestar request object.
        exc: The engine error.

    Returns:
        JSON response with the error code, message and, for validation
        failures, the individual findings.
    """
    status_code, error = status_code_for(exc)
    content: dict[str, Any] = {"error": error, "message": str(exc)}

    if isinstance(exc, ValidationFailedError):
        content["errors"] = exc.errors
        content["warnings"] = exc.warnings
    elif isinstance(exc, DependencyUnavailableError):
        content["retryable"] = exc.retryable

    return Response(content=content, status_code=status_code, media_type="application/json")
