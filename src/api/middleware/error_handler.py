"""Global error handling for consistent error responses."""

import logging
import traceback
from typing import Any, Callable

from fastapi import HTTPException, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for API errors.

    Raise a subclass from services; the middleware turns it into an
    ``ErrorResponse`` with the matching status code.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_type: str = "api_error",
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        """Initialize API error.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code to return.
            error_type: Error category/type for client handling.
            details: Optional additional error details.
        """
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        self.details = details
        super().__init__(message)


class NotFoundError(APIError):
    """Resource not found error."""

    def __init__(self, message: str = "Resource not found", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_type="not_found",
            details=details,
        )


class ValidationError(APIError):
    """Request validation error (bad dates, empty title, duplicate invite)."""

    def __init__(self, message: str = "Validation error", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_type="validation_error",
            details=details,
        )


class StateError(APIError):
    """Illegal transition for the current state of a resource.

    Raised for invites that already left ``pending``, accepting an invite for
    an appointment that already ended, and changes by someone who does not own
    the resource.
    """

    def __init__(self, message: str = "Invalid state transition", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_type="state_error",
            details=details,
        )


class AuthorizationError(APIError):
    """Authorization failure error.

    Messages name the missing permission scope (``calendar:update``), which
    clients are expected to replace with their own wording.
    """

    def __init__(self, message: str = "Access denied", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_type="authorization_error",
            details=details,
        )


def permission_denied(scope: str) -> AuthorizationError:
    """Build the error for a missing ``resource:action`` permission."""
    return AuthorizationError(f"Missing permission: {scope}")


def create_error_response(
    error_type: str,
    message: str,
    status_code: int,
    details: list[dict[str, Any]] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    """Create a standardized JSON error response.

    Args:
        error_type: Error category for client handling.
        message: Human-readable error description.
        status_code: HTTP status code.
        details: Optional error details.
        request_id: Optional request ID for tracing.

    Returns:
        JSONResponse: Formatted error response.
    """
    error_response = ErrorResponse.from_exception(
        error_type=error_type,
        message=message,
        details=details,
        request_id=request_id,
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json", exclude_none=True),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render body/path validation failures in the standard error format."""
    errors = exc.errors()
    first = errors[0]["msg"] if errors else "Invalid request"
    return create_error_response(
        error_type="validation_error",
        message=first.removeprefix("Value error, "),
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        details=[{"loc": e.get("loc"), "msg": e.get("msg"), "type": e.get("type")} for e in errors],
        request_id=request.headers.get("X-Request-ID"),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Render HTTPExceptions raised by dependencies in the standard format."""
    response = create_error_response(
        error_type="http_error",
        message=str(exc.detail),
        status_code=exc.status_code,
        request_id=request.headers.get("X-Request-ID"),
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def error_handler_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Turn service errors into ``ErrorResponse`` bodies.

    ``APIError`` subclasses keep their status and message. Anything else is
    logged with its stack trace and answered with a generic 500.
    """
    request_id = request.headers.get("X-Request-ID")

    try:
        return await call_next(request)

    except APIError as e:
        logger.warning(
            "%s %s -> %d %s: %s",
            request.method,
            request.url.path,
            e.status_code,
            e.error_type,
            e.message,
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type=e.error_type,
            message=e.message,
            status_code=e.status_code,
            details=e.details,
            request_id=request_id,
        )

    except Exception as e:
        logger.error(
            "Unhandled exception on %s %s: %s\n%s",
            request.method,
            request.url.path,
            str(e),
            traceback.format_exc(),
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="internal_error",
            message="An unexpected error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
        )
