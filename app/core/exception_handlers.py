"""Global exception handlers producing enveloped, CORS-decorated errors.

Design:
- AppError subclasses map to a fixed HTTP status (401/403/404/409/429)
- FastAPI request validation errors become 400 envelopes
- Starlette HTTP errors (unknown route, wrong method) keep their status
- Unexpected Exception → generic 500 (safety net, no details leaked)
- Every response goes through the CORS boundary
"""

from __future__ import annotations

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.cors import apply_cors
from app.core.errors import (
    AppError,
    AuthenticationAppError,
    ConflictAppError,
    NotFoundAppError,
    PermissionAppError,
    RateLimitExceededAppError,
)
from app.core.logging import get_request_id
from app.core.responses import api_error, api_internal_error

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[AppError], int], ...] = (
    (AuthenticationAppError, status.HTTP_401_UNAUTHORIZED),
    (PermissionAppError, status.HTTP_403_FORBIDDEN),
    (NotFoundAppError, status.HTTP_404_NOT_FOUND),
    (ConflictAppError, status.HTTP_409_CONFLICT),
    (RateLimitExceededAppError, status.HTTP_429_TOO_MANY_REQUESTS),
)


def status_for_error(exc: AppError) -> int:
    """Resolve the HTTP status of a domain error (500 when unmapped)."""
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def _rate_limit_headers(request: Request, exc: RateLimitExceededAppError) -> dict[str, str]:
    if not request.app.state.settings.rate_limit.include_headers:
        return {}

    details = exc.details or {}
    headers = {
        "X-RateLimit-Limit": str(details.get("limit", "")),
        "X-RateLimit-Remaining": str(details.get("remaining", 0)),
    }
    reset_time = details.get("reset_time")
    if reset_time is not None:
        headers["X-RateLimit-Reset"] = str(int(reset_time))
    return headers


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with the standard envelope.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        Enveloped error response with CORS headers.
    """
    status_code = status_for_error(exc)
    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "details": exc.details,
            "request_path": request.url.path,
            "request_id": get_request_id(),
        },
    )

    headers = None
    if isinstance(exc, RateLimitExceededAppError):
        headers = _rate_limit_headers(request, exc)

    response = api_error(exc.message, status_code, exc.code, headers)
    return apply_cors(request, response)


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Turn body/query validation failures into a 400 envelope.

    Only the first error is reported, mirroring what clients display.
    """
    errors = exc.errors()
    message = "Invalid request"
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))

    logger.info(
        "request_validation_failed",
        extra={
            "request_path": request.url.path,
            "error_count": len(errors),
            "request_id": get_request_id(),
        },
    )
    return apply_cors(request, api_error(message, status.HTTP_400_BAD_REQUEST, "invalid_request"))


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Envelope framework-level HTTP errors (404 route, 405 method, ...)."""
    response = api_error(str(exc.detail), exc.status_code, headers=exc.headers)
    return apply_cors(request, response)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the failure server-side and returns a generic message so no stack
    trace or internal detail reaches the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
        },
    )
    response = api_internal_error("An error occurred while processing your request")
    return apply_cors(request, response)


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance.
    """
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(RequestValidationError)(request_validation_handler)
    app.exception_handler(StarletteHTTPException)(http_exception_handler)
    app.exception_handler(Exception)(general_exception_handler)
