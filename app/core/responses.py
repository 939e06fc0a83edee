"""Standard response envelope for every API route.

Success bodies look like ``{"success": true, "data": ...}`` and error bodies
like ``{"success": false, "error": "...", "code": "..."}``. ``data`` and
``error`` never appear together, and ``code`` only accompanies ``error``.
"""

from __future__ import annotations

from typing import Any, Mapping

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def build_success_envelope(data: Any) -> dict[str, Any]:
    return {"success": True, "data": jsonable_encoder(data)}


def build_error_envelope(message: str, code: str | None = None) -> dict[str, Any]:
    envelope: dict[str, Any] = {"success": False, "error": message}
    if code:
        envelope["code"] = code
    return envelope


def api_success(data: Any, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    """Success response wrapping ``data``."""
    return JSONResponse(status_code=status_code, content=build_success_envelope(data))


def api_error(
    message: str,
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    code: str | None = None,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    """Error response with the standard envelope."""
    return JSONResponse(
        status_code=status_code,
        content=build_error_envelope(message, code),
        headers=dict(headers) if headers else None,
    )


def api_bad_request(message: str = "Bad request", code: str | None = None) -> JSONResponse:
    return api_error(message, status.HTTP_400_BAD_REQUEST, code)


def api_unauthorized(message: str = "Unauthorized", code: str | None = None) -> JSONResponse:
    return api_error(message, status.HTTP_401_UNAUTHORIZED, code)


def api_forbidden(message: str = "Forbidden", code: str | None = None) -> JSONResponse:
    return api_error(message, status.HTTP_403_FORBIDDEN, code)


def api_not_found(message: str = "Not found", code: str | None = None) -> JSONResponse:
    return api_error(message, status.HTTP_404_NOT_FOUND, code)


def api_conflict(message: str = "Conflict", code: str | None = None) -> JSONResponse:
    return api_error(message, status.HTTP_409_CONFLICT, code)


def api_too_many_requests(
    message: str = "Too many requests",
    code: str | None = None,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    return api_error(message, status.HTTP_429_TOO_MANY_REQUESTS, code, headers)


def api_internal_error(
    message: str = "Internal server error", code: str | None = None
) -> JSONResponse:
    return api_error(message, status.HTTP_500_INTERNAL_SERVER_ERROR, code)
