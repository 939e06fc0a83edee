"""CORS boundary applied to every API response.

The policy echoes an allowed request origin back verbatim (never ``*``) and
always sets the method, header and max-age headers. A disallowed or missing
origin simply gets no ``Access-Control-Allow-Origin`` header; the browser
enforces that absence.

CORS only shapes browser behavior. Authorization never relies on it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from fastapi import Request, Response

from app.core.config import Settings

ALLOWED_METHODS: tuple[str, ...] = ("GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS")

ALLOWED_HEADERS: tuple[str, ...] = (
    "Content-Type",
    "Authorization",
    "X-Requested-With",
    "Accept",
    "Origin",
    "X-API-Key",
    "X-Request-ID",
)


@dataclass(frozen=True)
class CorsPolicy:
    """Immutable CORS configuration resolved once at startup."""

    allowed_origins: frozenset[str]
    allowed_methods: tuple[str, ...] = ALLOWED_METHODS
    allowed_headers: tuple[str, ...] = ALLOWED_HEADERS
    max_age_seconds: int = 86400

    @classmethod
    def from_origins(cls, origins: Iterable[str | None], **kwargs) -> "CorsPolicy":
        """Build a policy, dropping empty or missing origin entries."""
        cleaned = {origin.strip() for origin in origins if origin and origin.strip()}
        return cls(allowed_origins=frozenset(cleaned), **kwargs)

    def is_allowed_origin(self, origin: str | None) -> bool:
        return bool(origin) and origin in self.allowed_origins

    def with_cors_headers(
        self,
        request_origin: str | None,
        response: Response | None = None,
    ) -> Response:
        """Return a copy of ``response`` carrying CORS headers.

        Args:
            request_origin: Value of the request's Origin header, if any.
            response: Response to decorate. None synthesizes an empty 204.

        Returns:
            A new Response; the given one is left untouched.
        """
        if response is None:
            cors_response = Response(status_code=204)
        else:
            cors_response = Response(
                content=getattr(response, "body", b""),
                status_code=response.status_code,
                background=response.background,
            )
            cors_response.raw_headers = list(response.raw_headers)

        headers = cors_response.headers
        if request_origin and self.is_allowed_origin(request_origin):
            headers["Access-Control-Allow-Origin"] = request_origin
            headers.setdefault("Vary", "Origin")

        headers["Access-Control-Allow-Methods"] = ", ".join(self.allowed_methods)
        headers["Access-Control-Allow-Headers"] = ", ".join(self.allowed_headers)
        headers["Access-Control-Max-Age"] = str(self.max_age_seconds)
        return cors_response

    def preflight(self, request_origin: str | None) -> Response:
        """Answer an OPTIONS preflight: 204, empty body, CORS headers."""
        return self.with_cors_headers(request_origin, Response(status_code=204))


def parse_origins(origins: str | None) -> list[str]:
    """Split a comma-separated origin list, trimming blanks."""
    if not origins:
        return []
    return [origin.strip() for origin in origins.split(",") if origin.strip()]


def build_cors_policy(settings: Settings) -> CorsPolicy:
    """Assemble the allow-list: dev origins plus the public app URL."""
    origins = [*parse_origins(settings.cors.dev_origins), settings.app.public_url]
    return CorsPolicy.from_origins(origins, max_age_seconds=settings.cors.max_age_seconds)


def get_cors_policy(request: Request) -> CorsPolicy:
    return request.app.state.cors_policy


def apply_cors(request: Request, response: Response | None = None) -> Response:
    """Run ``response`` through the app's CORS policy for this request."""
    return get_cors_policy(request).with_cors_headers(request.headers.get("origin"), response)


def preflight(request: Request) -> Response:
    return get_cors_policy(request).preflight(request.headers.get("origin"))
