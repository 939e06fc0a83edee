"""Rate limiting dependency for FastAPI routes.

Routes never import a limiter directly. The app factory selects one backend
at startup and stores it on ``app.state``; this dependency reads it from
there, so tests can inject a deterministic fake.

Admission happens before any authenticated or mutating work: list the
dependency first on every route.
"""

from __future__ import annotations

import hashlib
import logging

from fastapi import Depends, Request

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.core.errors import ErrorDetails, RateLimitExceededAppError

logger = logging.getLogger(__name__)

LOOPBACK_PLACEHOLDER = "127.0.0.1"


def get_rate_limiter(request: Request) -> AbstractRateLimiter:
    """Return the limiter the app factory installed for this process."""
    return request.app.state.rate_limiter


def get_client_identifier(request: Request) -> str:
    """Derive the rate limit key for the current request.

    Order: first X-Forwarded-For entry, X-Real-IP, the direct connection
    address, then a loopback placeholder.
    """
    forwarded_for = request.headers.get("x-forwarded-for")
    if forwarded_for:
        first_hop = forwarded_for.split(",")[0].strip()
        if first_hop:
            return first_hop

    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    if request.client and request.client.host:
        return request.client.host

    return LOOPBACK_PLACEHOLDER


def _hash_identifier(identifier: str) -> str:
    """Hash the identifier for logging without exposing client addresses."""
    return hashlib.sha256(identifier.encode("utf-8", "surrogatepass")).hexdigest()[:16]


async def enforce_rate_limit(
    request: Request,
    limiter: AbstractRateLimiter = Depends(get_rate_limiter),
) -> RateLimitResult | None:
    """FastAPI dependency enforcing the per-client request limit.

    Args:
        request: FastAPI request.
        limiter: Process-wide limiter (injected).

    Returns:
        The admission result, or None when rate limiting is disabled.

    Raises:
        RateLimitExceededAppError: The client exhausted its window (HTTP 429).
    """
    rate_limit_settings = request.app.state.settings.rate_limit
    if not rate_limit_settings.enabled:
        return None

    identifier = get_client_identifier(request)
    result = await limiter.limit(identifier)
    log_fields = {
        "backend": limiter.backend_name,
        "key_hash": _hash_identifier(identifier),
        "remaining": result.remaining,
        "limit": rate_limit_settings.max_requests,
        "window_s": rate_limit_settings.window_seconds,
    }

    if result.allowed:
        logger.info("rate_limit.allowed", extra=log_fields)
        return result

    logger.warning("rate_limit.exceeded", extra={**log_fields, "reset_time": result.reset_time})

    details: ErrorDetails = {"limit": rate_limit_settings.max_requests, "remaining": result.remaining}
    if result.reset_time is not None:
        details["reset_time"] = result.reset_time

    raise RateLimitExceededAppError(
        code="rate_limit_exceeded",
        message="Too many requests. Please try again later.",
        details=details,
    )
