"""Factory for the process-wide rate limiter."""

from __future__ import annotations

import logging

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.adapters.rate_limit.upstash import UpstashRateLimiter
from app.core.config import RateLimitSettings, RemoteStoreSettings

logger = logging.getLogger(__name__)


def create_rate_limiter(
    rate_limit: RateLimitSettings,
    remote_store: RemoteStoreSettings,
) -> AbstractRateLimiter:
    """Pick the limiter backend from configuration.

    Upstash is used only when both its URL and token are set. Otherwise the
    in-memory limiter is returned; that is the normal mode for single-instance
    and development deployments, not an error.

    Args:
        rate_limit: Limits shared by both backends.
        remote_store: Upstash REST connection settings.

    Returns:
        AbstractRateLimiter: Configured limiter instance.
    """
    if remote_store.is_configured:
        limiter: AbstractRateLimiter = UpstashRateLimiter(
            url=remote_store.url or "",
            token=remote_store.token or "",
            max_requests=rate_limit.max_requests,
            window_seconds=rate_limit.window_seconds,
            timeout_seconds=remote_store.timeout_seconds,
        )
    else:
        limiter = InMemoryFixedWindowRateLimiter(
            max_requests=rate_limit.max_requests,
            window_seconds=rate_limit.window_seconds,
            sweep_interval_seconds=rate_limit.sweep_interval_seconds,
        )

    logger.info(
        "rate_limit.backend_selected",
        extra={
            "backend": limiter.backend_name,
            "max_requests": rate_limit.max_requests,
            "window_s": rate_limit.window_seconds,
        },
    )
    return limiter
