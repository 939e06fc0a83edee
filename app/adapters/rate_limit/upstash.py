"""Shared-store rate limiter backed by the Upstash Redis REST API.

The counter lives in Redis, so every instance of the API enforces the same
limit. Atomicity comes from Redis ``INCR``; the first hit of a key arms its
expiry with ``EXPIRE``.

Failure policy: availability over strict enforcement. Any failure talking to
the store (transport error, non-2xx answer, malformed payload, closed client)
is logged and the request is allowed. ``limit`` never raises.
"""

from __future__ import annotations

import hashlib
import logging
from urllib.parse import quote

import httpx

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult
from app.core.errors import RateLimitBackendError

logger = logging.getLogger(__name__)


class UpstashRateLimiter(AbstractRateLimiter):
    """Fixed-window counter stored in Upstash Redis.

    Unlike the in-memory backend, denials carry no reset time: the store is
    not asked for the key's TTL.
    """

    backend_name = "upstash"
    KEY_PREFIX = "rate_limit"

    def __init__(
        self,
        *,
        url: str,
        token: str,
        max_requests: int,
        window_seconds: int,
        timeout_seconds: float = 2.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the Upstash limiter.

        Args:
            url: Upstash REST endpoint.
            token: Bearer token for the REST API.
            max_requests: Maximum number of requests allowed per window.
            window_seconds: TTL armed on a fresh key.
            timeout_seconds: Timeout applied to each store round trip.
            transport: Optional httpx transport (tests inject a MockTransport).

        Raises:
            ValueError: If limits are invalid or the endpoint is missing.
        """
        if not url or not token:
            raise ValueError("url and token are required")
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")

        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._client = httpx.AsyncClient(
            base_url=url.rstrip("/"),
            headers={"Authorization": f"Bearer {token}"},
            timeout=timeout_seconds,
            transport=transport,
        )

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @classmethod
    def build_key(cls, identifier: str) -> str:
        """Namespace an identifier into a Redis key."""
        return f"{cls.KEY_PREFIX}:{identifier}"

    @staticmethod
    def _path_segment(key: str) -> str:
        return quote(key, safe=":", errors="surrogatepass")

    async def _incr(self, key: str) -> int:
        response = await self._client.get(f"/incr/{self._path_segment(key)}")
        response.raise_for_status()

        try:
            payload = response.json()
        except ValueError as exc:
            raise RateLimitBackendError(
                code="rate_limit_store_invalid_payload",
                message="Rate limit store returned a non-JSON body",
            ) from exc

        count = payload.get("result") if isinstance(payload, dict) else None
        if not isinstance(count, int) or isinstance(count, bool):
            raise RateLimitBackendError(
                code="rate_limit_store_invalid_payload",
                message="Rate limit store returned no integer result",
                details={"context": {"payload_type": type(payload).__name__}},
            )
        return count

    async def _arm_expiry(self, key: str, key_hash: str) -> None:
        try:
            response = await self._client.get(
                f"/expire/{self._path_segment(key)}/{self._window_seconds}"
            )
            response.raise_for_status()
        except Exception as exc:
            # The key may never expire; accepted degraded mode.
            logger.warning(
                "rate_limit.expire_failed",
                extra={
                    "key_hash": key_hash,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )

    async def limit(self, identifier: str) -> RateLimitResult:
        """Increment the shared counter for ``identifier`` and decide admission.

        Args:
            identifier: Client key. Any string is accepted.

        Returns:
            RateLimitResult. On store failure: allowed with the full budget.
        """
        key = self.build_key(identifier)
        key_hash = hashlib.sha256(key.encode("utf-8", "surrogatepass")).hexdigest()[:16]

        try:
            count = await self._incr(key)
        except Exception as exc:
            logger.error(
                "rate_limit.backend_unavailable",
                extra={
                    "backend": self.backend_name,
                    "key_hash": key_hash,
                    "error_type": type(exc).__name__,
                    "error_msg": str(exc),
                },
            )
            return RateLimitResult(allowed=True, remaining=self._max_requests)

        if count == 1:
            await self._arm_expiry(key, key_hash)

        if count > self._max_requests:
            return RateLimitResult(allowed=False, remaining=0)

        return RateLimitResult(allowed=True, remaining=self._max_requests - count)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()
