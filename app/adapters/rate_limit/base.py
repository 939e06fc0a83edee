"""Rate limiter interfaces.

Routes depend on this abstraction (not a concrete backend) so the in-memory
counter and the shared-store counter stay interchangeable, and tests can
substitute a deterministic fake.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class RateLimitResult:
    """Result of a single admission check.

    Attributes:
        allowed: Whether the request is allowed to proceed.
        remaining: Requests left in the current window (0 when blocked).
        reset_time: UNIX epoch seconds when the window resets. Only reported
            by backends that know it (the in-memory limiter, on denial).
    """

    allowed: bool
    remaining: int
    reset_time: float | None = None


class AbstractRateLimiter(ABC):
    """Interface for rate limiters.

    Implementations must never raise from ``limit``: every failure mode
    resolves to a well-formed RateLimitResult.
    """

    backend_name: str = "abstract"

    @abstractmethod
    async def limit(self, identifier: str) -> RateLimitResult:
        """Count one request for ``identifier`` and decide admission.

        Args:
            identifier: Client key (e.g., IP address). Any string is valid,
                including the empty string.

        Returns:
            RateLimitResult describing whether the request is allowed.
        """
        raise NotImplementedError

    async def start(self) -> None:
        """Start background work owned by the limiter (no-op by default)."""

    async def close(self) -> None:
        """Release resources owned by the limiter (no-op by default)."""
