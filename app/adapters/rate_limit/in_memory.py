"""In-memory fixed-window rate limiter.

Notes:
- Per-process only: running multiple workers or instances multiplies the
  effective limit. Configure the Upstash backend for a shared limit.
- Fixed window, not sliding: a burst straddling a window boundary can admit
  up to twice the limit in quick succession.
- ``limit`` has no await between reading and writing an entry, so updates on
  one identifier never interleave inside the event loop.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass
from typing import Callable

from app.adapters.rate_limit.base import AbstractRateLimiter, RateLimitResult

logger = logging.getLogger(__name__)


@dataclass
class RateLimitEntry:
    count: int
    reset_at: float


class InMemoryFixedWindowRateLimiter(AbstractRateLimiter):
    """Rate limiter using a fixed time window per identifier.

    The window for an identifier opens on its first request and lasts
    ``window_seconds``; once it elapses the entry is replaced, not carried
    over. A background task periodically evicts elapsed entries so memory
    stays bounded under high identifier cardinality.
    """

    backend_name = "memory"

    def __init__(
        self,
        *,
        max_requests: int,
        window_seconds: float,
        sweep_interval_seconds: float = 300.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            max_requests: Maximum number of requests allowed per window.
            window_seconds: Size of the fixed window in seconds.
            sweep_interval_seconds: Delay between two eviction passes.
            clock: Time source function returning UNIX time in seconds.

        Raises:
            ValueError: If any limit or interval is invalid.
        """
        if max_requests < 1:
            raise ValueError("max_requests must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")
        if sweep_interval_seconds <= 0:
            raise ValueError("sweep_interval_seconds must be > 0")

        self._max_requests = max_requests
        self._window_seconds = window_seconds
        self._sweep_interval = sweep_interval_seconds
        self._clock = clock
        self._entries: dict[str, RateLimitEntry] = {}
        self._sweep_task: asyncio.Task[None] | None = None

    @property
    def max_requests(self) -> int:
        return self._max_requests

    def __len__(self) -> int:
        return len(self._entries)

    async def limit(self, identifier: str) -> RateLimitResult:
        """Count one request for ``identifier`` in its current window.

        Args:
            identifier: Client key. Empty or unusual strings get their own
                counter like any other key.

        Returns:
            RateLimitResult; denials carry the window's reset time.
        """
        now = self._clock()
        entry = self._entries.get(identifier)

        if entry is None or entry.reset_at <= now:
            self._entries[identifier] = RateLimitEntry(
                count=1,
                reset_at=now + self._window_seconds,
            )
            return RateLimitResult(allowed=True, remaining=self._max_requests - 1)

        if entry.count >= self._max_requests:
            return RateLimitResult(allowed=False, remaining=0, reset_time=entry.reset_at)

        entry.count += 1
        return RateLimitResult(allowed=True, remaining=self._max_requests - entry.count)

    def sweep(self) -> int:
        """Evict entries whose window has elapsed.

        Keys are snapshotted first and each entry is re-read before removal,
        so requests landing during the pass are never dropped.

        Returns:
            Number of evicted entries.
        """
        now = self._clock()
        evicted = 0
        for identifier in list(self._entries):
            entry = self._entries.get(identifier)
            if entry is not None and entry.reset_at <= now:
                del self._entries[identifier]
                evicted += 1

        if evicted:
            logger.debug(
                "rate_limit.sweep",
                extra={"evicted": evicted, "entries": len(self._entries)},
            )
        return evicted

    async def _sweep_forever(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            self.sweep()

    async def start(self) -> None:
        """Schedule the periodic sweep on the running event loop."""
        if self._sweep_task is not None and not self._sweep_task.done():
            return
        self._sweep_task = asyncio.create_task(self._sweep_forever())
        logger.info(
            "rate_limit.sweep_started",
            extra={"interval_s": self._sweep_interval},
        )

    async def close(self) -> None:
        """Cancel the periodic sweep."""
        if self._sweep_task is None:
            return
        self._sweep_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweep_task
        self._sweep_task = None
