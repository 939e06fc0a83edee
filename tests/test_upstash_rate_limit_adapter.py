"""Unit tests for the Upstash-backed rate limiter.

The REST API is replaced by an httpx.MockTransport holding a tiny counter
store, so the tests exercise real request building and response parsing.
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from app.adapters.rate_limit.upstash import UpstashRateLimiter


class FakeUpstash:
    """In-process stand-in for the Upstash REST endpoints used by the limiter."""

    def __init__(self, *, fail_expire: bool = False) -> None:
        self.counters: dict[str, int] = {}
        self.expirations: dict[str, int] = {}
        self.requests: list[httpx.Request] = []
        self.fail_expire = fail_expire

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        parts = request.url.path.strip("/").split("/")
        command, key = parts[0], parts[1]

        if command == "incr":
            self.counters[key] = self.counters.get(key, 0) + 1
            return httpx.Response(200, json={"result": self.counters[key]})

        if command == "expire":
            if self.fail_expire:
                return httpx.Response(500, json={"error": "boom"})
            self.expirations[key] = int(parts[2])
            return httpx.Response(200, json={"result": 1})

        return httpx.Response(404)


def _limiter(handler, max_requests: int = 3, window_seconds: int = 60) -> UpstashRateLimiter:
    return UpstashRateLimiter(
        url="https://example.upstash.io/",
        token="secret-token",
        max_requests=max_requests,
        window_seconds=window_seconds,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_counts_down_then_denies_without_reset_time() -> None:
    store = FakeUpstash()
    limiter = _limiter(store, max_requests=2)

    first = await limiter.limit("A")
    second = await limiter.limit("A")
    third = await limiter.limit("A")
    await limiter.close()

    assert (first.allowed, first.remaining) == (True, 1)
    assert (second.allowed, second.remaining) == (True, 0)
    assert (third.allowed, third.remaining) == (False, 0)
    assert third.reset_time is None


@pytest.mark.asyncio
async def test_requests_are_namespaced_and_authenticated() -> None:
    store = FakeUpstash()
    limiter = _limiter(store)

    await limiter.limit("203.0.113.7")
    await limiter.close()

    incr = store.requests[0]
    assert incr.method == "GET"
    assert incr.url.host == "example.upstash.io"
    assert incr.url.path == "/incr/rate_limit:203.0.113.7"
    assert incr.headers["Authorization"] == "Bearer secret-token"


@pytest.mark.asyncio
async def test_expiry_armed_only_on_first_hit() -> None:
    store = FakeUpstash()
    limiter = _limiter(store, window_seconds=45)

    await limiter.limit("k")
    await limiter.limit("k")
    await limiter.limit("k")
    await limiter.close()

    expire_calls = [r for r in store.requests if r.url.path.startswith("/expire/")]
    assert len(expire_calls) == 1
    assert store.expirations == {"rate_limit:k": 45}


@pytest.mark.asyncio
async def test_expiry_failure_is_tolerated() -> None:
    store = FakeUpstash(fail_expire=True)
    limiter = _limiter(store)

    result = await limiter.limit("k")
    await limiter.close()

    assert result.allowed is True
    assert result.remaining == 2


@pytest.mark.asyncio
async def test_transport_failure_fails_open(caplog: pytest.LogCaptureFixture) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    limiter = _limiter(handler, max_requests=7)

    with caplog.at_level("ERROR"):
        result = await limiter.limit("k")
    await limiter.close()

    assert result.allowed is True
    assert result.remaining == 7
    assert any(record.message == "rate_limit.backend_unavailable" for record in caplog.records)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(500, text="internal error"),
        httpx.Response(401, json={"error": "unauthorized"}),
        httpx.Response(200, text="not json"),
        httpx.Response(200, json={"error": "WRONGTYPE"}),
        httpx.Response(200, json=["unexpected"]),
    ],
)
async def test_bad_store_answers_fail_open(response: httpx.Response) -> None:
    limiter = _limiter(lambda request: response, max_requests=4)

    result = await limiter.limit("k")
    await limiter.close()

    assert result.allowed is True
    assert result.remaining == 4


@pytest.mark.asyncio
async def test_timeout_fails_open() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    limiter = _limiter(handler, max_requests=2)

    result = await limiter.limit("k")
    await limiter.close()

    assert (result.allowed, result.remaining) == (True, 2)


@pytest.mark.asyncio
async def test_concurrent_calls_admit_exactly_the_limit() -> None:
    store = FakeUpstash()
    limiter = _limiter(store, max_requests=5)

    results = await asyncio.gather(*(limiter.limit("burst") for _ in range(10)))
    await limiter.close()

    allowed = sorted(result.remaining for result in results if result.allowed)
    assert allowed == [0, 1, 2, 3, 4]
    assert sum(1 for result in results if not result.allowed) == 5


@pytest.mark.parametrize(
    "kwargs",
    [
        {"url": "", "token": "t", "max_requests": 1, "window_seconds": 60},
        {"url": "https://x", "token": "", "max_requests": 1, "window_seconds": 60},
        {"url": "https://x", "token": "t", "max_requests": 0, "window_seconds": 60},
        {"url": "https://x", "token": "t", "max_requests": 1, "window_seconds": 0},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        UpstashRateLimiter(**kwargs)


@pytest.mark.asyncio
async def test_unexpected_store_error_fails_open() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise RuntimeError("store exploded")

    limiter = _limiter(handler, max_requests=3)

    result = await limiter.limit("a")
    await limiter.close()

    assert (result.allowed, result.remaining) == (True, 3)


@pytest.mark.asyncio
async def test_unexpected_expire_error_is_tolerated() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.startswith("/expire/"):
            raise RuntimeError("expire exploded")
        return httpx.Response(200, json={"result": 1})

    limiter = _limiter(handler, max_requests=3)

    result = await limiter.limit("a")
    await limiter.close()

    assert (result.allowed, result.remaining) == (True, 2)


@pytest.mark.asyncio
async def test_closed_client_fails_open() -> None:
    limiter = _limiter(FakeUpstash(), max_requests=3)
    await limiter.close()

    result = await limiter.limit("a")

    assert (result.allowed, result.remaining) == (True, 3)


@pytest.mark.asyncio
@pytest.mark.parametrize("identifier", ["", " ", "../../etc", "a/b?c#d", "\ud800", "x" * 10_000])
async def test_unusual_identifiers_never_raise(identifier: str) -> None:
    counters: dict[bytes, int] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.raw_path.startswith(b"/incr/"):
            counters[request.url.raw_path] = counters.get(request.url.raw_path, 0) + 1
            return httpx.Response(200, json={"result": counters[request.url.raw_path]})
        return httpx.Response(200, json={"result": 1})

    limiter = _limiter(handler, max_requests=1)

    first = await limiter.limit(identifier)
    second = await limiter.limit(identifier)
    await limiter.close()

    assert first.allowed is True
    assert second.allowed is False
