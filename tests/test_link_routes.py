"""End-to-end tests for the link endpoints through the full app."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.adapters.rate_limit.in_memory import InMemoryFixedWindowRateLimiter
from app.adapters.storage.in_memory import InMemoryLinkRepository
from app.core.app_factory import create_app
from app.core.config import Settings
from app.schemas.envelope import parse_envelope

KEY_A = "test-api-key-123"
KEY_B = "test-api-key-456"
ORIGIN = "http://localhost:3000"


@pytest.fixture
def client(test_settings: Settings) -> TestClient:
    limiter = InMemoryFixedWindowRateLimiter(max_requests=1_000, window_seconds=60)
    with TestClient(create_app(test_settings, rate_limiter=limiter)) as test_client:
        yield test_client


def _create(client: TestClient, key: str = KEY_A, **body) -> dict:
    body.setdefault("original_url", "https://example.com/some/long/path")
    response = client.post("/api/shorten", json=body, headers={"X-API-Key": key, "Origin": ORIGIN})
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestCreate:
    def test_create_returns_enveloped_link(self, client: TestClient) -> None:
        response = client.post(
            "/api/shorten",
            json={"original_url": "https://example.com", "custom_alias": "Docs"},
            headers={"X-API-Key": KEY_A, "Origin": ORIGIN},
        )

        assert response.status_code == 201
        envelope = parse_envelope(response.json())
        assert envelope.success is True
        assert envelope.data["short_code"] == "docs"
        assert envelope.data["short_url"] == "https://sho.rt/l/docs"
        assert envelope.data["clicks"] == 0
        assert "owner_id" not in envelope.data
        assert response.headers["Access-Control-Allow-Origin"] == ORIGIN

    def test_create_requires_api_key(self, client: TestClient) -> None:
        response = client.post("/api/shorten", json={"original_url": "https://example.com"})

        assert response.status_code == 401
        assert response.json() == {
            "success": False,
            "error": "Authentication required",
            "code": "authentication_required",
        }

    def test_create_rejects_unknown_key(self, client: TestClient) -> None:
        response = client.post(
            "/api/shorten",
            json={"original_url": "https://example.com"},
            headers={"X-API-Key": "wrong"},
        )

        assert response.status_code == 401
        assert response.json()["code"] == "invalid_api_key"

    def test_create_rejects_invalid_url(self, client: TestClient) -> None:
        response = client.post(
            "/api/shorten",
            json={"original_url": "javascript:alert(1)"},
            headers={"X-API-Key": KEY_A},
        )

        assert response.status_code == 400
        body = response.json()
        assert body["code"] == "invalid_request"
        assert "Invalid URL format" in body["error"]

    def test_duplicate_alias_conflicts(self, client: TestClient) -> None:
        _create(client, custom_alias="promo")

        response = client.post(
            "/api/shorten",
            json={"original_url": "https://other.example", "custom_alias": "PROMO"},
            headers={"X-API-Key": KEY_B},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "Custom alias already in use"


class TestResolve:
    def test_resolve_is_public_and_counts_clicks(self, client: TestClient) -> None:
        created = _create(client, custom_alias="go-here")

        response = client.get("/api/shorten/go-here")

        assert response.status_code == 200
        assert response.json() == {
            "success": True,
            "data": {"original_url": created["original_url"], "short_code": "go-here"},
        }
        managed = client.get(f"/api/shorten/manage/{created['id']}", headers={"X-API-Key": KEY_A})
        assert managed.json()["data"]["clicks"] == 1

    def test_resolve_unknown_code(self, client: TestClient) -> None:
        response = client.get("/api/shorten/unknown", headers={"Origin": ORIGIN})

        assert response.status_code == 404
        assert response.json()["error"] == "Shortened URL not found"
        assert response.headers["Access-Control-Allow-Origin"] == ORIGIN


class TestManage:
    def test_list_is_scoped_to_owner(self, client: TestClient) -> None:
        mine = _create(client, KEY_A)
        _create(client, KEY_B)

        response = client.get("/api/shorten", headers={"X-API-Key": KEY_A})

        assert response.status_code == 200
        links = response.json()["data"]["links"]
        assert [link["id"] for link in links] == [mine["id"]]

    def test_get_other_owners_link_is_not_found(self, client: TestClient) -> None:
        created = _create(client, KEY_A)

        response = client.get(f"/api/shorten/manage/{created['id']}", headers={"X-API-Key": KEY_B})

        assert response.status_code == 404
        assert response.json()["error"] == "Shortened URL not found or access denied"

    def test_delete_by_owner(self, client: TestClient) -> None:
        created = _create(client, custom_alias="gone")

        response = client.delete(f"/api/shorten/manage/{created['id']}", headers={"X-API-Key": KEY_A})

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": {"message": "URL deleted successfully"}}
        resolved = client.get("/api/shorten/gone")
        assert resolved.status_code == 404
        assert resolved.json()["code"] == "link_disabled"

    def test_delete_by_other_owner_is_forbidden(self, client: TestClient) -> None:
        created = _create(client, KEY_A)

        response = client.delete(f"/api/shorten/manage/{created['id']}", headers={"X-API-Key": KEY_B})

        assert response.status_code == 403
        assert response.json() == {
            "success": False,
            "error": "This URL does not belong to you",
            "code": "link_forbidden",
        }


class TestPreflight:
    @pytest.mark.parametrize("path", ["/api/shorten", "/api/shorten/abc", "/api/shorten/manage/123"])
    def test_preflight_needs_no_key(self, client: TestClient, path: str) -> None:
        response = client.options(
            path,
            headers={"Origin": ORIGIN, "Access-Control-Request-Method": "POST"},
        )

        assert response.status_code == 204
        assert response.content == b""
        assert response.headers["Access-Control-Allow-Origin"] == ORIGIN
        assert "X-API-Key" in response.headers["Access-Control-Allow-Headers"]

    def test_preflight_unknown_origin(self, client: TestClient) -> None:
        response = client.options("/api/shorten", headers={"Origin": "https://evil.example"})

        assert response.status_code == 204
        assert "Access-Control-Allow-Origin" not in response.headers


class TestAuthDisabled:
    def test_anonymous_owner_when_auth_off(self, test_settings: Settings) -> None:
        test_settings.app.api_key_required = False
        client = TestClient(create_app(test_settings))

        created = client.post("/api/shorten", json={"original_url": "https://example.com"})
        keyed = client.post(
            "/api/shorten",
            json={"original_url": "https://example.com"},
            headers={"X-API-Key": KEY_A},
        )

        assert created.status_code == 201
        listed = client.get("/api/shorten").json()["data"]["links"]
        assert [link["id"] for link in listed] == [created.json()["data"]["id"]]
        assert keyed.status_code == 201


def test_health_reports_backend(client: TestClient) -> None:
    response = client.get("/health")

    assert response.json() == {"status": "ok", "rate_limiter": "memory"}


def test_openapi_marks_resolve_as_public(client: TestClient) -> None:
    schema = client.get("/openapi.json").json()

    assert schema["paths"]["/api/shorten/{short_code}"]["get"]["security"] == []
    assert schema["paths"]["/api/shorten"]["post"]["security"] == [{"ApiKeyAuth": []}]
    assert "ApiKeyAuth" in schema["components"]["securitySchemes"]


def test_injected_repository_is_used(test_settings: Settings) -> None:
    repository = InMemoryLinkRepository()
    client = TestClient(create_app(test_settings, link_repository=repository))

    created = client.post(
        "/api/shorten",
        json={"original_url": "https://example.com"},
        headers={"X-API-Key": KEY_A},
    )

    assert created.status_code == 201
    assert len(repository._by_id) == 1
