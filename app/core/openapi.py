"""OpenAPI customization.

Adds the ``X-API-Key`` security scheme and tag descriptions to the generated
schema. Only owner-scoped link operations require the key; health checks and
public short code resolution are documented as open.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

_TAGS = [
    {"name": "Links", "description": "Create, list, resolve and delete short links."},
    {"name": "Health", "description": "Liveness checks."},
]

_PUBLIC_OPERATIONS = {
    ("/health", "get"),
    ("/api/shorten/{short_code}", "get"),
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add tags and API key security."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        security_schemes = schema.setdefault("components", {}).setdefault("securitySchemes", {})
        security_schemes.setdefault(
            "ApiKeyAuth",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": "Provide your API key via the X-API-Key header.",
            },
        )

        existing = {tag.get("name") for tag in schema.setdefault("tags", [])}
        schema["tags"].extend(tag for tag in _TAGS if tag["name"] not in existing)

        for path, methods in schema.get("paths", {}).items():
            for method, operation in methods.items():
                if not isinstance(operation, dict):
                    continue
                public = (path, method) in _PUBLIC_OPERATIONS
                operation["security"] = [] if public else [{"ApiKeyAuth": []}]

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
