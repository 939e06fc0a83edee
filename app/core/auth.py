"""API key authentication for link management routes.

Keys are validated against a comma-separated list from environment variables.
The caller's identity (the link owner) is derived from a hash of its key, so
raw keys are never stored next to links or written to logs.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Annotated

from fastapi import Header, Request

from app.core.config import AppSettings
from app.core.errors import AuthenticationAppError

logger = logging.getLogger(__name__)

ANONYMOUS_OWNER = "anonymous"


def parse_api_keys(keys_string: str | None) -> set[str]:
    """Parse comma-separated API keys into a set.

    Examples:
        >>> parse_api_keys("key1, key2 , key3 ")
        {'key1', 'key2', 'key3'}
        >>> parse_api_keys(None)
        set()
    """
    if not keys_string:
        return set()
    return {key.strip() for key in keys_string.split(",") if key.strip()}


def owner_id_for(api_key: str) -> str:
    """Stable, non-reversible owner id for an API key."""
    return hashlib.sha256(api_key.encode()).hexdigest()[:16]


def validate_api_key(provided_key: str | None, app_settings: AppSettings) -> str:
    """Validate an API key and return the owner id it maps to.

    Args:
        provided_key: Value of the X-API-Key header, if any.
        app_settings: Application settings holding the configured keys.

    Returns:
        Owner id for the caller (``"anonymous"`` when auth is disabled).

    Raises:
        AuthenticationAppError: Key missing, invalid, or no keys configured.
    """
    if not app_settings.api_key_required:
        return owner_id_for(provided_key) if provided_key else ANONYMOUS_OWNER

    if not provided_key:
        logger.warning("auth.missing_key", extra={"auth_required": True})
        raise AuthenticationAppError(
            code="authentication_required",
            message="Authentication required",
        )

    valid_keys = parse_api_keys(app_settings.api_keys)
    if not valid_keys:
        logger.error(
            "api_key_validation_failed",
            extra={"reason": "api_keys_not_configured"},
        )
        raise AuthenticationAppError(
            code="api_keys_not_configured",
            message="API key authentication is enabled but no valid keys are configured",
            details={"hint": "Set APP_API_KEYS or disable auth with APP_API_KEY_REQUIRED=false"},
        )

    owner_id = owner_id_for(provided_key)
    if provided_key not in valid_keys:
        logger.warning(
            "api_key_validation_failed",
            extra={"reason": "invalid_api_key", "api_key_hash": owner_id},
        )
        raise AuthenticationAppError(
            code="invalid_api_key",
            message="Invalid or missing API key",
        )

    return owner_id


async def require_owner(
    request: Request,
    x_api_key: Annotated[str | None, Header(alias="X-API-Key")] = None,
) -> str:
    """FastAPI dependency resolving the authenticated link owner.

    Usage:
        @router.get("/links")
        async def list_links(owner_id: str = Depends(require_owner)): ...
    """
    owner_id = validate_api_key(x_api_key, request.app.state.settings.app)
    logger.debug("auth.success", extra={"api_key_hash": owner_id})
    return owner_id
