"""Application factory for the FastAPI app.

Builds the process-wide collaborators once (rate limiter, CORS policy, link
service), stores them on ``app.state`` and wires middleware, exception
handlers and routers. Tests pass their own settings or limiter instead of
patching module globals.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.adapters.rate_limit.base import AbstractRateLimiter
from app.adapters.rate_limit.factory import create_rate_limiter
from app.adapters.storage.base import AbstractLinkRepository
from app.adapters.storage.in_memory import InMemoryLinkRepository
from app.api.routes import health_router, links_router
from app.core.config import Settings, settings as default_settings
from app.core.cors import build_cors_policy
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.services.link_service import LinkService

logger = logging.getLogger(__name__)


def create_app(
    app_settings: Settings | None = None,
    *,
    rate_limiter: AbstractRateLimiter | None = None,
    link_repository: AbstractLinkRepository | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to use; the global settings when omitted.
        rate_limiter: Limiter to install instead of the configured backend.
        link_repository: Repository to install instead of the in-memory one.

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    cfg = app_settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    limiter = (
        rate_limiter
        if rate_limiter is not None
        else create_rate_limiter(cfg.rate_limit, cfg.remote_store)
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await limiter.start()
        try:
            yield
        finally:
            await limiter.close()

    app = FastAPI(
        title="URL Shortener API",
        description=(
            "Create short links with click tracking, expiration and soft "
            "deletion. Every route is rate limited per client, answers with a "
            "standard {success, data | error, code} envelope and carries CORS "
            "headers for the configured origins."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state.settings = cfg
    app.state.rate_limiter = limiter
    app.state.cors_policy = build_cors_policy(cfg)
    app.state.link_service = LinkService(
        link_repository if link_repository is not None else InMemoryLinkRepository(),
        code_length=cfg.app.short_code_length,
    )

    app.middleware("http")(request_id_middleware)
    setup_exception_handlers(app)

    app.include_router(links_router)
    app.include_router(health_router)

    apply_openapi_customizations(app)

    logger.info(
        "app.created",
        extra={
            "app_env": cfg.app_env,
            "rate_limiter": limiter.backend_name,
            "cors_origins": sorted(app.state.cors_policy.allowed_origins),
        },
    )
    return app
