from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Health check endpoint.

    Used by load balancers and monitoring systems. Reports which rate limiter
    backend this instance selected at startup.

    Returns:
        dict: ``{"status": "ok", "rate_limiter": <backend name>}``.
    """

    return {"status": "ok", "rate_limiter": request.app.state.rate_limiter.backend_name}
