from __future__ import annotations

from app.api.routes.health import router as health_router
from app.api.routes.links import router as links_router

__all__ = ["health_router", "links_router"]
