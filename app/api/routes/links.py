"""Link management endpoints.

Every handler follows the same order: rate limit, then authentication (except
the public resolve endpoint), then the service call. Responses are wrapped in
the standard envelope and passed through the CORS boundary; errors reach the
client through the global exception handlers, which do the same.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request, Response, status

from app.core.auth import require_owner
from app.core.cors import apply_cors, preflight
from app.core.rate_limit import enforce_rate_limit
from app.core.responses import api_success
from app.schemas.envelope import ApiEnvelope
from app.schemas.link import (
    CreateLinkRequest,
    LinkListResponse,
    LinkResponse,
    MessageResponse,
    ResolvedLinkResponse,
)
from app.services.link_service import LinkService

router = APIRouter(prefix="/api/shorten", tags=["Links"])

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    status.HTTP_429_TOO_MANY_REQUESTS: {"model": ApiEnvelope[Any], "description": "Rate limited"},
}


def get_link_service(request: Request) -> LinkService:
    return request.app.state.link_service


def _public_url(request: Request) -> str | None:
    return request.app.state.settings.app.public_url


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(enforce_rate_limit)],
    responses={
        status.HTTP_201_CREATED: {"model": ApiEnvelope[LinkResponse]},
        **_ERROR_RESPONSES,
    },
)
async def create_link(
    request: Request,
    payload: CreateLinkRequest,
    owner_id: str = Depends(require_owner),
    service: LinkService = Depends(get_link_service),
) -> Response:
    """Create a short link for the authenticated user."""
    link = await service.create_link(owner_id, payload)
    body = LinkResponse.from_link(link, _public_url(request))
    return apply_cors(request, api_success(body, status.HTTP_201_CREATED))


@router.get(
    "",
    dependencies=[Depends(enforce_rate_limit)],
    responses={status.HTTP_200_OK: {"model": ApiEnvelope[LinkListResponse]}, **_ERROR_RESPONSES},
)
async def list_links(
    request: Request,
    owner_id: str = Depends(require_owner),
    service: LinkService = Depends(get_link_service),
) -> Response:
    """List the authenticated user's links, newest first."""
    links = await service.list_links(owner_id)
    public_url = _public_url(request)
    body = LinkListResponse(links=[LinkResponse.from_link(link, public_url) for link in links])
    return apply_cors(request, api_success(body))


@router.options("", include_in_schema=False)
async def links_preflight(request: Request) -> Response:
    return preflight(request)


@router.get(
    "/manage/{link_id}",
    dependencies=[Depends(enforce_rate_limit)],
    responses={status.HTTP_200_OK: {"model": ApiEnvelope[LinkResponse]}, **_ERROR_RESPONSES},
)
async def get_link(
    request: Request,
    link_id: str,
    owner_id: str = Depends(require_owner),
    service: LinkService = Depends(get_link_service),
) -> Response:
    """Return one of the authenticated user's links."""
    link = await service.get_link(owner_id, link_id)
    return apply_cors(request, api_success(LinkResponse.from_link(link, _public_url(request))))


@router.delete(
    "/manage/{link_id}",
    dependencies=[Depends(enforce_rate_limit)],
    responses={status.HTTP_200_OK: {"model": ApiEnvelope[MessageResponse]}, **_ERROR_RESPONSES},
)
async def delete_link(
    request: Request,
    link_id: str,
    owner_id: str = Depends(require_owner),
    service: LinkService = Depends(get_link_service),
) -> Response:
    """Soft delete a link owned by the authenticated user."""
    await service.delete_link(owner_id, link_id)
    return apply_cors(request, api_success(MessageResponse(message="URL deleted successfully")))


@router.options("/manage/{link_id}", include_in_schema=False)
async def manage_preflight(request: Request, link_id: str) -> Response:
    return preflight(request)


@router.get(
    "/{short_code}",
    dependencies=[Depends(enforce_rate_limit)],
    responses={
        status.HTTP_200_OK: {"model": ApiEnvelope[ResolvedLinkResponse]},
        **_ERROR_RESPONSES,
    },
)
async def resolve_link(
    request: Request,
    short_code: str,
    service: LinkService = Depends(get_link_service),
) -> Response:
    """Resolve a short code to its original URL and count the click."""
    link = await service.resolve(short_code)
    body = ResolvedLinkResponse(original_url=link.original_url, short_code=link.short_code)
    return apply_cors(request, api_success(body))


@router.options("/{short_code}", include_in_schema=False)
async def resolve_preflight(request: Request, short_code: str) -> Response:
    return preflight(request)
