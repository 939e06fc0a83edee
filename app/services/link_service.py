"""Link management service.

Owns the business rules for shortened links:
- custom aliases are case-insensitive and unique
- random codes are drawn until one is free
- resolving counts a click; disabled or expired links do not resolve
- deletion is soft and restricted to the owner
"""

from __future__ import annotations

import logging
import secrets
import string
import uuid
from datetime import datetime, timezone

from app.adapters.storage.base import AbstractLinkRepository
from app.core.errors import ConflictAppError, NotFoundAppError, PermissionAppError
from app.schemas.link import CreateLinkRequest, Link

logger = logging.getLogger(__name__)

SHORT_CODE_ALPHABET = string.ascii_lowercase + string.digits


def generate_short_code(length: int = 8) -> str:
    """Random short code drawn uniformly from lower-case letters and digits."""
    return "".join(secrets.choice(SHORT_CODE_ALPHABET) for _ in range(length))


class LinkService:
    """Create, resolve, list and soft-delete links."""

    def __init__(self, repository: AbstractLinkRepository, *, code_length: int = 8) -> None:
        self._repository = repository
        self._code_length = code_length

    async def _unique_code(self) -> str:
        short_code = generate_short_code(self._code_length)
        while await self._repository.short_code_exists(short_code):
            short_code = generate_short_code(self._code_length)
        return short_code

    async def create_link(self, owner_id: str, payload: CreateLinkRequest) -> Link:
        """Create a link for ``owner_id``.

        Raises:
            ConflictAppError: The custom alias (or the code it maps to) is taken.
        """
        alias = payload.custom_alias.lower() if payload.custom_alias else None

        if alias:
            taken = await self._repository.custom_alias_exists(alias)
            if taken or await self._repository.short_code_exists(alias):
                raise ConflictAppError(
                    code="alias_taken",
                    message="Custom alias already in use",
                    details={"short_code": alias},
                )
            short_code = alias
        else:
            short_code = await self._unique_code()

        link = await self._repository.add(
            Link(
                id=str(uuid.uuid4()),
                owner_id=owner_id,
                original_url=payload.original_url,
                short_code=short_code,
                custom_alias=alias,
                description=payload.description,
                expires_at=payload.expires_at,
            )
        )
        logger.info(
            "link.created",
            extra={"link_id": link.id, "short_code": short_code, "custom_alias": bool(alias)},
        )
        return link

    async def list_links(self, owner_id: str) -> list[Link]:
        return await self._repository.list_by_owner(owner_id)

    async def resolve(self, short_code: str, *, now: datetime | None = None) -> Link:
        """Look up an active link by code and count the click.

        Raises:
            NotFoundAppError: Unknown code, disabled link, or expired link.
        """
        link = await self._repository.get_by_code(short_code.lower())
        if link is None:
            raise NotFoundAppError(code="link_not_found", message="Shortened URL not found")
        if not link.is_active:
            raise NotFoundAppError(code="link_disabled", message="This link has been disabled")
        if link.is_expired(now or datetime.now(timezone.utc)):
            raise NotFoundAppError(code="link_expired", message="This link has expired")

        await self._repository.increment_clicks(link.short_code)
        return link

    async def get_link(self, owner_id: str, link_id: str) -> Link:
        """Fetch one of the owner's links; other owners' links look missing."""
        link = await self._repository.get_by_id(link_id)
        if link is None or link.owner_id != owner_id:
            raise NotFoundAppError(
                code="link_not_found",
                message="Shortened URL not found or access denied",
                details={"link_id": link_id},
            )
        return link

    async def delete_link(self, owner_id: str, link_id: str) -> None:
        """Soft delete a link.

        Raises:
            NotFoundAppError: No link with this id.
            PermissionAppError: The link belongs to another owner.
        """
        link = await self._repository.get_by_id(link_id)
        if link is None:
            raise NotFoundAppError(code="link_not_found", message="Shortened URL not found")
        if link.owner_id != owner_id:
            raise PermissionAppError(
                code="link_forbidden",
                message="This URL does not belong to you",
                details={"link_id": link_id},
            )

        await self._repository.deactivate(link_id)
        logger.info("link.deactivated", extra={"link_id": link_id})
