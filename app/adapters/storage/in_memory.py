"""In-memory link repository.

Per-process only and lost on restart; suitable for development, tests and
single-instance demos.
"""

from __future__ import annotations

from app.adapters.storage.base import AbstractLinkRepository
from app.schemas.link import Link


class InMemoryLinkRepository(AbstractLinkRepository):
    """Dictionary-backed repository indexed by id and short code."""

    def __init__(self) -> None:
        self._by_id: dict[str, Link] = {}
        self._id_by_code: dict[str, str] = {}

    async def add(self, link: Link) -> Link:
        self._by_id[link.id] = link
        self._id_by_code[link.short_code] = link.id
        return link

    async def get_by_id(self, link_id: str) -> Link | None:
        return self._by_id.get(link_id)

    async def get_by_code(self, short_code: str) -> Link | None:
        link_id = self._id_by_code.get(short_code)
        return self._by_id.get(link_id) if link_id else None

    async def list_by_owner(self, owner_id: str) -> list[Link]:
        links = [link for link in self._by_id.values() if link.owner_id == owner_id]
        return sorted(links, key=lambda link: link.created_at, reverse=True)

    async def short_code_exists(self, short_code: str) -> bool:
        return short_code in self._id_by_code

    async def custom_alias_exists(self, alias: str) -> bool:
        return any(link.custom_alias == alias for link in self._by_id.values())

    async def increment_clicks(self, short_code: str) -> None:
        link = await self.get_by_code(short_code)
        if link is not None:
            link.clicks += 1

    async def deactivate(self, link_id: str) -> None:
        link = self._by_id.get(link_id)
        if link is not None:
            link.is_active = False
