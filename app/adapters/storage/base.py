"""Link repository interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from app.schemas.link import Link


class AbstractLinkRepository(ABC):
    """Persistence contract for shortened links."""

    @abstractmethod
    async def add(self, link: Link) -> Link:
        """Store a new link and return it."""
        raise NotImplementedError

    @abstractmethod
    async def get_by_id(self, link_id: str) -> Link | None:
        raise NotImplementedError

    @abstractmethod
    async def get_by_code(self, short_code: str) -> Link | None:
        raise NotImplementedError

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> list[Link]:
        """Return the owner's links, newest first."""
        raise NotImplementedError

    @abstractmethod
    async def short_code_exists(self, short_code: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def custom_alias_exists(self, alias: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    async def increment_clicks(self, short_code: str) -> None:
        raise NotImplementedError

    @abstractmethod
    async def deactivate(self, link_id: str) -> None:
        """Soft delete: the link stays stored but stops resolving."""
        raise NotImplementedError
