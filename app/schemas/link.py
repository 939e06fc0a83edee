"""Pydantic schemas for shortened links."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List
from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Link(BaseModel):
    """Stored link record."""

    id: str
    owner_id: str
    original_url: str
    short_code: str
    custom_alias: str | None = None
    description: str | None = None
    clicks: int = 0
    is_active: bool = True
    expires_at: datetime | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or datetime.now(timezone.utc)) > self.expires_at


class CreateLinkRequest(BaseModel):
    """Request body for creating a short link."""

    original_url: str = Field(..., max_length=2048, description="The long URL to shorten.")
    custom_alias: str | None = Field(
        default=None,
        min_length=3,
        max_length=30,
        pattern=r"^[a-zA-Z0-9_-]+$",
        description="Optional alias; letters, numbers, hyphens and underscores.",
    )
    description: str | None = Field(default=None, max_length=500)
    expires_at: datetime | None = Field(
        default=None,
        description="Optional expiry; naive timestamps are read as UTC.",
    )

    @field_validator("original_url")
    @classmethod
    def _check_url(cls, value: str) -> str:
        parsed = urlparse(value.strip())
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError("Invalid URL format")
        return value.strip()

    @field_validator("expires_at")
    @classmethod
    def _normalize_expiry(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class LinkResponse(BaseModel):
    """Link as returned to its owner."""

    id: str
    short_code: str
    short_url: str | None = None
    original_url: str
    custom_alias: str | None = None
    description: str | None = None
    clicks: int
    is_active: bool
    expires_at: datetime | None = None
    created_at: datetime

    @classmethod
    def from_link(cls, link: Link, public_url: str | None = None) -> "LinkResponse":
        short_url = f"{public_url.rstrip('/')}/l/{link.short_code}" if public_url else None
        return cls(
            short_url=short_url,
            **link.model_dump(exclude={"owner_id"}),
        )


class LinkListResponse(BaseModel):
    links: List[LinkResponse] = Field(default_factory=list)


class ResolvedLinkResponse(BaseModel):
    """Public answer for a short code lookup; clients perform the redirect."""

    original_url: str
    short_code: str


class MessageResponse(BaseModel):
    message: str
