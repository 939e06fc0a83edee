"""Pydantic model of the response envelope (documentation and validation)."""

from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, model_validator

T = TypeVar("T")


class ApiEnvelope(BaseModel, Generic[T]):
    """Uniform wrapper around every API response body."""

    success: bool = Field(..., description="True for 2xx responses.")
    data: T | None = Field(default=None, description="Payload of a successful response.")
    error: str | None = Field(default=None, description="Human-readable error message.")
    code: str | None = Field(default=None, description="Machine-readable error code.")

    @model_validator(mode="after")
    def _check_exclusive_fields(self) -> "ApiEnvelope[T]":
        if self.data is not None and self.error is not None:
            raise ValueError("data and error are mutually exclusive")
        if self.code is not None and self.error is None:
            raise ValueError("code requires error")
        if self.success and self.error is not None:
            raise ValueError("a successful envelope cannot carry an error")
        if not self.success and self.error is None:
            raise ValueError("a failed envelope requires an error")
        return self


def parse_envelope(payload: dict[str, Any]) -> ApiEnvelope[Any]:
    return ApiEnvelope[Any].model_validate(payload)
