"""Wire envelopes for the remote template store."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


class TemplateRecord(BaseModel):
    """
    What the store returns from create/update.

    Only the identity is required. Extra keys (pages, settings, metadata, ...)
    are kept so the full document can be rebuilt when the store echoes it.
    """

    model_config = {"extra": "allow"}

    id: str
    title: str | None = None
    is_published: bool | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value: Any) -> Any:
        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(int(value))
        return value

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def _timestamp_as_str(cls, value: Any) -> Any:
        if value is not None and not isinstance(value, str):
            return str(value)
        return value


class StoreError(BaseModel):
    """Error body returned by the store on a non-2xx response."""

    detail: str | dict[str, Any] | list[Any] = Field(default="")
