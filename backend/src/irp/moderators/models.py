"""Pydantic models for moderators."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ModeratorRecord(BaseModel):
    """A row of the ``moderators`` table.

    The primary key is the identity provider's user id.
    """

    id: str
    full_name: str | None = None
    email: str | None = None
    image_url: str | None = None
    created_at: Any = None


class ModeratorResponse(BaseModel):
    """External projection of a moderator."""

    model_config = ConfigDict(populate_by_name=True)

    uuid: str
    fullname: str | None = None
    email: str | None = None
    image: str | None = None
    created_at: str = Field(serialization_alias="createdAt")
