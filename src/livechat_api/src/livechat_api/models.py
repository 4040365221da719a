"""Pydantic records exchanged with the livechat platform."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

LIVECHAT_ROOM_TYPE = "livechat"


class Room(BaseModel):
    """A livechat room and its persisted custom fields."""

    id: str
    type: str = LIVECHAT_ROOM_TYPE
    is_open: bool = True
    visitor_token: str | None = None
    served_by: str | None = None
    department: str | None = None
    custom_fields: dict[str, Any] = Field(default_factory=dict)


class Visitor(BaseModel):
    """A livechat visitor and the profile data kept for them."""

    token: str
    name: str | None = None
    custom_data: dict[str, Any] = Field(default_factory=dict)
