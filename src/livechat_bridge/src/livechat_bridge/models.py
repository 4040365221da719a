"""Pydantic schemas for livechat platform ↔ bridge communication."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from livechat_api import LIVECHAT_ROOM_TYPE


class IncomingMessage(BaseModel):
    """A message event posted into a livechat room."""

    room_id: str
    room_type: str = LIVECHAT_ROOM_TYPE
    is_open: bool = True
    visitor_token: str | None = None
    text: str | None = None
    sender_username: str | None = None
    served_by: str | None = None
    edited_at: str | None = None


class BridgeReply(BaseModel):
    """Outcome of processing one message event."""

    handled: bool
    reason: str | None = None
    messages: list[dict[str, Any]] = Field(default_factory=list)
    is_fallback: bool = False
    handed_over: bool = False
    error: str | None = None
