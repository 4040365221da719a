"""Consecutive-fallback accounting persisted in room custom fields."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from livechat_bridge import settings
from livechat_bridge.errors import SessionNotFound

if TYPE_CHECKING:
    from livechat_api import Client

FALLBACK_STREAK_FIELD = "fallbackStreak"

logger = logging.getLogger("livechat_bridge.fallback")


class FallbackTracker:
    """Count consecutive fallback replies per session.

    The counter lives in the room's custom fields so it survives restarts. Reads
    and writes go through the livechat store, which offers no compare-and-set, so
    two overlapping turns on one session may lose an increment.
    """

    def __init__(self, livechat: Client, threshold: int | None = None) -> None:
        """Create a tracker; ``threshold`` overrides DIALOGFLOW_FALLBACK_RESPONSES_LIMIT."""
        self._livechat = livechat
        self._threshold = threshold

    @property
    def threshold(self) -> int:
        """Return how many consecutive fallbacks trigger escalation (0 disables it)."""
        if self._threshold is not None:
            return self._threshold
        return settings.get_int_setting(settings.FALLBACK_RESPONSES_LIMIT)

    async def on_reply(self, session_id: str, is_fallback: bool) -> int:  # noqa: FBT001
        """Increment on a fallback reply, reset otherwise; return the new streak."""
        if is_fallback:
            return await self.on_fallback(session_id)
        return await self.on_success(session_id)

    async def on_fallback(self, session_id: str) -> int:
        """Increment the session's fallback streak."""
        streak = await self.get_streak(session_id) + 1
        await self._write(session_id, streak)
        logger.info("Fallback streak for %s is now %d", session_id, streak)
        return streak

    async def on_success(self, session_id: str) -> int:
        """Reset the session's fallback streak to zero."""
        await self._write(session_id, 0)
        return 0

    async def get_streak(self, session_id: str) -> int:
        """Return the persisted streak, treating missing or bad values as zero."""
        room = await asyncio.to_thread(self._livechat.get_room_by_id, session_id)
        if room is None:
            msg = f"No livechat room for session {session_id}."
            raise SessionNotFound(msg)
        value = room.custom_fields.get(FALLBACK_STREAK_FIELD, 0)
        try:
            return max(int(value), 0)
        except (TypeError, ValueError):
            return 0

    async def should_escalate(self, session_id: str) -> bool:
        """Return True once the streak reaches the configured threshold."""
        threshold = self.threshold
        if threshold <= 0:
            return False
        return await self.get_streak(session_id) >= threshold

    async def _write(self, session_id: str, streak: int) -> None:
        await asyncio.to_thread(
            self._livechat.update_room_custom_fields,
            session_id,
            {FALLBACK_STREAK_FIELD: streak},
        )
