"""Background effects of a Dialogflow reply: visitor field sync and handover.

These run after the visitor already has their reply, so every failure here is
logged and swallowed instead of failing the turn.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from livechat_api import VisitorNotFound

if TYPE_CHECKING:
    from collections.abc import Awaitable, Mapping

    from livechat_api import Client
    from nlu_client_api import QueryResult

HANDOVER_PARAMETER = "handover"

logger = logging.getLogger("livechat_bridge.side_effects")


class SideEffectPipeline:
    """Fire-and-forget processing of provider parameters."""

    def __init__(self, livechat: Client) -> None:
        """Create a pipeline writing through the given livechat client."""
        self._livechat = livechat
        self._bg_tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> set[asyncio.Task[None]]:
        """Return the background runs that have not finished yet.

        Callers that need side effects settled (shutdown hooks, tests) can
        ``asyncio.gather`` this set.
        """
        return set(self._bg_tasks)

    def dispatch(self, result: QueryResult, session_id: str, visitor_token: str) -> asyncio.Task[None]:
        """Schedule :meth:`apply` on the running loop without waiting for it."""
        task = asyncio.get_running_loop().create_task(self.apply(result, session_id, visitor_token))
        self._bg_tasks.add(task)
        task.add_done_callback(self._bg_tasks.discard)
        return task

    async def apply(self, result: QueryResult, session_id: str, visitor_token: str) -> None:
        """Run field sync and the handover check; neither blocks the other."""
        parameters = dict(result.parameters)
        await self._guarded("field sync", session_id, self.sync_fields(parameters, visitor_token))
        await self._guarded("handover", session_id, self.trigger_handover(parameters, session_id, visitor_token))

    async def sync_fields(self, parameters: Mapping[str, Any], visitor_token: str) -> list[str]:
        """Copy parameters onto visitor custom fields that already exist.

        Returns:
            The field names that were written.

        Raises:
            VisitorNotFound: No visitor is registered for the token.

        """
        visitor = await asyncio.to_thread(self._livechat.get_visitor_by_token, visitor_token)
        if visitor is None:
            msg = "No visitor registered for token."
            raise VisitorNotFound(msg)
        updated: list[str] = []
        for key, value in parameters.items():
            if key not in visitor.custom_data:
                continue
            await asyncio.to_thread(
                self._livechat.set_visitor_custom_field,
                visitor_token,
                key,
                value,
                overwrite=True,
            )
            updated.append(key)
        if updated:
            logger.info("Synced visitor fields: %s", ", ".join(updated))
        return updated

    async def trigger_handover(self, parameters: Mapping[str, Any], session_id: str, visitor_token: str) -> bool:
        """Hand the session to a human when the reply carries a truthy ``handover``."""
        value = parameters.get(HANDOVER_PARAMETER)
        if not value:
            return False
        department = value if isinstance(value, str) else None
        logger.info("Dialogflow requested handover for %s", session_id)
        return await asyncio.to_thread(self._livechat.perform_handover, session_id, visitor_token, department)

    async def _guarded(self, step: str, session_id: str, awaitable: Awaitable[Any]) -> None:
        try:
            await awaitable
        except VisitorNotFound:
            logger.info("Skipping %s for %s: visitor not found", step, session_id)
        except Exception:
            logger.exception("Side effect %s failed for %s", step, session_id)
