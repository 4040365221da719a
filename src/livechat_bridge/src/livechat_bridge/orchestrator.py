"""Turn orchestration between a livechat room and the NLU agent.

Each visitor turn resolves the room, runs the one-time bootstrap on the first
turn (visitor data transfer followed by the Welcome event), sends the visitor's
text, and hands the reply's parameters to the side-effect pipeline without
waiting for it.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import TYPE_CHECKING, Any

import nlu_client_api
from livechat_api import LivechatError
from livechat_bridge import settings
from livechat_bridge.errors import DataTransferError, OrchestrationError, SessionNotFound
from livechat_bridge.side_effects import SideEffectPipeline
from nlu_client_api import NLUError, RequestType

if TYPE_CHECKING:
    from collections.abc import Mapping

    import livechat_api
    from nlu_client_api import MessageFragment, NLUEvent, NLUMessage, QueryResult

FIRST_MESSAGE_FLAG = "isNotFirstMessage"
WELCOME_EVENT = "Welcome"
DATA_TRANSFER_BEGIN = "------------------------\nUSER HAS DATA: "
DATA_TRANSFER_END = "\n-------------------------"

logger = logging.getLogger("livechat_bridge.orchestrator")


class ConversationOrchestrator:
    """Sequence one visitor turn against the NLU agent.

    Attributes:
        _nlu: Detect-intent client.
        _livechat: Room store and visitor directory.
        _side_effects: Background pipeline fed with each real reply.
        _language_code: Language code used for the Welcome event.

    """

    def __init__(
        self,
        nlu: nlu_client_api.Client,
        livechat: livechat_api.Client,
        side_effects: SideEffectPipeline | None = None,
        language_code: str | None = None,
    ) -> None:
        """Wire the orchestrator to its collaborators."""
        self._nlu = nlu
        self._livechat = livechat
        self._side_effects = side_effects or SideEffectPipeline(livechat)
        self._language_code = language_code or settings.get_setting(settings.LANGUAGE_CODE) or "en"

    @property
    def side_effects(self) -> SideEffectPipeline:
        """Return the side-effect pipeline fed by this orchestrator."""
        return self._side_effects

    async def handle_turn(self, session_id: str, text: str, visitor_token: str) -> NLUMessage:
        """Process one visitor message and return the reply to show.

        Args:
            session_id: Livechat room id, also used as the Dialogflow session.
            text: Visitor message text.
            visitor_token: Token identifying the visitor.

        Returns:
            Bootstrap fragments (first turn only) followed by the reply fragments.
            ``is_fallback`` reflects the reply to ``text`` alone.

        Raises:
            SessionNotFound: The room does not exist.
            OrchestrationError: The room store failed, or the Welcome event or the
                message could not be sent.

        """
        try:
            room = await asyncio.to_thread(self._livechat.get_room_by_id, session_id)
        except LivechatError as exc:
            msg = f"Room lookup failed for session {session_id}."
            raise OrchestrationError(msg) from exc
        if room is None:
            msg = f"No livechat room for session {session_id}."
            raise SessionNotFound(msg)

        fragments: list[MessageFragment] = []
        if not room.custom_fields.get(FIRST_MESSAGE_FLAG):
            fragments.extend(await self._bootstrap(session_id, visitor_token))

        result = await self._detect(session_id, text, RequestType.MESSAGE)
        fragments.extend(result.message.messages)
        self._side_effects.dispatch(result, session_id, visitor_token)

        return nlu_client_api.message(
            fragments,
            is_fallback=result.message.is_fallback,
            session_id=result.message.session_id or session_id,
        )

    async def _bootstrap(self, session_id: str, visitor_token: str) -> list[MessageFragment]:
        """Mark the session as started, transfer visitor data and send the Welcome event."""
        # Flag first so a crash after this point never repeats the transfer.
        try:
            await asyncio.to_thread(
                self._livechat.update_room_custom_fields,
                session_id,
                {FIRST_MESSAGE_FLAG: True},
            )
        except LivechatError as exc:
            msg = f"Could not mark session {session_id} as started."
            raise OrchestrationError(msg) from exc
        await self._transfer_visitor_data(session_id, visitor_token)
        welcome = nlu_client_api.event(WELCOME_EVENT, self._language_code)
        result = await self._detect(session_id, welcome, RequestType.EVENT)
        return list(result.message.messages)

    async def _transfer_visitor_data(self, session_id: str, visitor_token: str) -> bool:
        """Send the visitor's profile to the agent as an unseen text turn."""
        try:
            visitor = await asyncio.to_thread(self._livechat.get_visitor_by_token, visitor_token)
        except LivechatError:
            logger.warning("Visitor lookup failed for %s", session_id, exc_info=True)
            return False
        if visitor is None or not visitor.custom_data:
            logger.info("No visitor data to transfer for %s", session_id)
            return False
        try:
            payload = build_data_transfer_text(visitor.custom_data)
            await asyncio.to_thread(self._nlu.detect_intent, session_id, payload, RequestType.MESSAGE)
        except (DataTransferError, NLUError):
            logger.warning("Visitor data transfer failed for %s", session_id, exc_info=True)
            return False
        logger.info("Transferred visitor data for %s", session_id)
        return True

    async def _detect(self, session_id: str, request: NLUEvent | str, request_type: RequestType) -> QueryResult:
        try:
            return await asyncio.to_thread(self._nlu.detect_intent, session_id, request, request_type)
        except NLUError as exc:
            msg = f"Dialogflow {request_type.value} request failed for session {session_id}."
            raise OrchestrationError(msg) from exc


def build_data_transfer_text(custom_data: Mapping[str, Any]) -> str:
    """Render visitor fields as ``key:value`` pairs between the transfer markers.

    Raises:
        DataTransferError: A value cannot be serialized.

    """
    pairs: list[str] = []
    for key, value in custom_data.items():
        if isinstance(value, str):
            rendered = value
        else:
            try:
                rendered = json.dumps(value)
            except (TypeError, ValueError) as exc:
                msg = f"Cannot serialize visitor field {key!r}."
                raise DataTransferError(msg) from exc
        pairs.append(f"{key}:{rendered}")
    return f"{DATA_TRANSFER_BEGIN}{', '.join(pairs)}{DATA_TRANSFER_END}"
