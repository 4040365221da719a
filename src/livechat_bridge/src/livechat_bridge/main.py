"""FastAPI bridge for livechat message events.

Filters incoming livechat messages, routes visitor turns through the Dialogflow
orchestrator, posts the reply back into the room as the bot user, and escalates
to a human agent after too many consecutive fallback replies.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from fastapi import FastAPI

import dialogflow_client_impl  # noqa: F401  # ensure NLU implementation registers itself
import livechat_api
import livechat_store_impl  # noqa: F401  # ensure livechat implementation registers itself
import nlu_client_api
from livechat_api import LIVECHAT_ROOM_TYPE
from livechat_bridge import settings
from livechat_bridge.errors import OrchestrationError
from livechat_bridge.fallback import FallbackTracker
from livechat_bridge.models import BridgeReply, IncomingMessage
from livechat_bridge.orchestrator import ConversationOrchestrator

app = FastAPI(title="Livechat Dialogflow Bridge", version="0.1.0")

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("livechat_bridge")


@dataclass(frozen=True)
class Services:
    """Long-lived collaborators shared by all requests."""

    livechat: livechat_api.Client
    orchestrator: ConversationOrchestrator
    tracker: FallbackTracker


@lru_cache(maxsize=1)
def get_services() -> Services:
    """Build the process-wide services once, so the bearer token cache is shared."""
    livechat = livechat_api.get_client()
    return Services(
        livechat=livechat,
        orchestrator=ConversationOrchestrator(nlu_client_api.get_client(), livechat),
        tracker=FallbackTracker(livechat),
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@app.get("/health")
async def health() -> dict[str, str]:
    """Return a basic health payload."""
    return {"status": "ok"}


@app.post("/events/message", response_model=BridgeReply)
async def handle_message(incoming: IncomingMessage) -> BridgeReply:
    """Answer a visitor message on behalf of the Dialogflow bot."""
    bot_username = settings.get_setting(settings.BOT_USERNAME)
    reason = _skip_reason(incoming, bot_username)
    if reason:
        logger.debug("Ignoring message in %s: %s", incoming.room_id, reason)
        return BridgeReply(handled=False, reason=reason)
    assert incoming.visitor_token is not None
    assert incoming.text is not None

    services = get_services()
    try:
        reply = await services.orchestrator.handle_turn(incoming.room_id, incoming.text, incoming.visitor_token)
    except OrchestrationError:
        logger.exception("Dialogflow turn failed for %s", incoming.room_id)
        unavailable = _text_content(settings.get_setting(settings.SERVICE_UNAVAILABLE_MESSAGE))
        await _post(services.livechat, incoming.room_id, [unavailable], bot_username)
        return BridgeReply(handled=True, messages=[unavailable], error="service_unavailable")

    contents = _render(reply)
    await _post(services.livechat, incoming.room_id, contents, bot_username)
    handed_over = await _account_fallback(services, incoming, reply, bot_username)
    return BridgeReply(
        handled=True,
        messages=contents,
        is_fallback=reply.is_fallback,
        handed_over=handed_over,
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _skip_reason(incoming: IncomingMessage, bot_username: str | None) -> str | None:  # noqa: PLR0911
    """Return why the bot should not answer this message, or None to answer it."""
    if incoming.room_type != LIVECHAT_ROOM_TYPE:
        return "not_livechat"
    if not incoming.is_open:
        return "room_closed"
    if not incoming.visitor_token:
        return "missing_token"
    if incoming.edited_at:
        return "edited"
    if not incoming.text or not incoming.text.strip():
        return "empty_text"
    if not bot_username or incoming.served_by != bot_username:
        return "not_served_by_bot"
    if incoming.sender_username == bot_username:
        return "own_message"
    return None


def _text_content(text: str | None) -> dict[str, Any]:
    return {"type": nlu_client_api.FRAGMENT_TEXT, "text": text or ""}


def _render(reply: nlu_client_api.NLUMessage) -> list[dict[str, Any]]:
    """Turn reply fragments into message contents, defaulting empty fallbacks."""
    contents = [fragment.to_dict() for fragment in reply.messages]
    if not contents and reply.is_fallback:
        contents.append(_text_content(settings.get_setting(settings.DEFAULT_FALLBACK_MESSAGE)))
    return contents


async def _post(
    livechat: livechat_api.Client,
    room_id: str,
    contents: list[dict[str, Any]],
    sender: str | None,
) -> None:
    for content in contents:
        await asyncio.to_thread(livechat.create_message, room_id, content, sender=sender)


async def _account_fallback(
    services: Services,
    incoming: IncomingMessage,
    reply: nlu_client_api.NLUMessage,
    bot_username: str | None,
) -> bool:
    """Update the fallback streak and hand over once it reaches the limit."""
    room_id = incoming.room_id
    try:
        await services.tracker.on_reply(room_id, reply.is_fallback)
        if not reply.is_fallback or not await services.tracker.should_escalate(room_id):
            return False
        handover_message = _text_content(settings.get_setting(settings.HANDOVER_MESSAGE))
        await _post(services.livechat, room_id, [handover_message], bot_username)
        department = settings.get_setting(settings.HANDOVER_DEPARTMENT)
        assert incoming.visitor_token is not None
        handed_over = await asyncio.to_thread(
            services.livechat.perform_handover,
            room_id,
            incoming.visitor_token,
            department,
        )
        await services.tracker.on_success(room_id)
    except Exception:
        logger.exception("Fallback accounting failed for %s", room_id)
        return False
    logger.info("Escalated %s after repeated fallbacks", room_id)
    return bool(handed_over)
