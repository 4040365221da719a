"""Shared in-memory collaborators for livechat_bridge tests."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pytest

import dialogflow_client_impl  # noqa: F401  # bind nlu_client_api factories
from dialogflow_client_impl.models_impl import DialogflowFragment, DialogflowMessage, DialogflowQueryResult
from livechat_api import Client as LivechatClient
from livechat_api import LivechatError, Room, Visitor, VisitorNotFound
from livechat_bridge.orchestrator import DATA_TRANSFER_BEGIN
from nlu_client_api import Client as NLUClient
from nlu_client_api import NLUEvent, NLUError, RequestType

if TYPE_CHECKING:
    from collections.abc import Mapping

BOT = "dialogflow.bot"


class FakeLivechat(LivechatClient):
    """Dict-backed livechat client recording every write."""

    def __init__(self) -> None:
        self.rooms: dict[str, Room] = {}
        self.visitors: dict[str, Visitor] = {}
        self.messages: list[tuple[str, dict[str, Any], str | None]] = []
        self.handovers: list[tuple[str, str, str | None]] = []
        self.field_writes: list[tuple[str, str, Any, bool]] = []
        self.room_patches: list[tuple[str, dict[str, Any]]] = []

    def get_room_by_id(self, room_id: str) -> Room | None:
        room = self.rooms.get(room_id)
        return room.model_copy(deep=True) if room else None

    def update_room_custom_fields(self, room_id: str, patch: Mapping[str, Any]) -> None:
        if room_id not in self.rooms:
            msg = f"Unknown room: {room_id}"
            raise LivechatError(msg)
        self.room_patches.append((room_id, dict(patch)))
        self.rooms[room_id].custom_fields.update(patch)

    def get_visitor_by_token(self, token: str) -> Visitor | None:
        return self.visitors.get(token)

    def set_visitor_custom_field(self, token: str, key: str, value: Any, *, overwrite: bool) -> bool:
        visitor = self.visitors.get(token)
        if visitor is None:
            raise VisitorNotFound(token)
        self.field_writes.append((token, key, value, overwrite))
        if key in visitor.custom_data and not overwrite:
            return False
        visitor.custom_data[key] = value
        return True

    def create_message(self, room_id: str, content: Mapping[str, Any], *, sender: str | None = None) -> str:
        self.messages.append((room_id, dict(content), sender))
        return str(len(self.messages))

    def perform_handover(self, room_id: str, visitor_token: str, department: str | None = None) -> bool:
        self.handovers.append((room_id, visitor_token, department))
        self.rooms[room_id].served_by = None
        return True


class FakeNLU(NLUClient):
    """Scripted NLU client keyed by message text or event name."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, RequestType]] = []
        self.replies: dict[str, DialogflowQueryResult | Exception] = {}
        self.reply_to("Welcome", ["Hi"])

    def reply_to(
        self,
        key: str,
        texts: list[str],
        *,
        is_fallback: bool = False,
        parameters: dict[str, Any] | None = None,
    ) -> None:
        fragments = [DialogflowFragment(fragment_type="text", text=text) for text in texts]
        self.replies[key] = DialogflowQueryResult(
            message=DialogflowMessage(fragments, is_fallback=is_fallback),
            parameters=parameters or {},
            raw={"queryResult": {"parameters": parameters or {}}},
        )

    def fail_on(self, key: str, error: Exception) -> None:
        self.replies[key] = error

    def detect_intent(self, session_id: str, request: NLUEvent | str, request_type: RequestType) -> DialogflowQueryResult:
        key = request.name if isinstance(request, NLUEvent) else request
        self.calls.append((session_id, key, request_type))
        if isinstance(request, str) and request.startswith(DATA_TRANSFER_BEGIN):
            key = "<data-transfer>"
        reply = self.replies.get(key)
        if isinstance(reply, Exception):
            raise reply
        if reply is None:
            if key == "<data-transfer>":
                return DialogflowQueryResult(DialogflowMessage([]), {}, {})
            error_message = f"No scripted reply for {key!r}"
            raise NLUError(error_message)
        return reply


@pytest.fixture
def livechat() -> FakeLivechat:
    """A livechat with one fresh bot-served room and a visitor on the gold plan."""
    client = FakeLivechat()
    client.rooms["room-1"] = Room(id="room-1", visitor_token="tok-1", served_by=BOT)
    client.visitors["tok-1"] = Visitor(token="tok-1", custom_data={"plan": "gold"})
    return client


@pytest.fixture
def nlu() -> FakeNLU:
    """An NLU client answering the Welcome event with ``Hi``."""
    return FakeNLU()
