"""Integration tests wiring the bridge app to the SQLite store and the Dialogflow client."""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING, Any
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

import livechat_api
import livechat_bridge.main as app_module
import nlu_client_api
from dialogflow_client_impl import dialogflow_impl
from dialogflow_client_impl.auth import AccessToken
from dialogflow_client_impl.dialogflow_impl import DialogflowClient
from livechat_api import Room, Visitor
from livechat_bridge.fallback import FALLBACK_STREAK_FIELD, FallbackTracker
from livechat_bridge.orchestrator import DATA_TRANSFER_BEGIN, FIRST_MESSAGE_FLAG, ConversationOrchestrator
from livechat_store_impl import SQLiteLivechatClient, sqlite_impl

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path

pytestmark = pytest.mark.integration

BOT = "dialogflow.bot"


class _FakeDialogflow:
    """Answers detect-intent posts based on the query input."""

    def __init__(self) -> None:
        self.bodies: list[dict[str, Any]] = []

    def __call__(self, url: str, **kwargs: Any) -> Mock:
        body = kwargs["json"]
        self.bodies.append(body)
        session = url.rsplit("/", 1)[-1].removesuffix(":detectIntent")
        query_input = body["queryInput"]
        if "event" in query_input:
            query_result = {"fulfillmentText": "Welcome!", "intent": {"isFallback": False}}
        elif query_input["text"]["text"].startswith(DATA_TRANSFER_BEGIN):
            query_result = {"intent": {"isFallback": False}}
        else:
            query_result = {
                "fulfillmentMessages": [{"text": {"text": ["I didn't get that."]}}],
                "parameters": {"plan": "silver", "unknown": "x"},
                "intent": {"isFallback": True},
            }
        response = Mock()
        response.raise_for_status = Mock()
        response.json.return_value = {"session": f"projects/p/agent/sessions/{session}", "queryResult": query_result}
        return response


@pytest.fixture
def store(tmp_path: Path) -> SQLiteLivechatClient:
    store = SQLiteLivechatClient(tmp_path / "livechat.db")
    store.upsert_room(Room(id="room-1", visitor_token="tok-1", served_by=BOT))
    store.upsert_visitor(Visitor(token="tok-1", custom_data={"plan": "gold"}))
    return store


@pytest.fixture
def dialogflow(monkeypatch: pytest.MonkeyPatch) -> _FakeDialogflow:
    fake = _FakeDialogflow()
    monkeypatch.setattr(dialogflow_impl.requests, "post", fake)
    return fake


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch, store: SQLiteLivechatClient, dialogflow: _FakeDialogflow) -> Iterator[TestClient]:
    monkeypatch.setenv("DIALOGFLOW_BOT_USERNAME", BOT)
    monkeypatch.setenv("DIALOGFLOW_FALLBACK_RESPONSES_LIMIT", "2")
    monkeypatch.delenv("DIALOGFLOW_HANDOVER_DEPARTMENT", raising=False)
    token_provider = Mock()
    token_provider.get_access_token.return_value = AccessToken(token="bearer", expires_at=10_000_000_000.0)
    nlu = DialogflowClient(project_id="p", token_provider=token_provider)
    services = app_module.Services(store, ConversationOrchestrator(nlu, store), FallbackTracker(store))
    monkeypatch.setattr(app_module, "get_services", lambda: services)
    with TestClient(app_module.app) as test_client:
        yield test_client


@pytest.mark.circleci
def test_implementations_are_registered() -> None:
    """Importing the app binds both API factories to their implementations."""
    assert livechat_api.get_client is sqlite_impl.get_client_impl
    assert nlu_client_api.get_client is dialogflow_impl.get_client_impl


@pytest.mark.circleci
def test_fallback_turns_persist_and_escalate(
    client: TestClient,
    store: SQLiteLivechatClient,
    dialogflow: _FakeDialogflow,
) -> None:
    """Two fallback turns bootstrap once, persist the streak and then hand the room over."""
    # ACT
    first = client.post(
        "/events/message",
        json={"room_id": "room-1", "visitor_token": "tok-1", "text": "help", "served_by": BOT},
    )
    second = client.post(
        "/events/message",
        json={"room_id": "room-1", "visitor_token": "tok-1", "text": "help!", "served_by": BOT},
    )

    # ASSERT
    assert first.status_code == HTTPStatus.OK
    assert first.json()["is_fallback"] is True
    assert first.json()["handed_over"] is False
    assert second.json()["handed_over"] is True

    kinds = [next(iter(body["queryInput"])) for body in dialogflow.bodies]
    assert kinds == ["text", "event", "text", "text"]
    assert sum(body["queryInput"].get("text", {}).get("text", "").startswith(DATA_TRANSFER_BEGIN) for body in dialogflow.bodies) == 1

    texts = [message["content"]["text"] for message in store.list_messages("room-1")]
    assert texts == ["Welcome!", "I didn't get that.", "I didn't get that.", "Transferring to an online agent"]

    room = store.get_room_by_id("room-1")
    assert room is not None
    assert room.custom_fields[FIRST_MESSAGE_FLAG] is True
    assert room.custom_fields[FALLBACK_STREAK_FIELD] == 0
    assert room.served_by is None

    visitor = store.get_visitor_by_token("tok-1")
    assert visitor is not None
    assert visitor.custom_data == {"plan": "silver"}
