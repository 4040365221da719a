"""Tests for the nlu_client_api abstractions.

These tests document how consumers should interact with the contract surface,
using mocks to exercise the expected signatures and data shapes.
"""

from typing import cast
from unittest.mock import Mock

import pytest

import nlu_client_api
from nlu_client_api import (
    AuthError,
    Client,
    MessageFragment,
    NLUError,
    NLUMessage,
    QueryResult,
    RequestError,
    RequestType,
)


def _make_fragment(text: str) -> MessageFragment:
    """Create a mock text fragment consistent with the contract."""
    fragment = Mock(spec=MessageFragment)
    fragment.type = nlu_client_api.FRAGMENT_TEXT
    fragment.text = text
    fragment.options = []
    fragment.to_dict.return_value = {"type": "text", "text": text}
    return cast("MessageFragment", fragment)


def _make_message(*texts: str, is_fallback: bool = False) -> NLUMessage:
    """Create a mock NLUMessage holding text fragments."""
    message = Mock(spec=NLUMessage)
    message.messages = [_make_fragment(text) for text in texts]
    message.is_fallback = is_fallback
    message.session_id = "room-1"
    return cast("NLUMessage", message)


class _StubClient(Client):
    """Concrete client returning a canned result, used to exercise ``send``."""

    def __init__(self, result: QueryResult) -> None:
        self.result = result
        self.calls: list[tuple[str, object, RequestType]] = []

    def detect_intent(self, session_id: str, request: object, request_type: RequestType) -> QueryResult:  # type: ignore[override]
        self.calls.append((session_id, request, request_type))
        return self.result


def test_detect_intent_contract() -> None:
    """Verifies and documents the contract for Client.detect_intent."""
    # ARRANGE
    mock_client = Mock(spec=Client)
    result = Mock(spec=QueryResult)
    result.message = _make_message("Hello there")
    result.parameters = {"city": "Paris"}
    mock_client.detect_intent.return_value = result

    # ACT
    outcome = mock_client.detect_intent("room-1", "hi", RequestType.MESSAGE)

    # ASSERT
    mock_client.detect_intent.assert_called_once_with("room-1", "hi", RequestType.MESSAGE)
    assert outcome.message.messages[0].text == "Hello there"
    assert outcome.parameters == {"city": "Paris"}


def test_send_returns_only_the_normalized_message() -> None:
    """Client.send hides parameters and raw payload behind the normalized message."""
    # ARRANGE
    result = Mock(spec=QueryResult)
    result.message = _make_message("Hi", is_fallback=True)
    client = _StubClient(result)

    # ACT
    message = client.send("room-1", "hello", RequestType.MESSAGE)

    # ASSERT
    assert message is result.message
    assert message.is_fallback is True
    assert client.calls == [("room-1", "hello", RequestType.MESSAGE)]


def test_request_type_values() -> None:
    """Request kinds map to the two provider input shapes."""
    assert RequestType.MESSAGE.value == "message"
    assert RequestType.EVENT.value == "event"


def test_error_taxonomy() -> None:
    """Auth and request failures share the NLUError base; request errors keep the status."""
    error = RequestError("boom", status_code=503)
    assert isinstance(error, NLUError)
    assert isinstance(AuthError("denied"), NLUError)
    assert error.status_code == 503
    assert RequestError("boom").status_code is None


def test_get_client_factory_contract(monkeypatch: pytest.MonkeyPatch) -> None:
    """Verifies the nlu_client_api.get_client factory can be rebound by implementations."""
    # ARRANGE
    mock_client = Mock(spec=Client)
    mock_factory = Mock(return_value=mock_client)
    monkeypatch.setattr(nlu_client_api, "get_client", mock_factory, raising=False)

    # ACT
    result = nlu_client_api.get_client()

    # ASSERT
    mock_factory.assert_called_once_with()
    assert result is mock_client


def test_client_cannot_instantiate_directly() -> None:
    """Client remains abstract until an implementation provides detect_intent."""
    with pytest.raises(TypeError):
        Client()  # type: ignore[abstract]
