"""Dialogflow models implementation colocated with the Dialogflow client."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

import nlu_client_api
from nlu_client_api import models

# ---------------------------------------------------------------------------
# Dialogflow models
# ---------------------------------------------------------------------------


class DialogflowQuickReplyOption(models.QuickReplyOption):
    """Quick-reply option parsed from a custom payload."""

    def __init__(self, text: str, action_id: str | None = None, button_style: str | None = None) -> None:
        """Create a quick-reply option."""
        self._text = text
        self._action_id = action_id
        self._button_style = button_style

    @property
    def text(self) -> str:
        """Get the option label."""
        return self._text

    @property
    def action_id(self) -> str | None:
        """Get the action identifier."""
        return self._action_id

    @property
    def button_style(self) -> str | None:
        """Get the button style hint."""
        return self._button_style

    def to_dict(self) -> dict[str, Any]:
        """Return this option as a JSON-serializable dict."""
        payload: dict[str, Any] = {"text": self._text}
        if self._action_id is not None:
            payload["actionId"] = self._action_id
        if self._button_style is not None:
            payload["buttonStyle"] = self._button_style
        return payload


class DialogflowFragment(models.MessageFragment):
    """Text or quick-replies fragment of a Dialogflow reply."""

    def __init__(
        self,
        *,
        fragment_type: str,
        text: str,
        options: Sequence[models.QuickReplyOption] | None = None,
    ) -> None:
        """Create a reply fragment."""
        self._type = fragment_type
        self._text = text
        self._options: list[models.QuickReplyOption] = list(options or [])

    @property
    def type(self) -> str:
        """Get the fragment type."""
        return self._type

    @property
    def text(self) -> str:
        """Get the fragment text."""
        return self._text

    @property
    def options(self) -> list[models.QuickReplyOption]:
        """Get the quick-reply options."""
        return self._options

    def to_dict(self) -> dict[str, Any]:
        """Return this fragment as a JSON-serializable dict."""
        if self._type == models.FRAGMENT_QUICK_REPLIES:
            return {
                "type": self._type,
                "text": self._text,
                "options": [option.to_dict() for option in self._options],
            }
        return {"type": self._type, "text": self._text}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, models.MessageFragment):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    __hash__ = None  # type: ignore[assignment]


class DialogflowMessage(models.NLUMessage):
    """Normalized reply built from one or more Dialogflow responses."""

    def __init__(
        self,
        messages: Sequence[models.MessageFragment],
        *,
        is_fallback: bool = False,
        session_id: str | None = None,
    ) -> None:
        """Create a normalized reply."""
        self._messages: list[models.MessageFragment] = list(messages)
        self._is_fallback = is_fallback
        self._session_id = session_id

    @property
    def messages(self) -> list[models.MessageFragment]:
        """Get the reply fragments."""
        return self._messages

    @property
    def is_fallback(self) -> bool:
        """Get the fallback flag."""
        return self._is_fallback

    @property
    def session_id(self) -> str | None:
        """Get the session id."""
        return self._session_id

    def to_dict(self) -> dict[str, Any]:
        """Return this reply as a JSON-serializable dict."""
        return {
            "messages": [fragment.to_dict() for fragment in self._messages],
            "isFallback": self._is_fallback,
            "sessionId": self._session_id,
        }


class DialogflowEvent(models.NLUEvent):
    """Event input for a detect-intent request."""

    def __init__(self, name: str, language_code: str, parameters: dict[str, Any] | None = None) -> None:
        """Create a Dialogflow event."""
        self._name = name
        self._language_code = language_code
        self._parameters = parameters

    @property
    def name(self) -> str:
        """Get the event name."""
        return self._name

    @property
    def parameters(self) -> dict[str, Any] | None:
        """Get the event parameters."""
        return self._parameters

    @property
    def language_code(self) -> str:
        """Get the event language code."""
        return self._language_code

    def to_dict(self) -> dict[str, Any]:
        """Return this event in the ``queryInput.event`` wire shape."""
        payload: dict[str, Any] = {"name": self._name, "languageCode": self._language_code}
        if self._parameters:
            payload["parameters"] = self._parameters
        return payload


class DialogflowQueryResult(models.QueryResult):
    """Normalized reply plus the parameters Dialogflow extracted."""

    def __init__(self, message: DialogflowMessage, parameters: dict[str, Any], raw: dict[str, Any]) -> None:
        """Create a query result."""
        self._message = message
        self._parameters = parameters
        self._raw = raw

    @property
    def message(self) -> DialogflowMessage:
        """Get the normalized reply."""
        return self._message

    @property
    def parameters(self) -> dict[str, Any]:
        """Get the extracted parameters."""
        return self._parameters

    @property
    def raw(self) -> dict[str, Any]:
        """Get the parsed response body."""
        return self._raw


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def message_impl(
    messages: Sequence[models.MessageFragment],
    *,
    is_fallback: bool = False,
    session_id: str | None = None,
) -> DialogflowMessage:
    """Build a DialogflowMessage."""
    return DialogflowMessage(messages, is_fallback=is_fallback, session_id=session_id)


def fragment_impl(
    *,
    fragment_type: str,
    text: str,
    options: Sequence[models.QuickReplyOption] | None = None,
) -> DialogflowFragment:
    """Build a DialogflowFragment."""
    return DialogflowFragment(fragment_type=fragment_type, text=text, options=options)


def quick_reply_option_impl(
    text: str,
    action_id: str | None = None,
    button_style: str | None = None,
) -> DialogflowQuickReplyOption:
    """Build a DialogflowQuickReplyOption."""
    return DialogflowQuickReplyOption(text=text, action_id=action_id, button_style=button_style)


def event_impl(name: str, language_code: str, parameters: dict[str, Any] | None = None) -> DialogflowEvent:
    """Build a DialogflowEvent."""
    return DialogflowEvent(name=name, language_code=language_code, parameters=parameters)


# ---------------------------------------------------------------------------
# Factory registration
# ---------------------------------------------------------------------------


def register() -> None:
    """Register Dialogflow factory helpers with the abstract API."""
    nlu_client_api.message = message_impl
    nlu_client_api.fragment = fragment_impl
    nlu_client_api.quick_reply_option = quick_reply_option_impl
    nlu_client_api.event = event_impl
    models.message = message_impl
    models.fragment = fragment_impl
    models.quick_reply_option = quick_reply_option_impl
    models.event = event_impl
