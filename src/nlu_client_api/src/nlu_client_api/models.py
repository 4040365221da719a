"""Abstract schemas for NLU detect-intent replies and events."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence

__all__ = [
    "FRAGMENT_QUICK_REPLIES",
    "FRAGMENT_TEXT",
    "MessageFragment",
    "NLUEvent",
    "NLUMessage",
    "QueryResult",
    "QuickReplyOption",
    "RequestType",
    "event",
    "fragment",
    "message",
    "quick_reply_option",
]

FRAGMENT_TEXT = "text"
FRAGMENT_QUICK_REPLIES = "quick_replies"


class RequestType(Enum):
    """Kind of detect-intent request sent to the provider."""

    MESSAGE = "message"
    EVENT = "event"


class QuickReplyOption(ABC):
    """A single selectable option inside a quick-replies fragment."""

    @property
    @abstractmethod
    def text(self) -> str:
        """Return the option label."""
        raise NotImplementedError

    @property
    @abstractmethod
    def action_id(self) -> str | None:
        """Return the action identifier, if any."""
        raise NotImplementedError

    @property
    @abstractmethod
    def button_style(self) -> str | None:
        """Return the button style hint, if any."""
        raise NotImplementedError

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation of the option."""
        raise NotImplementedError


class MessageFragment(ABC):
    """One displayable piece of a reply: plain text or a quick-replies group."""

    @property
    @abstractmethod
    def type(self) -> str:
        """Return the fragment type (``text`` or ``quick_replies``)."""
        raise NotImplementedError

    @property
    @abstractmethod
    def text(self) -> str:
        """Return the fragment text (the prompt text for quick replies)."""
        raise NotImplementedError

    @property
    @abstractmethod
    def options(self) -> Sequence[QuickReplyOption]:
        """Return quick-reply options; empty for text fragments."""
        raise NotImplementedError

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation of the fragment."""
        raise NotImplementedError


class NLUMessage(ABC):
    """Provider-agnostic reply returned to callers."""

    @property
    @abstractmethod
    def messages(self) -> Sequence[MessageFragment]:
        """Return the ordered reply fragments."""
        raise NotImplementedError

    @property
    @abstractmethod
    def is_fallback(self) -> bool:
        """Return True when no intent matched the request."""
        raise NotImplementedError

    @property
    @abstractmethod
    def session_id(self) -> str | None:
        """Return the provider session id, if known."""
        raise NotImplementedError

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable representation of the message."""
        raise NotImplementedError


class NLUEvent(ABC):
    """A provider-side event that can be triggered instead of free text."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the event name."""
        raise NotImplementedError

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any] | None:
        """Return the event parameters, if any."""
        raise NotImplementedError

    @property
    @abstractmethod
    def language_code(self) -> str:
        """Return the event language code."""
        raise NotImplementedError

    @abstractmethod
    def to_dict(self) -> dict[str, Any]:
        """Return the event in the provider's wire shape."""
        raise NotImplementedError


class QueryResult(ABC):
    """A normalized reply together with the provider signals behind it.

    The parameters and raw body are meant for background processing only and
    are never part of the visitor-facing ``NLUMessage``.
    """

    @property
    @abstractmethod
    def message(self) -> NLUMessage:
        """Return the normalized reply."""
        raise NotImplementedError

    @property
    @abstractmethod
    def parameters(self) -> dict[str, Any]:
        """Return the parameters extracted by the provider."""
        raise NotImplementedError

    @property
    @abstractmethod
    def raw(self) -> dict[str, Any]:
        """Return the parsed response body."""
        raise NotImplementedError


def message(
    messages: Sequence[MessageFragment],
    *,
    is_fallback: bool = False,
    session_id: str | None = None,
) -> NLUMessage:
    """Construct a concrete NLUMessage instance.

    Args:
        messages: Ordered reply fragments.
        is_fallback: Whether the reply is a fallback reply.
        session_id: Provider session id, if known.

    Returns:
        Concrete NLUMessage instance bound by the active implementation.

    """
    raise NotImplementedError


def fragment(
    *,
    fragment_type: str,
    text: str,
    options: Sequence[QuickReplyOption] | None = None,
) -> MessageFragment:
    """Construct a concrete MessageFragment instance.

    Args:
        fragment_type: ``text`` or ``quick_replies``.
        text: Fragment text.
        options: Quick-reply options for ``quick_replies`` fragments.

    Returns:
        Concrete MessageFragment instance bound by the active implementation.

    """
    raise NotImplementedError


def quick_reply_option(
    text: str,
    action_id: str | None = None,
    button_style: str | None = None,
) -> QuickReplyOption:
    """Construct a concrete QuickReplyOption instance."""
    raise NotImplementedError


def event(
    name: str,
    language_code: str,
    parameters: dict[str, Any] | None = None,
) -> NLUEvent:
    """Construct a concrete NLUEvent instance.

    Args:
        name: Provider event name (e.g. ``Welcome``).
        language_code: Language code sent with the event.
        parameters: Optional event parameters.

    Returns:
        Concrete NLUEvent instance bound by the active implementation.

    """
    raise NotImplementedError
