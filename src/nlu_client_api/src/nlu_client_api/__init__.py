"""Public export surface for ``nlu_client_api``."""

from nlu_client_api.client import Client, get_client
from nlu_client_api.errors import AuthError, NLUError, RequestError
from nlu_client_api.models import (
    FRAGMENT_QUICK_REPLIES,
    FRAGMENT_TEXT,
    MessageFragment,
    NLUEvent,
    NLUMessage,
    QueryResult,
    QuickReplyOption,
    RequestType,
    event,
    fragment,
    message,
    quick_reply_option,
)

__all__ = [
    "FRAGMENT_QUICK_REPLIES",
    "FRAGMENT_TEXT",
    "AuthError",
    "Client",
    "MessageFragment",
    "NLUError",
    "NLUEvent",
    "NLUMessage",
    "QueryResult",
    "QuickReplyOption",
    "RequestError",
    "RequestType",
    "event",
    "fragment",
    "get_client",
    "message",
    "quick_reply_option",
]
