"""Public export surface for ``livechat_api``."""

from livechat_api.client import Client, get_client
from livechat_api.errors import LivechatError, VisitorNotFound
from livechat_api.models import LIVECHAT_ROOM_TYPE, Room, Visitor

__all__ = [
    "LIVECHAT_ROOM_TYPE",
    "Client",
    "LivechatError",
    "Room",
    "Visitor",
    "VisitorNotFound",
    "get_client",
]
