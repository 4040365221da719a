"""Abstract interface for the livechat platform the bridge runs inside."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Mapping

    from livechat_api.models import Room, Visitor

__all__ = ["Client", "get_client"]


class Client(ABC):
    """The contract for room storage, visitor lookup, messaging and handover."""

    @abstractmethod
    def get_room_by_id(self, room_id: str) -> Room | None:
        """Return the room with the given id, or None when it does not exist."""
        raise NotImplementedError

    @abstractmethod
    def update_room_custom_fields(self, room_id: str, patch: Mapping[str, Any]) -> None:
        """Merge ``patch`` into the room's custom fields.

        Args:
            room_id: Room to update.
            patch: Field values to set; fields not named are left untouched.

        """
        raise NotImplementedError

    @abstractmethod
    def get_visitor_by_token(self, token: str) -> Visitor | None:
        """Return the visitor registered for ``token``, or None."""
        raise NotImplementedError

    @abstractmethod
    def set_visitor_custom_field(self, token: str, key: str, value: Any, *, overwrite: bool) -> bool:  # noqa: ANN401
        """Write one visitor custom field.

        Args:
            token: Visitor token.
            key: Custom field name.
            value: New value.
            overwrite: Replace an existing value when True; keep it otherwise.

        Returns:
            True when the value was written.

        """
        raise NotImplementedError

    @abstractmethod
    def create_message(self, room_id: str, content: Mapping[str, Any], *, sender: str | None = None) -> str:
        """Post a message into a room and return its id."""
        raise NotImplementedError

    @abstractmethod
    def perform_handover(self, room_id: str, visitor_token: str, department: str | None = None) -> bool:
        """Hand the room over to a human agent queue.

        Args:
            room_id: Room to transfer.
            visitor_token: Token of the visitor in the room.
            department: Target department, or None for the default queue.

        Returns:
            True when the transfer was accepted.

        """
        raise NotImplementedError


def get_client() -> Client:
    """Return the default livechat client implementation.

    Returns:
        Client implementation.

    """
    raise NotImplementedError
