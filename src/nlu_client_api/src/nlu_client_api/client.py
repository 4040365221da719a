"""Abstract interfaces for NLU detect-intent APIs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from nlu_client_api.models import NLUEvent, NLUMessage, QueryResult, RequestType

__all__ = ["Client", "get_client"]


class Client(ABC):
    """The contract for NLU agents reachable through detect-intent calls."""

    @abstractmethod
    def detect_intent(
        self,
        session_id: str,
        request: NLUEvent | str,
        request_type: RequestType,
    ) -> QueryResult:
        """Send one detect-intent request and return the normalized result.

        Args:
            session_id: Provider session the request belongs to.
            request: Free text for MESSAGE requests, an event for EVENT requests.
            request_type: Which of the two request shapes to build.

        Returns:
            QueryResult with the normalized reply and the provider parameters.

        Raises:
            AuthError: No bearer token could be obtained.
            RequestError: The provider call failed or returned a non-2xx status.

        """
        raise NotImplementedError

    def send(
        self,
        session_id: str,
        request: NLUEvent | str,
        request_type: RequestType,
    ) -> NLUMessage:
        """Send one detect-intent request and return only the normalized reply."""
        return self.detect_intent(session_id, request, request_type).message


def get_client() -> Client:
    """Return the default NLU client implementation.

    Returns:
        Client implementation.

    """
    raise NotImplementedError
