"""Dialogflow Client Implementation.

Concrete nlu_client_api.Client backed by the Dialogflow ES v2 detect-intent REST
API. Resolves service-account credentials from environment variables and converts
Dialogflow responses into the provider-agnostic nlu_client_api models.
"""

from __future__ import annotations

import logging
import os
from typing import Any

import requests

import nlu_client_api
from dialogflow_client_impl.auth import DEFAULT_TIMEOUT_SECONDS, TokenProvider
from dialogflow_client_impl.models_impl import (
    DialogflowFragment,
    DialogflowMessage,
    DialogflowQueryResult,
    DialogflowQuickReplyOption,
)
from nlu_client_api import Client, NLUEvent, RequestError, RequestType
from nlu_client_api.models import FRAGMENT_QUICK_REPLIES, FRAGMENT_TEXT

DETECT_INTENT_URL = "https://dialogflow.googleapis.com/v2/projects/{project_id}/agent/sessions/{session_id}:detectIntent"
DEFAULT_LANGUAGE_CODE = "en"

logger = logging.getLogger("dialogflow_client_impl")

# ---------------------------------------------------------------------------
# Client implementation
# ---------------------------------------------------------------------------


class DialogflowClient(Client):
    """Concrete nlu_client_api.Client that forwards visitor turns to a Dialogflow agent.

    Authentication:
        - DIALOGFLOW_PROJECT_ID (required)
        - DIALOGFLOW_CLIENT_EMAIL (required)
        - DIALOGFLOW_PRIVATE_KEY (required)
        - DIALOGFLOW_LANGUAGE_CODE (optional, defaults to en)
        - DIALOGFLOW_TIMEOUT_SECONDS (optional, defaults to 30)

    Attributes:
        _project_id: Dialogflow agent project.
        _token_provider: Source of bearer tokens for every call.
        _language_code: Language code attached to text queries.
        _timeout_seconds: HTTP timeout for detect-intent calls.

    """

    def __init__(
        self,
        project_id: str | None = None,
        client_email: str | None = None,
        private_key: str | None = None,
        *,
        token_provider: TokenProvider | None = None,
    ) -> None:
        """Initialize the Dialogflow client, resolving credentials from the environment."""
        self._project_id = project_id or os.environ.get("DIALOGFLOW_PROJECT_ID")
        if not self._project_id:
            raise RuntimeError("DIALOGFLOW_PROJECT_ID is required.")  # noqa: TRY003, EM101
        self._language_code = os.environ.get("DIALOGFLOW_LANGUAGE_CODE", DEFAULT_LANGUAGE_CODE)
        self._timeout_seconds = float(os.environ.get("DIALOGFLOW_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS))
        if token_provider is None:
            email = client_email or os.environ.get("DIALOGFLOW_CLIENT_EMAIL")
            key = private_key or os.environ.get("DIALOGFLOW_PRIVATE_KEY")
            if not email or not key:
                raise RuntimeError("DIALOGFLOW_CLIENT_EMAIL and DIALOGFLOW_PRIVATE_KEY are required.")  # noqa: TRY003, EM101
            token_provider = TokenProvider(email, key, timeout_seconds=self._timeout_seconds)
        self._token_provider = token_provider

    def detect_intent(
        self,
        session_id: str,
        request: NLUEvent | str,
        request_type: RequestType,
    ) -> DialogflowQueryResult:
        """Invoke detect-intent for one session and normalize the reply.

        Args:
            session_id: Dialogflow session id (the livechat room id).
            request: Visitor text for MESSAGE requests, an event for EVENT requests.
            request_type: Which ``queryInput`` shape to send.

        Returns:
            DialogflowQueryResult with fragments, fallback flag and parameters.

        """
        access_token = self._token_provider.get_access_token()
        url = DETECT_INTENT_URL.format(project_id=self._project_id, session_id=session_id)
        body = {"queryInput": build_query_input(request, request_type, self._language_code)}
        try:
            response = requests.post(
                url,
                json=body,
                headers={
                    "Content-Type": "application/json",
                    "Accept": "application/json",
                    "Authorization": f"Bearer {access_token.token}",
                },
                timeout=self._timeout_seconds,
            )
            response.raise_for_status()
            payload = response.json()
        except requests.HTTPError as exc:
            status = getattr(exc.response, "status_code", None)
            error_message = f"Dialogflow detect-intent failed with status {status}."
            raise RequestError(error_message, status_code=status) from exc
        except requests.RequestException as exc:
            error_message = "Dialogflow detect-intent request failed."
            raise RequestError(error_message) from exc
        except ValueError as exc:
            error_message = "Dialogflow returned a non-JSON response."
            raise RequestError(error_message) from exc

        logger.debug("Dialogflow response for %s: %s", session_id, payload)
        return to_query_result(payload, session_id)


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def get_client_impl() -> DialogflowClient:
    """Return a new DialogflowClient using env defaults."""
    return DialogflowClient()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def build_query_input(request: NLUEvent | str, request_type: RequestType, language_code: str) -> dict[str, Any]:
    """Build the ``queryInput`` object for an EVENT or MESSAGE request."""
    if request_type is RequestType.EVENT:
        if not isinstance(request, NLUEvent):
            msg = "EVENT requests require an NLUEvent."
            raise TypeError(msg)
        return {"event": request.to_dict()}
    if not isinstance(request, str):
        msg = "MESSAGE requests require text."
        raise TypeError(msg)
    return {"text": {"languageCode": language_code, "text": request}}


def to_query_result(payload: dict[str, Any], session_id: str) -> DialogflowQueryResult:
    """Convert a detect-intent response body into a DialogflowQueryResult."""
    query_result = payload.get("queryResult") or {}
    fragments = _parse_fragments(query_result)
    intent = query_result.get("intent") or {}
    session = payload.get("session")
    message = DialogflowMessage(
        fragments,
        is_fallback=bool(intent.get("isFallback", False)),
        session_id=session.rsplit("/", 1)[-1] if isinstance(session, str) and session else session_id,
    )
    parameters = query_result.get("parameters") or {}
    return DialogflowQueryResult(message=message, parameters=dict(parameters), raw=payload)


def _parse_fragments(query_result: dict[str, Any]) -> list[DialogflowFragment]:
    """Collect text and quick-reply fragments from ``fulfillmentMessages``."""
    fragments: list[DialogflowFragment] = []
    for entry in query_result.get("fulfillmentMessages") or []:
        text_block = entry.get("text")
        if text_block:
            fragments.extend(
                DialogflowFragment(fragment_type=FRAGMENT_TEXT, text=text)
                for text in text_block.get("text") or []
                if text
            )
            continue
        quick_replies = (entry.get("payload") or {}).get("quickReplies")
        if quick_replies:
            fragments.append(_parse_quick_replies(quick_replies))
    if not fragments and query_result.get("fulfillmentText"):
        fragments.append(DialogflowFragment(fragment_type=FRAGMENT_TEXT, text=query_result["fulfillmentText"]))
    return fragments


def _parse_quick_replies(quick_replies: dict[str, Any]) -> DialogflowFragment:
    """Convert a ``quickReplies`` custom payload into a fragment."""
    options = [
        DialogflowQuickReplyOption(
            text=option["text"],
            action_id=option.get("actionId"),
            button_style=option.get("buttonStyle"),
        )
        for option in quick_replies.get("options") or []
        if option.get("text")
    ]
    return DialogflowFragment(
        fragment_type=FRAGMENT_QUICK_REPLIES,
        text=quick_replies.get("text", ""),
        options=options,
    )


# ---------------------------------------------------------------------------
# Factory registration
# ---------------------------------------------------------------------------


def register() -> None:
    """Bind the Dialogflow client factory into nlu_client_api.get_client."""
    nlu_client_api.get_client = get_client_impl
