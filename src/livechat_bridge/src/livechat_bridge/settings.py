"""Environment-backed settings for the livechat bridge."""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()

BOT_USERNAME = "DIALOGFLOW_BOT_USERNAME"
LANGUAGE_CODE = "DIALOGFLOW_LANGUAGE_CODE"
SERVICE_UNAVAILABLE_MESSAGE = "DIALOGFLOW_SERVICE_UNAVAILABLE_MESSAGE"
DEFAULT_FALLBACK_MESSAGE = "DIALOGFLOW_DEFAULT_FALLBACK_MESSAGE"
FALLBACK_RESPONSES_LIMIT = "DIALOGFLOW_FALLBACK_RESPONSES_LIMIT"
HANDOVER_DEPARTMENT = "DIALOGFLOW_HANDOVER_DEPARTMENT"
HANDOVER_MESSAGE = "DIALOGFLOW_HANDOVER_MESSAGE"

DEFAULTS: dict[str, str] = {
    LANGUAGE_CODE: "en",
    SERVICE_UNAVAILABLE_MESSAGE: "Sorry, I'm having trouble answering your question.",
    DEFAULT_FALLBACK_MESSAGE: "Sorry, I'm not able to understand your question.",
    FALLBACK_RESPONSES_LIMIT: "0",
    HANDOVER_MESSAGE: "Transferring to an online agent",
}


def get_setting(key: str, default: str | None = None) -> str | None:
    """Return the configured value for ``key``, falling back to the built-in default."""
    value = os.environ.get(key)
    if value is not None and value.strip():
        return value.strip()
    if default is not None:
        return default
    return DEFAULTS.get(key)


def get_int_setting(key: str, default: int = 0) -> int:
    """Return ``key`` as an int; unparsable values fall back to ``default``."""
    raw = get_setting(key)
    try:
        return int(raw) if raw is not None else default
    except ValueError:
        return default
