"""Errors raised while orchestrating a visitor turn."""

from __future__ import annotations

__all__ = ["DataTransferError", "OrchestrationError", "SessionNotFound"]


class OrchestrationError(Exception):
    """A visitor turn could not be completed."""


class SessionNotFound(OrchestrationError):
    """No livechat room exists for the session id."""


class DataTransferError(OrchestrationError):
    """The visitor profile could not be serialized for the one-time data transfer."""
