"""Errors raised around livechat collaborators."""

from __future__ import annotations

__all__ = ["LivechatError", "VisitorNotFound"]


class LivechatError(Exception):
    """Base class for livechat platform failures."""


class VisitorNotFound(LivechatError):
    """No visitor is registered for the given token."""
