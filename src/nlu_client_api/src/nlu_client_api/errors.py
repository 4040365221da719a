"""Error taxonomy shared by NLU client implementations."""

from __future__ import annotations

__all__ = ["AuthError", "NLUError", "RequestError"]


class NLUError(Exception):
    """Base class for NLU provider failures."""


class AuthError(NLUError):
    """The identity provider rejected the assertion or could not be reached."""


class RequestError(NLUError):
    """A detect-intent call failed in transport or returned a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        """Create a request error, optionally carrying the HTTP status code."""
        super().__init__(message)
        self.status_code = status_code
