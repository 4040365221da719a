"""Service-account bearer tokens for Dialogflow.

Builds an RS256-signed JWT assertion from service-account credentials and
exchanges it for an OAuth access token at Google's token endpoint. The most
recent token is cached on the TokenProvider and reused until shortly before it
expires, so steady-state detect-intent calls do not touch the token endpoint.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass

import requests
from google.auth import crypt, jwt

from nlu_client_api import AuthError

TOKEN_URI = "https://oauth2.googleapis.com/token"
SCOPES = "https://www.googleapis.com/auth/cloud-platform https://www.googleapis.com/auth/dialogflow"
GRANT_TYPE = "urn:ietf:params:oauth:grant-type:jwt-bearer"
ASSERTION_LIFETIME_SECONDS = 3600
EXPIRY_MARGIN_SECONDS = 60
DEFAULT_TIMEOUT_SECONDS = 30.0

logger = logging.getLogger("dialogflow_client_impl.auth")


# ---------------------------------------------------------------------------
# Token cache
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccessToken:
    """Bearer token and its absolute expiry (epoch seconds)."""

    token: str
    expires_at: float

    def is_usable(self, now: float, margin: float = EXPIRY_MARGIN_SECONDS) -> bool:
        """Return True while the token stays valid for at least ``margin`` seconds."""
        return now + margin < self.expires_at


class TokenCache:
    """Single slot holding the most recent AccessToken."""

    def __init__(self) -> None:
        """Create an empty cache."""
        self._token: AccessToken | None = None
        self._lock = threading.Lock()

    def get(self, now: float, margin: float = EXPIRY_MARGIN_SECONDS) -> AccessToken | None:
        """Return the cached token if it is still usable at ``now``."""
        with self._lock:
            token = self._token
        if token is not None and token.is_usable(now, margin):
            return token
        return None

    def set(self, token: AccessToken) -> None:
        """Replace the cached token."""
        with self._lock:
            self._token = token

    def clear(self) -> None:
        """Drop the cached token."""
        with self._lock:
            self._token = None


# ---------------------------------------------------------------------------
# Assertion signing
# ---------------------------------------------------------------------------


def build_assertion(
    client_email: str,
    private_key: str,
    now: float,
    *,
    token_uri: str = TOKEN_URI,
    scopes: str = SCOPES,
) -> str:
    """Build a signed JWT assertion for the jwt-bearer grant.

    Args:
        client_email: Service-account id, used as the issuer.
        private_key: PEM-encoded RSA private key of the service account.
        now: Issue time in epoch seconds.
        token_uri: Token endpoint, used as the audience.
        scopes: Space-separated OAuth scopes.

    Returns:
        ``base64url(header).base64url(claims).base64url(signature)``

    Raises:
        AuthError: The private key cannot be loaded.

    """
    issued_at = int(now)
    claims: dict[str, object] = {
        "iss": client_email,
        "scope": scopes,
        "aud": token_uri,
        "iat": issued_at,
        "exp": issued_at + ASSERTION_LIFETIME_SECONDS,
    }
    try:
        signer = crypt.RSASigner.from_string(_normalize_private_key(private_key))
    except (ValueError, TypeError, IndexError) as exc:
        error_message = "Invalid service account private key."
        raise AuthError(error_message) from exc
    return jwt.encode(signer, claims).decode("ascii")


def _normalize_private_key(private_key: str) -> str:
    """Unescape literal ``\\n`` sequences, as found in env-provided PEM keys."""
    return private_key.replace("\\n", "\n")


# ---------------------------------------------------------------------------
# Token provider
# ---------------------------------------------------------------------------


class TokenProvider:
    """Exchange signed assertions for bearer tokens, caching the latest one.

    Attributes:
        _cache: Slot holding the current token; only this provider writes to it.
        _refresh_lock: Serializes refreshes so concurrent callers share one exchange.

    """

    def __init__(
        self,
        client_email: str,
        private_key: str,
        *,
        token_uri: str = TOKEN_URI,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        cache: TokenCache | None = None,
    ) -> None:
        """Create a provider for the given service account."""
        self._client_email = client_email
        self._private_key = private_key
        self._token_uri = token_uri
        self._timeout_seconds = timeout_seconds
        self._cache = cache or TokenCache()
        self._refresh_lock = threading.Lock()

    @property
    def cache(self) -> TokenCache:
        """Return the token cache owned by this provider."""
        return self._cache

    def get_access_token(self) -> AccessToken:
        """Return a usable bearer token, refreshing it when needed.

        Raises:
            AuthError: The assertion was rejected or the endpoint is unreachable.

        """
        token = self._cache.get(time.time())
        if token is not None:
            return token
        with self._refresh_lock:
            # Another caller may have refreshed while we waited for the lock.
            now = time.time()
            token = self._cache.get(now)
            if token is not None:
                return token
            assertion = build_assertion(
                self._client_email,
                self._private_key,
                now,
                token_uri=self._token_uri,
            )
            token = self._exchange(assertion, now)
            self._cache.set(token)
        logger.info("Refreshed Dialogflow access token for %s", self._client_email)
        return token

    def _exchange(self, assertion: str, now: float) -> AccessToken:
        """POST the assertion to the token endpoint and parse the access token."""
        try:
            response = requests.post(
                self._token_uri,
                data={"grant_type": GRANT_TYPE, "assertion": assertion},
                headers={
                    "Content-Type": "application/x-www-form-urlencoded",
                    "Accept": "application/json",
                },
                timeout=self._timeout_seconds,
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            status = getattr(exc.response, "status_code", None)
            error_message = f"Token endpoint rejected the assertion (status {status})."
            raise AuthError(error_message) from exc
        except requests.RequestException as exc:
            error_message = "Token endpoint is unreachable."
            raise AuthError(error_message) from exc

        try:
            payload = response.json()
        except ValueError as exc:
            error_message = "Token endpoint returned invalid JSON."
            raise AuthError(error_message) from exc
        access_token = payload.get("access_token") if isinstance(payload, dict) else None
        if not access_token:
            error_message = "Token endpoint returned no access token."
            raise AuthError(error_message)
        try:
            expires_in = float(payload.get("expires_in") or ASSERTION_LIFETIME_SECONDS)
        except (TypeError, ValueError) as exc:
            error_message = "Token endpoint returned an invalid expires_in."
            raise AuthError(error_message) from exc
        return AccessToken(token=str(access_token), expires_at=now + expires_in)
