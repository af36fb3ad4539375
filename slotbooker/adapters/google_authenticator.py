"""
Google OAuth credentials for the calendar client (refresh-token grant).

Obtaining the refresh token in the first place happens outside this
application; it is read from the configuration or the system keyring.
"""

from __future__ import annotations

import logging
import threading
from typing import Optional, Protocol

import keyring
import pendulum
import requests
from keyring.errors import KeyringError

from ..domain.exceptions import CredentialError

logger = logging.getLogger(__name__)


KEYRING_SERVICE_NAME = "slotbooker"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"

# Refresh this long before the provider's stated expiry.
EXPIRY_MARGIN_SECONDS = 60


class CredentialProvider(Protocol):
    """Supplies an opaque bearer token per calendar call."""

    def get_access_token(self, force_refresh: bool = False) -> str:
        """Return a valid access token."""


class StaticTokenProvider:
    """Returns a fixed token. Used in mock mode and tests."""

    def __init__(self, token: str = "mock_token"):
        self._token = token

    def get_access_token(self, force_refresh: bool = False) -> str:
        return self._token


def load_refresh_token(client_id: str) -> Optional[str]:
    """Read a stored refresh token from the system keyring."""
    try:
        return keyring.get_password(KEYRING_SERVICE_NAME, client_id)
    except KeyringError as exc:  # pragma: no cover - environment dependent
        logger.warning("Could not read refresh token from keyring: %s", exc)
        return None


def store_refresh_token(client_id: str, refresh_token: str) -> None:
    """Save a refresh token in the system keyring."""
    try:
        keyring.set_password(KEYRING_SERVICE_NAME, client_id, refresh_token)
    except KeyringError as exc:  # pragma: no cover - environment dependent
        raise CredentialError(f"Could not store refresh token in keyring: {exc}") from exc


def delete_refresh_token(client_id: str) -> None:
    """Remove a stored refresh token, if any."""
    try:
        keyring.delete_password(KEYRING_SERVICE_NAME, client_id)
    except KeyringError as exc:  # pragma: no cover - environment dependent
        logger.warning("Could not remove refresh token from keyring: %s", exc)


class GoogleAuthenticator:
    """
    Exchanges a refresh token for short-lived access tokens.

    The access token is cached in memory until shortly before it expires.
    A lock serialises refreshes so concurrent callers share one exchange.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        refresh_token: str,
        session: Optional[requests.Session] = None,
        timeout: float = 15,
    ):
        """
        Initialize the authenticator.

        Args:
            client_id: OAuth client ID
            client_secret: OAuth client secret
            refresh_token: Long-lived refresh token
            session: Optional requests session (shared with the calendar client)
            timeout: Token endpoint timeout in seconds
        """
        if not refresh_token:
            raise CredentialError("No refresh token configured")

        self.client_id = client_id
        self._client_secret = client_secret
        self._refresh_token = refresh_token
        self._session = session or requests.Session()
        self._timeout = timeout

        self._access_token: Optional[str] = None
        self._expires_at: Optional[pendulum.DateTime] = None
        self._lock = threading.Lock()

    def get_access_token(self, force_refresh: bool = False) -> str:
        """
        Get a valid access token, using the cache or requesting a new one.

        Raises:
            CredentialError: If the token endpoint refuses the refresh token
        """
        with self._lock:
            if force_refresh or not self._token_is_fresh():
                self._refresh()
            return self._access_token

    def _token_is_fresh(self) -> bool:
        if self._access_token is None or self._expires_at is None:
            return False
        return pendulum.now("UTC") < self._expires_at

    def _refresh(self) -> None:
        logger.debug("Refreshing Google access token")
        try:
            response = self._session.post(
                GOOGLE_TOKEN_URL,
                data={
                    "client_id": self.client_id,
                    "client_secret": self._client_secret,
                    "refresh_token": self._refresh_token,
                    "grant_type": "refresh_token",
                },
                timeout=self._timeout,
            )
        except requests.exceptions.RequestException as exc:
            raise CredentialError(f"Token refresh request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.status_code != 200 or not payload.get("access_token"):
            error = payload.get("error_description") or payload.get("error") or response.status_code
            raise CredentialError(f"Token refresh failed: {error}")

        expires_in = payload.get("expires_in")
        if not isinstance(expires_in, (int, float)) or expires_in <= 0:
            expires_in = 3600

        self._access_token = payload["access_token"]
        self._expires_at = pendulum.now("UTC").add(
            seconds=max(int(expires_in) - EXPIRY_MARGIN_SECONDS, 30)
        )
