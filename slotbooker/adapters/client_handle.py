"""
Lazily-built, process-wide calendar client.

Lifecycle: the client (and its HTTP session and credential cache) is built
on first use, once per process, and then reused by every request. Callers
only read the handle after construction; the build itself is guarded by a
lock so concurrent first calls still produce a single client.
"""

import logging
import threading
from typing import Callable, Generic, Optional, TypeVar

import requests

from ..config import AppConfig
from ..domain.exceptions import CredentialError
from .google_authenticator import GoogleAuthenticator, load_refresh_token
from .google_calendar_client import GoogleCalendarClient

logger = logging.getLogger(__name__)

ClientT = TypeVar("ClientT")


class CalendarClientHandle(Generic[ClientT]):
    """Builds a client with ``factory`` on first ``get()`` and caches it."""

    def __init__(self, factory: Callable[[], ClientT]):
        self._factory = factory
        self._client: Optional[ClientT] = None
        self._lock = threading.Lock()

    @property
    def is_built(self) -> bool:
        return self._client is not None

    def get(self) -> ClientT:
        if self._client is None:
            with self._lock:
                if self._client is None:
                    logger.debug("Building calendar client")
                    self._client = self._factory()
        return self._client


def build_google_client(config: AppConfig) -> GoogleCalendarClient:
    """
    Build the Google Calendar client described by the configuration.

    The refresh token comes from the configuration, or from the system
    keyring when the configuration leaves it empty.

    Raises:
        CredentialError: If no Google credentials are available
    """
    google = config.google
    if google is None:
        raise CredentialError("No 'google' section in the configuration")

    refresh_token = google.refresh_token or load_refresh_token(google.client_id)
    if not refresh_token:
        raise CredentialError(
            f"No refresh token for client {google.client_id} in config or keyring"
        )

    session = requests.Session()
    authenticator = GoogleAuthenticator(
        client_id=google.client_id,
        client_secret=google.client_secret,
        refresh_token=refresh_token,
        session=session,
    )
    return GoogleCalendarClient(
        credentials=authenticator,
        calendar_id=config.calendar_id,
        session=session,
        timeout=config.request_timeout_seconds,
    )
