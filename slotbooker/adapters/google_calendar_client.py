"""
Google Calendar API client for reading busy data and inserting bookings.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import pendulum
import requests
from pendulum import DateTime

from ..domain.exceptions import CalendarAPIError, CredentialError
from ..domain.models import BusyWindow
from .google_authenticator import CredentialProvider

logger = logging.getLogger(__name__)

# Only these 403 reasons are credential failures; any other 403 is an API error.
AUTH_FAILURE_REASONS = frozenset({"authError", "insufficientPermissions"})


def to_rfc3339(instant: DateTime) -> str:
    """Format an instant as the RFC 3339 UTC string the API expects."""
    return instant.in_timezone("UTC").to_iso8601_string()


class GoogleCalendarClient:
    """
    Client for one Google Calendar.

    Uses the events and freeBusy endpoints of the v3 REST API. Every call
    asks the credential provider for a bearer token; nothing is retried.
    """

    API_ENDPOINT = "https://www.googleapis.com/calendar/v3"
    MAX_RESULTS = 250

    def __init__(
        self,
        credentials: CredentialProvider,
        calendar_id: str,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
    ):
        """
        Initialize the calendar client.

        Args:
            credentials: Source of bearer tokens
            calendar_id: Calendar to read and write (e.g. "primary")
            session: Optional requests session, reused across calls
            timeout: Per-request timeout in seconds
        """
        self.calendar_id = calendar_id
        self._credentials = credentials
        self._session = session or requests.Session()
        self._timeout = timeout

    @property
    def credentials(self) -> CredentialProvider:
        return self._credentials

    @property
    def _events_url(self) -> str:
        return f"{self.API_ENDPOINT}/calendars/{quote(self.calendar_id, safe='')}/events"

    def list_events(
        self,
        time_min: DateTime,
        time_max: DateTime,
        shared_property: str,
    ) -> List[Dict[str, Any]]:
        """
        List single events in a window, filtered by a shared extended property.

        Args:
            time_min: Window start (inclusive)
            time_max: Window end (exclusive)
            shared_property: Filter of the form ``key=value``

        Returns:
            Raw event resources from all result pages

        Raises:
            CalendarAPIError: If the API call fails
            CredentialError: If the token is refused
        """
        params: Dict[str, Any] = {
            "timeMin": to_rfc3339(time_min),
            "timeMax": to_rfc3339(time_max),
            "singleEvents": "true",
            "maxResults": self.MAX_RESULTS,
            "sharedExtendedProperty": shared_property,
        }

        events: List[Dict[str, Any]] = []
        while True:
            data = self._request("GET", self._events_url, params=params)
            events.extend(data.get("items", []))

            page_token = data.get("nextPageToken")
            if not page_token:
                break
            params = {**params, "pageToken": page_token}

        logger.debug("Listed %d event(s) matching %s", len(events), shared_property)
        return events

    def query_free_busy(
        self,
        time_min: DateTime,
        time_max: DateTime,
        timezone: str,
    ) -> List[BusyWindow]:
        """
        Get busy windows for the calendar.

        Response format:
        {
            "calendars": {
                "<calendar id>": {
                    "busy": [{"start": "...Z", "end": "...Z"}],
                    "errors": [{"domain": "global", "reason": "notFound"}]
                }
            }
        }

        Raises:
            CalendarAPIError: If the API call fails or reports a calendar error
            CredentialError: If the token is refused
        """
        payload = {
            "timeMin": to_rfc3339(time_min),
            "timeMax": to_rfc3339(time_max),
            "timeZone": timezone,
            "items": [{"id": self.calendar_id}],
        }
        data = self._request("POST", f"{self.API_ENDPOINT}/freeBusy", json=payload)

        calendar = (data.get("calendars") or {}).get(self.calendar_id)
        if calendar is None:
            raise CalendarAPIError(
                f"Free/busy response has no entry for calendar {self.calendar_id}",
                detail=data,
            )
        if calendar.get("errors"):
            raise CalendarAPIError(
                f"Free/busy failed for calendar {self.calendar_id}",
                detail=calendar["errors"],
            )

        return self._parse_busy(calendar.get("busy", []))

    def insert_event(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Insert an event and notify attendees.

        Raises:
            CalendarAPIError: If the API call fails
            CredentialError: If the token is refused
        """
        return self._request("POST", self._events_url, params={"sendUpdates": "all"}, json=body)

    def _parse_busy(self, items: List[Dict[str, str]]) -> List[BusyWindow]:
        windows: List[BusyWindow] = []
        for item in items:
            try:
                start = pendulum.parse(item["start"]).in_timezone("UTC")
                end = pendulum.parse(item["end"]).in_timezone("UTC")
                windows.append(BusyWindow(start=start, end=end))
            except (KeyError, ValueError, TypeError) as exc:
                logger.warning("Dropping unusable busy window %s: %s", item, exc)
        return windows

    def _request(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        token = self._credentials.get_access_token()
        headers = {"Authorization": f"Bearer {token}"}

        logger.debug("%s %s", method, url)
        try:
            response = self._session.request(method, url, headers=headers, timeout=self._timeout, **kwargs)
        except requests.exceptions.Timeout as exc:
            raise CalendarAPIError(f"Google Calendar timed out: {exc}") from exc
        except requests.exceptions.RequestException as exc:
            raise CalendarAPIError(f"Google Calendar request failed: {exc}") from exc

        if self._is_auth_failure(response):
            raise CredentialError(
                f"Google Calendar refused the credentials ({response.status_code})"
            )

        if not response.ok:
            raise CalendarAPIError(
                f"Google Calendar returned {response.status_code}",
                status_code=response.status_code,
                detail=self._error_detail(response),
            )

        try:
            return response.json()
        except ValueError as exc:
            raise CalendarAPIError("Google Calendar returned invalid JSON", status_code=response.status_code) from exc

    @classmethod
    def _is_auth_failure(cls, response: requests.Response) -> bool:
        if response.status_code == 401:
            return True
        if response.status_code != 403:
            return False
        detail = cls._error_detail(response)
        errors = detail.get("errors", []) if isinstance(detail, dict) else []
        return any(e.get("reason") in AUTH_FAILURE_REASONS for e in errors if isinstance(e, dict))

    @staticmethod
    def _error_detail(response: requests.Response) -> Any:
        try:
            payload = response.json()
        except ValueError:
            return response.text[:500]
        if isinstance(payload, dict) and "error" in payload:
            return payload["error"]
        return payload
