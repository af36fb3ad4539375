"""
Tests for the Google Calendar adapter, using a stub HTTP session.
"""

import pendulum
import pytest
import requests

from slotbooker.adapters.google_authenticator import GoogleAuthenticator, StaticTokenProvider
from slotbooker.adapters.google_calendar_client import GoogleCalendarClient
from slotbooker.domain.exceptions import CalendarAPIError, CredentialError


class StubResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON")
        return self._payload


class StubSession:
    """Replays queued responses and records every request."""

    def __init__(self, *responses):
        self._responses = list(responses)
        self.requests = []

    def _next(self):
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def request(self, method, url, headers=None, timeout=None, **kwargs):
        self.requests.append({"method": method, "url": url, "headers": headers, **kwargs})
        return self._next()

    def post(self, url, data=None, timeout=None):
        self.requests.append({"method": "POST", "url": url, "data": data})
        return self._next()


DAY_START = pendulum.datetime(2024, 6, 2, 4, 0, tz="UTC")
DAY_END = pendulum.datetime(2024, 6, 3, 3, 59, 59, 999000, tz="UTC")


def _client(session, calendar_id="primary"):
    return GoogleCalendarClient(
        credentials=StaticTokenProvider("token-123"),
        calendar_id=calendar_id,
        session=session,
    )


class TestListEvents:
    """Tests for list_events."""

    def test_filters_and_paginates(self):
        session = StubSession(
            StubResponse(payload={"items": [{"id": "a"}], "nextPageToken": "p2"}),
            StubResponse(payload={"items": [{"id": "b"}]}),
        )

        events = _client(session).list_events(DAY_START, DAY_END, "created_by=slotbooker")

        assert [e["id"] for e in events] == ["a", "b"]
        first, second = session.requests
        assert first["method"] == "GET"
        assert first["url"] == "https://www.googleapis.com/calendar/v3/calendars/primary/events"
        assert first["headers"] == {"Authorization": "Bearer token-123"}
        assert first["params"]["timeMin"] == "2024-06-02T04:00:00Z"
        assert first["params"]["sharedExtendedProperty"] == "created_by=slotbooker"
        assert first["params"]["singleEvents"] == "true"
        assert "pageToken" not in first["params"]
        assert second["params"]["pageToken"] == "p2"

    def test_calendar_id_is_url_encoded(self):
        session = StubSession(StubResponse(payload={"items": []}))

        _client(session, calendar_id="shop@group.calendar.google.com").list_events(
            DAY_START, DAY_END, "slot_key=2024-06-02T10:00"
        )

        assert "/calendars/shop%40group.calendar.google.com/events" in session.requests[0]["url"]


class TestQueryFreeBusy:
    """Tests for query_free_busy."""

    def test_parses_busy_windows(self):
        session = StubSession(StubResponse(payload={
            "calendars": {
                "primary": {
                    "busy": [
                        {"start": "2024-06-02T14:00:00Z", "end": "2024-06-02T15:00:00Z"},
                        {"start": "2024-06-02T11:00:00-04:00", "end": "2024-06-02T11:30:00-04:00"},
                        {"start": "2024-06-02T16:00:00Z", "end": "2024-06-02T16:00:00Z"},
                    ]
                }
            }
        }))

        busy = _client(session).query_free_busy(DAY_START, DAY_END, "America/Santiago")

        assert len(busy) == 2
        assert busy[0].start == pendulum.datetime(2024, 6, 2, 14, 0, tz="UTC")
        assert busy[1].start == pendulum.datetime(2024, 6, 2, 15, 0, tz="UTC")
        body = session.requests[0]["json"]
        assert body["timeZone"] == "America/Santiago"
        assert body["items"] == [{"id": "primary"}]

    def test_calendar_error_is_a_read_failure(self):
        session = StubSession(StubResponse(payload={
            "calendars": {"primary": {"errors": [{"domain": "global", "reason": "notFound"}], "busy": []}}
        }))

        with pytest.raises(CalendarAPIError) as excinfo:
            _client(session).query_free_busy(DAY_START, DAY_END, "America/Santiago")

        assert excinfo.value.detail == [{"domain": "global", "reason": "notFound"}]

    def test_missing_calendar_entry(self):
        session = StubSession(StubResponse(payload={"calendars": {}}))

        with pytest.raises(CalendarAPIError):
            _client(session).query_free_busy(DAY_START, DAY_END, "America/Santiago")


class TestInsertEvent:
    """Tests for insert_event."""

    def test_posts_body_and_notifies(self):
        session = StubSession(StubResponse(payload={"id": "evt1", "htmlLink": "https://x"}))
        body = {"summary": "Visit"}

        created = _client(session).insert_event(body)

        assert created["id"] == "evt1"
        sent = session.requests[0]
        assert sent["method"] == "POST"
        assert sent["params"] == {"sendUpdates": "all"}
        assert sent["json"] == body


class TestErrors:
    """HTTP and transport failures."""

    @pytest.mark.parametrize(
        "status, payload",
        [
            (401, {"error": {"code": 401}}),
            (403, {"error": {"code": 403, "errors": [{"reason": "insufficientPermissions"}]}}),
        ],
    )
    def test_refused_credentials(self, status, payload):
        session = StubSession(StubResponse(status_code=status, payload=payload))

        with pytest.raises(CredentialError):
            _client(session).insert_event({})

    def test_quota_403_is_an_api_error(self):
        error = {"code": 403, "errors": [{"domain": "usageLimits", "reason": "rateLimitExceeded"}]}
        session = StubSession(StubResponse(status_code=403, payload={"error": error}))

        with pytest.raises(CalendarAPIError) as excinfo:
            _client(session).insert_event({})

        assert excinfo.value.status_code == 403
        assert excinfo.value.detail == error

    def test_server_error_keeps_detail(self):
        session = StubSession(StubResponse(status_code=500, payload={"error": {"message": "Backend Error"}}))

        with pytest.raises(CalendarAPIError) as excinfo:
            _client(session).insert_event({})

        assert excinfo.value.status_code == 500
        assert excinfo.value.detail == {"message": "Backend Error"}

    def test_non_json_error_body(self):
        session = StubSession(StubResponse(status_code=502, text="Bad Gateway"))

        with pytest.raises(CalendarAPIError) as excinfo:
            _client(session).insert_event({})

        assert excinfo.value.detail == "Bad Gateway"

    @pytest.mark.parametrize(
        "error",
        [requests.exceptions.ConnectionError("refused"), requests.exceptions.Timeout("slow")],
    )
    def test_transport_failure(self, error):
        session = StubSession(error)

        with pytest.raises(CalendarAPIError):
            _client(session).list_events(DAY_START, DAY_END, "slot_key=x")


class TestGoogleAuthenticator:
    """Tests for the refresh-token exchange."""

    def _authenticator(self, session):
        return GoogleAuthenticator(
            client_id="cid",
            client_secret="secret",
            refresh_token="refresh",
            session=session,
        )

    def test_token_is_cached(self):
        session = StubSession(StubResponse(payload={"access_token": "at-1", "expires_in": 3600}))
        authenticator = self._authenticator(session)

        assert authenticator.get_access_token() == "at-1"
        assert authenticator.get_access_token() == "at-1"
        assert len(session.requests) == 1
        assert session.requests[0]["data"]["grant_type"] == "refresh_token"

    def test_force_refresh(self):
        session = StubSession(
            StubResponse(payload={"access_token": "at-1", "expires_in": 3600}),
            StubResponse(payload={"access_token": "at-2", "expires_in": 3600}),
        )
        authenticator = self._authenticator(session)

        authenticator.get_access_token()

        assert authenticator.get_access_token(force_refresh=True) == "at-2"

    def test_refused_refresh_token(self):
        session = StubSession(StubResponse(
            status_code=400,
            payload={"error": "invalid_grant", "error_description": "Token has been expired or revoked."},
        ))

        with pytest.raises(CredentialError, match="expired or revoked"):
            self._authenticator(session).get_access_token()

    def test_missing_refresh_token(self):
        with pytest.raises(CredentialError):
            GoogleAuthenticator(client_id="cid", client_secret="secret", refresh_token="")
