"""
Adapters layer - External integrations (Google Calendar API).
"""

from .client_handle import CalendarClientHandle, build_google_client
from .google_authenticator import CredentialProvider, GoogleAuthenticator, StaticTokenProvider
from .google_calendar_client import GoogleCalendarClient
from .in_memory_calendar import InMemoryCalendar

__all__ = [
    "CalendarClientHandle",
    "CredentialProvider",
    "GoogleAuthenticator",
    "GoogleCalendarClient",
    "InMemoryCalendar",
    "StaticTokenProvider",
    "build_google_client",
]
