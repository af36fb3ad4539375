"""
Domain-specific exception hierarchy for the slot booking engine.

A detected double booking is not an error: it is reported as a
``Conflict`` outcome (see ``models``). Everything here is a fault the caller
may decide to retry or surface.
"""

from typing import Any, Optional


class SlotBookerError(Exception):
    """Base class for all application-level errors."""


class InputFormatError(SlotBookerError, ValueError):
    """Raised when a date, time, timezone or request field is malformed."""


class CalendarAPIError(SlotBookerError):
    """Raised when the calendar provider cannot be reached or rejects a call."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, detail: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail


class CredentialError(SlotBookerError):
    """Raised when a bearer credential cannot be obtained or is refused."""


class AvailabilityError(SlotBookerError):
    """Raised when busy data cannot be read; never means "free"."""

    def __init__(self, message: str, *, detail: Any = None):
        super().__init__(message)
        self.detail = detail


class CommitError(SlotBookerError):
    """Raised when the booking event could not be written."""

    def __init__(self, message: str, *, detail: Any = None):
        super().__init__(message)
        self.detail = detail
