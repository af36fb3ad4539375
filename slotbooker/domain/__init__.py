"""
Domain layer - Pure business logic without external dependencies.
"""

from .exceptions import (
    AvailabilityError,
    CalendarAPIError,
    CommitError,
    CredentialError,
    InputFormatError,
    SlotBookerError,
)
from .models import (
    AvailabilityMode,
    AvailabilityReport,
    BookingFailed,
    BookingOutcome,
    BookingRequest,
    BusyWindow,
    CalendarEvent,
    Committed,
    Conflict,
    Proceed,
    Slot,
    TimeRange,
    overlaps,
    slot_key,
)
from .slot_catalog import SlotCatalog, generate_slots
from .timezone_converter import TimeZoneConverter

__all__ = [
    "AvailabilityError",
    "AvailabilityMode",
    "AvailabilityReport",
    "BookingFailed",
    "BookingOutcome",
    "BookingRequest",
    "BusyWindow",
    "CalendarAPIError",
    "CalendarEvent",
    "CommitError",
    "Committed",
    "Conflict",
    "CredentialError",
    "InputFormatError",
    "Proceed",
    "Slot",
    "SlotBookerError",
    "SlotCatalog",
    "TimeRange",
    "TimeZoneConverter",
    "generate_slots",
    "overlaps",
    "slot_key",
]
