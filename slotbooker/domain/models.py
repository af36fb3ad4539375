"""
Domain models for slots, busy windows and booking outcomes.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Union

from pendulum import DateTime

from .exceptions import InputFormatError

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")

SLOT_TAKEN = "SLOT_TAKEN"
SLOT_TAKEN_MESSAGE = "That time has already been booked. Please choose another slot."


def overlaps(a_start: DateTime, a_end: DateTime, b_start: DateTime, b_end: DateTime) -> bool:
    """Half-open interval overlap: back-to-back intervals do not overlap."""
    return a_start < b_end and b_start < a_end


def slot_key(date: str, time: str) -> str:
    """Build the idempotency key of a slot, e.g. ``2024-06-02T10:00``."""
    return f"{date}T{time}"


class AvailabilityMode(str, Enum):
    """Policy deciding which calendar entries block a slot."""

    SELF_CREATED_ONLY = "self-created-only"
    ANY_EVENT = "any-event"


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable time range with start and end datetime.

    Invariant: start must be before end.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if self.start >= self.end:
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((self.end - self.start).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another."""
        return overlaps(self.start, self.end, other.start, other.end)

    def __str__(self) -> str:
        return f"{self.start.to_iso8601_string()} - {self.end.to_iso8601_string()}"


# A busy interval reported by the provider's free/busy query.
BusyWindow = TimeRange


@dataclass(frozen=True)
class Slot:
    """
    A bookable slot: wall-clock start in a zone plus its derived UTC interval.

    Built by ``TimeZoneConverter.build_slot``; the UTC fields are never
    recomputed afterwards.
    """
    date: str
    start_local: str
    duration_minutes: int
    timezone: str
    start_utc: DateTime
    end_utc: DateTime

    @property
    def key(self) -> str:
        return slot_key(self.date, self.start_local)

    @property
    def window(self) -> TimeRange:
        return TimeRange(start=self.start_utc, end=self.end_utc)


@dataclass(frozen=True)
class BookingRequest:
    """Customer details plus the requested slot."""
    first_name: str
    last_name: str
    email: str
    date: str
    time: str
    timezone: str
    phone: str = ""
    address: str = ""
    note: str = ""

    @property
    def key(self) -> str:
        return slot_key(self.date, self.time)

    @property
    def full_name(self) -> str:
        return f"{self.first_name.strip()} {self.last_name.strip()}".strip()

    def validate_customer(self) -> None:
        """
        Check the customer fields.

        Date, time and timezone are checked by the ``TimeZoneConverter`` when
        the slot is derived.

        Raises:
            InputFormatError: If a required field is missing or malformed
        """
        missing = [
            name for name in ("first_name", "last_name", "email")
            if not getattr(self, name, "").strip()
        ]
        if missing:
            raise InputFormatError(f"Missing required field(s): {', '.join(missing)}")

        if not EMAIL_PATTERN.match(self.email.strip()):
            raise InputFormatError(f"Invalid email address: {self.email!r}")


@dataclass(frozen=True)
class CalendarEvent:
    """Reference to an event owned by the calendar provider."""
    event_id: str
    slot_key: str
    html_link: Optional[str] = None


@dataclass(frozen=True)
class Proceed:
    """Both conflict checks passed; the caller may commit."""
    slot_key: str


@dataclass(frozen=True)
class Conflict:
    """The slot is already taken. An expected outcome, not a fault."""
    slot_key: str
    reason: str = SLOT_TAKEN
    message: str = SLOT_TAKEN_MESSAGE


@dataclass(frozen=True)
class Committed:
    """The booking event was written to the calendar."""
    event_id: str
    slot_key: str
    link: Optional[str] = None


@dataclass(frozen=True)
class BookingFailed:
    """The booking attempt failed with a typed error."""
    error: str
    detail: object = None


BookingOutcome = Union[Conflict, Committed, BookingFailed]


@dataclass
class AvailabilityReport:
    """
    Availability surface returned to the presentation layer.

    ``availability`` is only meaningful when ``ok`` is true; an unresolved
    read is reported with ``ok=False`` and never as an all-free mapping.
    """
    date: str
    timezone: str
    mode: AvailabilityMode
    availability: Dict[str, bool] = field(default_factory=dict)
    ok: bool = True
    error: Optional[str] = None
    detail: object = None
