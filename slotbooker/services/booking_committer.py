"""
Writes a booking to the calendar store.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import pendulum

from ..domain.exceptions import CalendarAPIError, CommitError
from ..domain.models import BookingRequest, CalendarEvent
from ..domain.timezone_converter import parse_date, parse_time, validate_timezone
from .availability_resolver import CREATED_BY_PROPERTY, SLOT_KEY_PROPERTY
from .ports import CalendarWriter

logger = logging.getLogger(__name__)


class BookingCommitter:
    """
    Builds the calendar event for a booking and inserts it.

    Start and end are sent as local wall time plus an explicit ``timeZone``
    so the provider applies the zone offset exactly once.
    """

    def __init__(
        self,
        calendar: CalendarWriter,
        creator_tag: str,
        duration_minutes: int,
        business_name: str = "",
        notify_email: Optional[str] = None,
    ) -> None:
        self._calendar = calendar
        self._creator_tag = creator_tag
        self._duration_minutes = duration_minutes
        self._business_name = business_name
        self._notify_email = notify_email

    def commit(self, request: BookingRequest) -> CalendarEvent:
        """
        Insert the booking event.

        Raises:
            InputFormatError: If the customer fields, date, time or timezone are malformed
            CommitError: If the provider rejects the write or cannot be reached
        """
        request.validate_customer()
        body = self.build_event(request)

        try:
            created = self._calendar.insert_event(body)
        except CalendarAPIError as exc:
            raise CommitError(f"Could not create booking {request.key}: {exc}", detail=exc.detail) from exc

        event_id = created.get("id")
        if not event_id:
            raise CommitError(f"Provider returned no event id for {request.key}", detail=created)

        logger.info("Booked %s as event %s", request.key, event_id)
        return CalendarEvent(event_id=event_id, slot_key=request.key, html_link=created.get("htmlLink"))

    def build_event(self, request: BookingRequest) -> Dict[str, Any]:
        """Assemble the provider event body for a request."""
        start_local, end_local = self._wall_clock_interval(request.date, request.time, request.timezone)

        return {
            "summary": self._summary(request),
            "description": self._description(request),
            "start": {"dateTime": start_local, "timeZone": request.timezone},
            "end": {"dateTime": end_local, "timeZone": request.timezone},
            "attendees": self._attendees(request),
            "reminders": {"useDefault": True},
            "extendedProperties": {
                "shared": {
                    SLOT_KEY_PROPERTY: request.key,
                    CREATED_BY_PROPERTY: self._creator_tag,
                }
            },
        }

    def _wall_clock_interval(self, date: str, time: str, tz: str):
        validate_timezone(tz)
        year, month, day = parse_date(date)
        hour, minute = parse_time(time)
        start = pendulum.naive(year, month, day, hour, minute)
        end = start.add(minutes=self._duration_minutes)
        return start.isoformat(), end.isoformat()

    def _summary(self, request: BookingRequest) -> str:
        summary = f"Visit - {request.full_name}"
        if self._business_name:
            summary += f" ({self._business_name})"
        return summary

    def _description(self, request: BookingRequest) -> str:
        lines = [
            f"Customer: {request.full_name}",
            f"Email: {request.email.strip()}",
            f"Phone: {request.phone.strip()}",
            f"Address: {request.address.strip()}",
            "",
            "Notes:",
            request.note.strip() or "(no notes)",
            "",
            f"Slot: {request.date} {request.time} ({self._duration_minutes}min)",
        ]
        return "\n".join(lines)

    def _attendees(self, request: BookingRequest) -> List[Dict[str, str]]:
        attendees = [{"email": request.email.strip()}]
        if self._notify_email:
            attendees.append({"email": self._notify_email})
        return attendees
