"""
Submit-time re-validation of a single slot.

The calendar store offers no transaction, so the guard runs two independent
reads right before the write:

1. exact match on the slot key embedded in events this system created;
2. overlap of the slot's UTC interval with the provider's busy windows.

Two requests racing for the same slot can both pass before either commits.
The slot key written by the first commit is what makes every later attempt
fail on its next read instead of silently double booking.
"""

from __future__ import annotations

import logging
from typing import Union

from ..domain.exceptions import AvailabilityError, CalendarAPIError
from ..domain.models import Conflict, Proceed, Slot
from ..domain.timezone_converter import TimeZoneConverter
from .availability_resolver import SLOT_KEY_PROPERTY, extract_slot_keys
from .ports import CalendarReader

logger = logging.getLogger(__name__)


class ConflictGuard:
    """Best-effort double-booking check. Holds no state between calls."""

    def __init__(self, calendar: CalendarReader, converter: TimeZoneConverter) -> None:
        self._calendar = calendar
        self._converter = converter

    def check_and_reserve(
        self,
        date: str,
        time: str,
        tz: str,
        duration_minutes: int,
    ) -> Union[Proceed, Conflict]:
        """
        Re-check a slot immediately before committing it.

        Returns:
            ``Proceed`` if both checks pass, ``Conflict`` otherwise

        Raises:
            InputFormatError: If date, time or timezone is malformed
            AvailabilityError: If either read fails
        """
        slot = self._converter.build_slot(date, time, tz, duration_minutes)
        day_start, day_end = self._converter.day_bounds(date, tz)

        if self._slot_key_taken(slot, day_start, day_end):
            logger.info("Slot %s already carries a booking", slot.key)
            return Conflict(slot_key=slot.key)

        if self._overlaps_busy_window(slot, day_start, day_end):
            logger.info("Slot %s overlaps a busy window", slot.key)
            return Conflict(slot_key=slot.key)

        return Proceed(slot_key=slot.key)

    def _slot_key_taken(self, slot: Slot, day_start, day_end) -> bool:
        try:
            events = self._calendar.list_events(
                time_min=day_start,
                time_max=day_end,
                shared_property=f"{SLOT_KEY_PROPERTY}={slot.key}",
            )
        except CalendarAPIError as exc:
            raise AvailabilityError(f"Could not check slot key {slot.key}: {exc}", detail=exc.detail) from exc

        return slot.key in extract_slot_keys(events)

    def _overlaps_busy_window(self, slot: Slot, day_start, day_end) -> bool:
        # A slot starting late in the day may end after local midnight.
        window_end = max(day_end, slot.end_utc)
        try:
            busy = self._calendar.query_free_busy(
                time_min=day_start,
                time_max=window_end,
                timezone=slot.timezone,
            )
        except CalendarAPIError as exc:
            raise AvailabilityError(f"Could not query free/busy: {exc}", detail=exc.detail) from exc

        return any(slot.window.overlaps(window) for window in busy)
