"""
Free/busy resolution for the candidate slots of one day.

One resolver serves both availability policies:

* ``self-created-only`` blocks a slot only when an event tagged by this
  system already carries its slot key;
* ``any-event`` blocks a slot whenever its UTC interval overlaps a busy
  window reported by the provider, whoever created it.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Sequence, Set

from ..domain.exceptions import AvailabilityError, CalendarAPIError, InputFormatError
from ..domain.models import AvailabilityMode, BusyWindow, slot_key
from ..domain.timezone_converter import TimeZoneConverter, parse_time
from .ports import CalendarReader

logger = logging.getLogger(__name__)

SLOT_KEY_PROPERTY = "slot_key"
CREATED_BY_PROPERTY = "created_by"


def extract_slot_keys(events: Sequence[dict]) -> Set[str]:
    """Collect the slot keys embedded in the events' shared properties."""
    keys: Set[str] = set()
    for event in events:
        shared = (event.get("extendedProperties") or {}).get("shared") or {}
        key = shared.get(SLOT_KEY_PROPERTY)
        if key:
            keys.add(key)
    return keys


class AvailabilityResolver:
    """
    Computes a slot -> available mapping for a day.

    The result is for display only: a slot reported free here can still be
    rejected by the ``ConflictGuard`` at submit time.
    """

    def __init__(
        self,
        calendar: CalendarReader,
        converter: TimeZoneConverter,
        creator_tag: str,
    ) -> None:
        self._calendar = calendar
        self._converter = converter
        self._creator_tag = creator_tag

    def resolve(
        self,
        date: str,
        tz: str,
        duration_minutes: int,
        candidate_slots: Sequence[str],
        mode: AvailabilityMode,
    ) -> Dict[str, bool]:
        """
        Resolve availability for every candidate slot.

        Args:
            date: Day to check, ``YYYY-MM-DD``
            tz: IANA timezone the candidates are expressed in
            duration_minutes: Fixed slot duration
            candidate_slots: ``HH:mm`` start times
            mode: Availability policy

        Returns:
            Mapping of each candidate to True (free) or False (taken)

        Raises:
            InputFormatError: If any input is malformed (no remote call is made)
            AvailabilityError: If the calendar could not be read
        """
        candidates = self._validate_candidates(candidate_slots)
        try:
            mode = AvailabilityMode(mode)
        except ValueError as exc:
            raise InputFormatError(f"Unknown availability mode {mode!r}") from exc
        day_start, day_end = self._converter.day_bounds(date, tz)

        if mode is AvailabilityMode.SELF_CREATED_ONLY:
            return self._resolve_self_created(date, candidates, day_start, day_end)

        # Converting up front keeps malformed input from reaching the provider.
        windows = {
            hhmm: self._converter.build_slot(date, hhmm, tz, duration_minutes).window
            for hhmm in candidates
        }
        # Late candidates may end after local midnight.
        window_end = max([day_end] + [w.end for w in windows.values()])
        busy = self._read_busy_windows(day_start, window_end, tz)

        return {
            hhmm: not any(window.overlaps(b) for b in busy)
            for hhmm, window in windows.items()
        }

    def _resolve_self_created(self, date, candidates, day_start, day_end) -> Dict[str, bool]:
        try:
            events = self._calendar.list_events(
                time_min=day_start,
                time_max=day_end,
                shared_property=f"{CREATED_BY_PROPERTY}={self._creator_tag}",
            )
        except CalendarAPIError as exc:
            raise AvailabilityError(f"Could not list booked slots: {exc}", detail=exc.detail) from exc

        taken = extract_slot_keys(events)
        logger.debug("Found %d tagged booking(s) on %s", len(taken), date)

        return {hhmm: slot_key(date, hhmm) not in taken for hhmm in candidates}

    def _read_busy_windows(self, day_start, day_end, tz) -> List[BusyWindow]:
        try:
            busy = self._calendar.query_free_busy(time_min=day_start, time_max=day_end, timezone=tz)
        except CalendarAPIError as exc:
            raise AvailabilityError(f"Could not query free/busy: {exc}", detail=exc.detail) from exc

        logger.debug("Free/busy returned %d busy window(s)", len(busy))
        return list(busy)

    @staticmethod
    def _validate_candidates(candidate_slots: Sequence[str]) -> List[str]:
        if not candidate_slots:
            raise InputFormatError("At least one candidate slot is required")
        for hhmm in candidate_slots:
            parse_time(hhmm)
        return list(candidate_slots)
