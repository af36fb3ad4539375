"""
Application service exposing the availability and booking surfaces.

The service wires the engine components together and translates typed
errors into surface results. It keeps no state between calls: the calendar
store is the only serialization point, so two requests may race and the
loser is turned away on its next read.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence, Union

from ..domain.exceptions import (
    AvailabilityError,
    CommitError,
    CredentialError,
    InputFormatError,
    SlotBookerError,
)
from ..domain.models import (
    AvailabilityMode,
    AvailabilityReport,
    BookingFailed,
    BookingOutcome,
    BookingRequest,
    Committed,
    Conflict,
)
from ..domain.slot_catalog import SlotCatalog
from ..domain.timezone_converter import TimeZoneConverter
from .availability_resolver import AvailabilityResolver
from .booking_committer import BookingCommitter
from .conflict_guard import ConflictGuard
from .ports import CalendarStore

logger = logging.getLogger(__name__)


class BookingService:
    """
    Orchestrates availability display and booking attempts.

    Dependency inversion toward the calendar ports makes it easy to plug in
    the Google adapter or the in-memory calendar in tests.
    """

    def __init__(
        self,
        *,
        calendar: CalendarStore,
        catalog: SlotCatalog,
        duration_minutes: int,
        default_mode: AvailabilityMode,
        creator_tag: str,
        business_name: str = "",
        notify_email: Optional[str] = None,
        converter: Optional[TimeZoneConverter] = None,
    ) -> None:
        self._converter = converter or TimeZoneConverter()
        self._catalog = catalog
        self._duration_minutes = duration_minutes
        self._default_mode = AvailabilityMode(default_mode)

        self.resolver = AvailabilityResolver(calendar, self._converter, creator_tag)
        self.guard = ConflictGuard(calendar, self._converter)
        self.committer = BookingCommitter(
            calendar,
            creator_tag=creator_tag,
            duration_minutes=duration_minutes,
            business_name=business_name,
            notify_email=notify_email,
        )

    @property
    def duration_minutes(self) -> int:
        return self._duration_minutes

    def check_availability(
        self,
        *,
        date: str,
        timezone: str,
        candidate_slots: Optional[Sequence[str]] = None,
        mode: Optional[Union[AvailabilityMode, str]] = None,
    ) -> AvailabilityReport:
        """
        Resolve availability for a day.

        Candidates default to the configured catalogue and the mode to the
        configured one. Failures are reported in the result, never as an
        all-free mapping.
        """
        candidates = list(self._catalog) if candidate_slots is None else list(candidate_slots)
        try:
            resolved_mode = AvailabilityMode(mode) if mode else self._default_mode
        except ValueError:
            return AvailabilityReport(
                date=date,
                timezone=timezone,
                mode=self._default_mode,
                ok=False,
                error="INVALID_INPUT",
                detail=f"Unknown availability mode {mode!r}",
            )

        report = AvailabilityReport(date=date, timezone=timezone, mode=resolved_mode)
        try:
            report.availability = self.resolver.resolve(
                date, timezone, self._duration_minutes, candidates, resolved_mode
            )
        except InputFormatError as exc:
            report.ok, report.error, report.detail = False, "INVALID_INPUT", str(exc)
        except AvailabilityError as exc:
            logger.warning("Availability for %s unresolved: %s", date, exc)
            report.ok, report.error, report.detail = False, "AVAILABILITY_ERROR", exc.detail or str(exc)
        except CredentialError as exc:
            logger.error("Calendar credentials rejected: %s", exc)
            report.ok, report.error, report.detail = False, "CREDENTIAL_ERROR", str(exc)

        return report

    def book(self, request: BookingRequest) -> BookingOutcome:
        """
        Attempt a booking: validate, re-check the slot, then commit.

        Returns:
            ``Conflict`` when the slot is taken, ``Committed`` on success,
            ``BookingFailed`` for any typed error
        """
        try:
            request.validate_customer()
            decision = self.guard.check_and_reserve(
                request.date, request.time, request.timezone, self._duration_minutes
            )
            if isinstance(decision, Conflict):
                return decision

            event = self.committer.commit(request)
        except InputFormatError as exc:
            return BookingFailed(error="INVALID_INPUT", detail=str(exc))
        except AvailabilityError as exc:
            logger.warning("Could not verify slot %s: %s", request.key, exc)
            return BookingFailed(error="AVAILABILITY_ERROR", detail=exc.detail or str(exc))
        except CommitError as exc:
            logger.error("Booking %s failed: %s", request.key, exc)
            return BookingFailed(error="COMMIT_ERROR", detail=exc.detail or str(exc))
        except CredentialError as exc:
            logger.error("Calendar credentials rejected: %s", exc)
            return BookingFailed(error="CREDENTIAL_ERROR", detail=str(exc))
        except SlotBookerError as exc:
            logger.error("Booking %s failed: %s", request.key, exc)
            return BookingFailed(error="ERROR", detail=str(exc))

        return Committed(event_id=event.event_id, slot_key=event.slot_key, link=event.html_link)
