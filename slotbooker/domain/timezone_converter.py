"""
Conversion between wall-clock times in an IANA zone and UTC instants.

All timezone arithmetic of the engine lives here; the other components only
see already-converted UTC instants or validated ``YYYY-MM-DD`` / ``HH:mm``
strings.

DST behaviour
-------------
``local_to_utc`` derives the zone offset at the *guess* instant (the wall
time read as if it were UTC), not at the true instant. The guess sits
|offset| hours away from the true instant, so:

* wall times inside a skipped gap (spring forward) resolve with the offset
  in force at the guess instant and therefore do not exist on the clock;
* wall times within |offset| hours after a transition may be resolved with
  the pre-transition offset and come out shifted by the DST delta;
* repeated wall times (fall back) get the offset in force at the guess
  instant, whichever side of the transition that is.

These cases are not corrected. Each conversion is rendered back and a
warning is logged when the round trip does not reproduce the requested wall
time.
"""

import logging
import re
from typing import Tuple

import pendulum
from pendulum import DateTime

from .exceptions import InputFormatError
from .models import Slot

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
TIME_PATTERN = re.compile(r"^(\d{2}):(\d{2})$")


def parse_date(value: str) -> Tuple[int, int, int]:
    """Parse ``YYYY-MM-DD`` into (year, month, day)."""
    match = DATE_PATTERN.match(value or "")
    if not match:
        raise InputFormatError(f"Invalid date {value!r}, expected YYYY-MM-DD")
    year, month, day = (int(part) for part in match.groups())
    try:
        pendulum.date(year, month, day)
    except ValueError as exc:
        raise InputFormatError(f"Invalid date {value!r}: {exc}") from exc
    return year, month, day


def parse_time(value: str) -> Tuple[int, int]:
    """Parse ``HH:mm`` into (hour, minute)."""
    match = TIME_PATTERN.match(value or "")
    if not match:
        raise InputFormatError(f"Invalid time {value!r}, expected HH:mm")
    hour, minute = (int(part) for part in match.groups())
    if hour > 23 or minute > 59:
        raise InputFormatError(f"Invalid time {value!r}: out of range")
    return hour, minute


def validate_timezone(name: str) -> str:
    """Return ``name`` if it is a known IANA zone."""
    if not name or not isinstance(name, str):
        raise InputFormatError("Timezone must be a non-empty IANA name")
    try:
        pendulum.timezone(name)
    except (ValueError, KeyError) as exc:
        raise InputFormatError(f"Unknown timezone {name!r}") from exc
    return name


class TimeZoneConverter:
    """Stateless converter between (date, HH:mm, zone) and UTC instants."""

    def local_to_utc(self, date: str, time: str, tz: str) -> DateTime:
        """
        Convert a wall-clock time in ``tz`` to the UTC instant it denotes.

        Args:
            date: Calendar date, ``YYYY-MM-DD``
            time: Wall-clock time, ``HH:mm``
            tz: IANA timezone identifier

        Returns:
            UTC pendulum DateTime

        Raises:
            InputFormatError: If any argument is malformed
        """
        year, month, day = parse_date(date)
        hour, minute = parse_time(time)
        validate_timezone(tz)

        instant = self._offset_corrected(year, month, day, hour, minute, tz)

        rendered = instant.in_timezone(tz)
        if (rendered.format("YYYY-MM-DD"), rendered.format("HH:mm")) != (date, time):
            logger.warning(
                "Wall time %s %s does not round-trip in %s (got %s); "
                "it is at or near a DST transition",
                date, time, tz, rendered.format("YYYY-MM-DD HH:mm"),
            )
        return instant

    def utc_to_local(self, instant: DateTime, tz: str) -> Tuple[str, str]:
        """Render a UTC instant as (``YYYY-MM-DD``, ``HH:mm``) in ``tz``."""
        validate_timezone(tz)
        local = instant.in_timezone(tz)
        return local.format("YYYY-MM-DD"), local.format("HH:mm")

    def day_bounds(self, date: str, tz: str) -> Tuple[DateTime, DateTime]:
        """UTC window covering 00:00 to 23:59:59.999 local on ``date``."""
        start = self.local_to_utc(date, "00:00", tz)
        end = self.local_to_utc(date, "23:59", tz).add(seconds=59, microseconds=999000)
        return start, end

    def build_slot(self, date: str, time: str, tz: str, duration_minutes: int) -> Slot:
        """Derive the immutable ``Slot`` for a wall-clock start."""
        if duration_minutes <= 0:
            raise InputFormatError(f"Duration must be positive, got {duration_minutes}")

        start = self.local_to_utc(date, time, tz)
        return Slot(
            date=date,
            start_local=time,
            duration_minutes=duration_minutes,
            timezone=tz,
            start_utc=start,
            end_utc=start.add(minutes=duration_minutes),
        )

    @staticmethod
    def _offset_corrected(year: int, month: int, day: int, hour: int, minute: int, tz: str) -> DateTime:
        # (a) wall time read as UTC
        guess = pendulum.datetime(year, month, day, hour, minute, tz="UTC")
        # (b) what the zone's clock shows at that instant
        rendered = guess.in_timezone(tz)
        rendered_as_utc = pendulum.datetime(
            rendered.year, rendered.month, rendered.day,
            rendered.hour, rendered.minute, rendered.second,
            tz="UTC",
        )
        # (c) offset, (d) true instant
        offset_seconds = guess.int_timestamp - rendered_as_utc.int_timestamp
        return guess.add(seconds=offset_seconds)
