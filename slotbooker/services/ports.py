"""
Calendar ports consumed by the engine.

The Google adapter and the in-memory calendar both satisfy these protocols,
which keeps the services testable with simple stubs.
"""

from typing import Any, Dict, List, Protocol

from pendulum import DateTime

from ..domain.models import BusyWindow


class CalendarReader(Protocol):
    """Read side of the calendar store."""

    def list_events(
        self,
        time_min: DateTime,
        time_max: DateTime,
        shared_property: str,
    ) -> List[Dict[str, Any]]:
        """Return raw events in the window whose shared property matches ``key=value``."""

    def query_free_busy(
        self,
        time_min: DateTime,
        time_max: DateTime,
        timezone: str,
    ) -> List[BusyWindow]:
        """Return busy windows (UTC) overlapping the window."""


class CalendarWriter(Protocol):
    """Write side of the calendar store."""

    def insert_event(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Insert an event and return the provider's representation of it."""


class CalendarStore(CalendarReader, CalendarWriter, Protocol):
    """A calendar supporting both reads and writes."""
