"""
In-memory calendar store for mock mode and tests.
"""

import itertools
import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional

import pendulum
from pendulum import DateTime

from ..domain.models import BusyWindow, overlaps
from ..domain.timezone_converter import TimeZoneConverter

LOCAL_DATETIME = re.compile(r"^(\d{4}-\d{2}-\d{2})T(\d{2}:\d{2})(:\d{2}(\.\d+)?)?$")


class InMemoryCalendar:
    """
    Calendar store that simulates the Google Calendar reads and writes.

    Events are kept as provider-style resources. Free/busy is derived from
    the stored events, so bookings made through the engine show up in later
    reads exactly as they would against the real provider. Not safe for
    concurrent writers.
    """

    def __init__(self, events: Optional[List[Dict[str, Any]]] = None):
        self._converter = TimeZoneConverter()
        self._ids = itertools.count(1)
        self._events: List[Dict[str, Any]] = []
        for event in events or []:
            self.insert_event(event)

    @classmethod
    def from_json(cls, data_file: Path) -> "InMemoryCalendar":
        """Load seed events from a JSON list of event resources."""
        with open(data_file, "r", encoding="utf-8") as f:
            return cls(events=json.load(f))

    @property
    def events(self) -> List[Dict[str, Any]]:
        return list(self._events)

    def insert_event(self, body: Dict[str, Any]) -> Dict[str, Any]:
        event_id = f"evt{next(self._ids):05d}"
        event = {
            **body,
            "id": event_id,
            "htmlLink": f"https://calendar.example.com/event?eid={event_id}",
            "_start_utc": self._to_utc(body["start"]),
            "_end_utc": self._to_utc(body["end"]),
        }
        self._events.append(event)
        return self._public(event)

    def add_busy(self, start: DateTime, end: DateTime, summary: str = "Busy") -> Dict[str, Any]:
        """Add an untagged event given as UTC instants."""
        return self.insert_event({
            "summary": summary,
            "start": {"dateTime": start.in_timezone("UTC").to_iso8601_string()},
            "end": {"dateTime": end.in_timezone("UTC").to_iso8601_string()},
        })

    def list_events(
        self,
        time_min: DateTime,
        time_max: DateTime,
        shared_property: str,
    ) -> List[Dict[str, Any]]:
        key, _, value = shared_property.partition("=")
        matches = []
        for event in self._events:
            shared = (event.get("extendedProperties") or {}).get("shared") or {}
            if shared.get(key) != value:
                continue
            if overlaps(event["_start_utc"], event["_end_utc"], time_min, time_max):
                matches.append(self._public(event))
        return matches

    def query_free_busy(
        self,
        time_min: DateTime,
        time_max: DateTime,
        timezone: str,
    ) -> List[BusyWindow]:
        return [
            BusyWindow(start=event["_start_utc"], end=event["_end_utc"])
            for event in sorted(self._events, key=lambda e: e["_start_utc"])
            if overlaps(event["_start_utc"], event["_end_utc"], time_min, time_max)
        ]

    def _to_utc(self, moment: Dict[str, str]) -> DateTime:
        value = moment["dateTime"]
        match = LOCAL_DATETIME.match(value)
        if match and moment.get("timeZone"):
            return self._converter.local_to_utc(match.group(1), match.group(2), moment["timeZone"])
        return pendulum.parse(value).in_timezone("UTC")

    @staticmethod
    def _public(event: Dict[str, Any]) -> Dict[str, Any]:
        return {k: v for k, v in event.items() if not k.startswith("_")}
