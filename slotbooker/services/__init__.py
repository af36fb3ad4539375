"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .availability_resolver import AvailabilityResolver
from .booking_committer import BookingCommitter
from .booking_service import BookingService
from .conflict_guard import ConflictGuard
from .ports import CalendarReader, CalendarStore, CalendarWriter

__all__ = [
    "AvailabilityResolver",
    "BookingCommitter",
    "BookingService",
    "CalendarReader",
    "CalendarStore",
    "CalendarWriter",
    "ConflictGuard",
]
