"""
Tests for domain models.
"""

import pendulum
import pytest

from slotbooker.domain.exceptions import InputFormatError
from slotbooker.domain.models import (
    BookingRequest,
    Conflict,
    SLOT_TAKEN,
    TimeRange,
    overlaps,
    slot_key,
)


def _utc(hour, minute=0):
    return pendulum.datetime(2024, 6, 2, hour, minute, tz="UTC")


class TestTimeRange:
    """Tests for TimeRange model."""

    def test_create_valid_time_range(self):
        """Test creating a valid time range."""
        tr = TimeRange(start=_utc(14), end=_utc(14, 15))

        assert tr.start == _utc(14)
        assert tr.duration_minutes() == 15

    def test_invalid_time_range_raises_error(self):
        """Busy windows must satisfy start < end."""
        with pytest.raises(ValueError, match="Start time .* must be before end time"):
            TimeRange(start=_utc(15), end=_utc(14))

        with pytest.raises(ValueError):
            TimeRange(start=_utc(15), end=_utc(15))

    def test_overlaps(self):
        """Test overlap detection."""
        tr1 = TimeRange(start=_utc(9), end=_utc(12))
        tr2 = TimeRange(start=_utc(11), end=_utc(14))
        tr3 = TimeRange(start=_utc(14), end=_utc(17))

        assert tr1.overlaps(tr2)
        assert tr2.overlaps(tr1)
        assert not tr1.overlaps(tr3)

    def test_contained_range_overlaps(self):
        """A range inside another overlaps it."""
        outer = TimeRange(start=_utc(9), end=_utc(17))
        inner = TimeRange(start=_utc(10), end=_utc(10, 15))

        assert outer.overlaps(inner)
        assert inner.overlaps(outer)


class TestOverlap:
    """Tests for the half-open overlap predicate."""

    @pytest.mark.parametrize(
        "a, b",
        [
            (((9, 0), (10, 0)), ((9, 30), (10, 30))),
            (((9, 0), (10, 0)), ((10, 0), (11, 0))),
            (((9, 0), (12, 0)), ((10, 0), (11, 0))),
            (((13, 0), (14, 0)), ((9, 0), (10, 0))),
            (((10, 0), (10, 15)), ((10, 10), (10, 25))),
        ],
    )
    def test_overlap_is_symmetric(self, a, b):
        """overlap(a, b) == overlap(b, a)."""
        a_start, a_end = _utc(*a[0]), _utc(*a[1])
        b_start, b_end = _utc(*b[0]), _utc(*b[1])

        assert overlaps(a_start, a_end, b_start, b_end) == overlaps(b_start, b_end, a_start, a_end)

    def test_adjacent_slots_never_overlap(self):
        """A slot ending at T and the next starting at T do not overlap."""
        assert not overlaps(_utc(10), _utc(10, 15), _utc(10, 15), _utc(10, 30))
        assert not overlaps(_utc(10, 15), _utc(10, 30), _utc(10), _utc(10, 15))


class TestSlotKey:
    """Tests for slot keys."""

    def test_slot_key_format(self):
        assert slot_key("2024-06-02", "10:00") == "2024-06-02T10:00"

    def test_slot_key_ignores_customer(self):
        """Two customers asking for the same slot share its key."""
        ana = BookingRequest("Ana", "Rojas", "ana@example.com", "2024-06-02", "10:00", "America/Santiago")
        luis = BookingRequest("Luis", "Soto", "luis@example.com", "2024-06-02", "10:00", "America/Santiago")

        assert ana.key == luis.key == "2024-06-02T10:00"


class TestBookingRequest:
    """Tests for customer validation."""

    def _request(self, **overrides):
        fields = dict(
            first_name="Ana",
            last_name="Rojas",
            email="ana@example.com",
            date="2024-06-02",
            time="10:00",
            timezone="America/Santiago",
        )
        fields.update(overrides)
        return BookingRequest(**fields)

    def test_valid_request(self):
        request = self._request()
        request.validate_customer()

        assert request.full_name == "Ana Rojas"

    def test_missing_fields_are_reported(self):
        with pytest.raises(InputFormatError, match="first_name, last_name"):
            self._request(first_name=" ", last_name="").validate_customer()

    @pytest.mark.parametrize("email", ["ana", "ana@example", "ana @example.com"])
    def test_invalid_email(self, email):
        with pytest.raises(InputFormatError, match="Invalid email"):
            self._request(email=email).validate_customer()


class TestConflict:
    """Tests for the conflict outcome."""

    def test_conflict_carries_user_message(self):
        conflict = Conflict(slot_key="2024-06-02T10:00")

        assert conflict.reason == SLOT_TAKEN
        assert conflict.message
