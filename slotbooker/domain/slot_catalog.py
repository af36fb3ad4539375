"""
Candidate slot times for a business day.

Pure domain logic: no I/O, no timezone knowledge.
"""

from typing import Iterator, List

from .exceptions import InputFormatError
from .timezone_converter import parse_time


class SlotCatalog:
    """
    Restartable, ordered sequence of ``HH:mm`` start times.

    Every iteration yields the same values, from ``first_slot`` up to and
    including ``last_slot`` when it falls on the step grid.
    """

    def __init__(self, first_slot: str, last_slot: str, step_minutes: int):
        start_hour, start_minute = parse_time(first_slot)
        end_hour, end_minute = parse_time(last_slot)

        if step_minutes <= 0:
            raise InputFormatError(f"Step must be positive, got {step_minutes}")

        self.start_minutes = start_hour * 60 + start_minute
        self.end_minutes = end_hour * 60 + end_minute
        self.step_minutes = step_minutes

        if self.start_minutes > self.end_minutes:
            raise InputFormatError(f"First slot {first_slot} is after last slot {last_slot}")

    def __iter__(self) -> Iterator[str]:
        current = self.start_minutes
        while current <= self.end_minutes:
            yield f"{current // 60:02d}:{current % 60:02d}"
            current += self.step_minutes

    def __len__(self) -> int:
        return (self.end_minutes - self.start_minutes) // self.step_minutes + 1

    def __contains__(self, value: object) -> bool:
        return value in list(self)


def generate_slots(start_local: str, end_local_inclusive: str, step_minutes: int) -> List[str]:
    """
    Generate the candidate start times of a day.

    Example:
        generate_slots("09:00", "10:00", 30) -> ["09:00", "09:30", "10:00"]
    """
    return list(SlotCatalog(start_local, end_local_inclusive, step_minutes))
