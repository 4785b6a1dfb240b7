"""
Interval overlap checks between candidate slots and existing bookings.

All intervals are half-open: a booking ending at 10:00 does not conflict
with a slot starting at 10:00.
"""

from datetime import date
from typing import Iterable, List, Sequence

from pendulum import DateTime

from .models import BookedInterval, TimeRange
from .timeutils import to_utc


def intervals_overlap(start1, end1, start2, end2) -> bool:
    """``[start1, end1)`` and ``[start2, end2)`` intersect, compared in UTC."""
    return to_utc(start1) < to_utc(end2) and to_utc(start2) < to_utc(end1)


def overlaps(
    candidate_start: DateTime,
    candidate_end: DateTime,
    booked_ranges: Iterable[TimeRange],
) -> bool:
    """Check a candidate interval against every booked range."""
    return any(
        intervals_overlap(candidate_start, candidate_end, booked.start, booked.end)
        for booked in booked_ranges
    )


def anchor_bookings(booked: Sequence[BookedInterval], day: date, tz=None) -> List[TimeRange]:
    """Turn booked intervals for ``day`` into concrete time ranges."""
    return [interval.to_range(day, tz) for interval in booked]


def find_conflicts(
    candidate: TimeRange,
    booked: Sequence[BookedInterval],
    day: date,
    tz=None,
) -> List[BookedInterval]:
    """Return the booked intervals that overlap ``candidate``."""
    return [
        interval for interval in booked
        if candidate.overlaps(interval.to_range(day, tz))
    ]
