"""
Resolves which open windows apply on a given calendar date.
"""

from datetime import date
from typing import Optional, Sequence, Tuple

from .models import Availability, DailyWindow
from .timeutils import weekday_index

FALLBACK_WINDOWS: Tuple[DailyWindow, ...] = (DailyWindow("08:00", "18:00"),)


def windows_for(
    availability: Optional[Availability],
    day: date,
    fallback: Sequence[DailyWindow] = FALLBACK_WINDOWS,
) -> Tuple[DailyWindow, ...]:
    """
    Return the windows open on ``day`` in declaration order.

    Resolution order:
    1. Blackout date -> closed
    2. Configured windows for the weekday (an empty list stays closed)
    3. ``fallback`` when there is no availability, or the weekday is absent
    """
    if availability is not None and availability.is_blackout(day):
        return ()

    configured = availability.windows(weekday_index(day)) if availability is not None else None
    if configured is None:
        return tuple(fallback)
    return tuple(configured)


def is_bookable_date(availability: Optional[Availability], day: date) -> bool:
    """False for blackout dates; used to disable days in a date picker."""
    return availability is None or not availability.is_blackout(day)
