"""
Core business logic for generating bookable appointment start times.

This is the heart of the application - pure domain logic without any
external dependencies (no storage, no clock access when ``now`` is given,
no I/O). The caller supplies a fresh snapshot of booked intervals.
"""

import logging
from datetime import date
from typing import List, Optional, Sequence

import pendulum
from pendulum import DateTime

from .availability import FALLBACK_WINDOWS, windows_for
from .conflicts import anchor_bookings, overlaps
from .models import Availability, BookedInterval, CandidateSlot, DailyWindow, TimeRange
from .timeutils import (
    at_minutes,
    resolve_timezone,
    round_up_to_interval,
    same_local_day,
    to_local,
    to_utc,
)

logger = logging.getLogger(__name__)

DEFAULT_STEP_MINUTES = 15


class SlotGenerator:
    """
    Generates candidate slots for one service on one calendar date.

    Algorithm, per window of the date (in declaration order):
    1. Anchor the window on the date
    2. Start the cursor at the window start, or at "now" rounded up to the
       step when the date is today
    3. Walk the cursor in fixed steps, stopping once a slot would run past
       the window end
    4. Keep slots that have not already ended and do not overlap a booking
    5. Concatenate windows, dropping repeated start times
    """

    def __init__(
        self,
        step_minutes: int = DEFAULT_STEP_MINUTES,
        timezone: Optional[str] = None,
        fallback_windows: Sequence[DailyWindow] = FALLBACK_WINDOWS,
    ):
        if step_minutes <= 0:
            raise ValueError(f"step_minutes must be positive, got {step_minutes}")
        self.step_minutes = step_minutes
        self.timezone = resolve_timezone(timezone)
        self.fallback_windows = tuple(fallback_windows)

    def generate_slots(
        self,
        day: date,
        service_duration: int,
        availability: Optional[Availability],
        booked: Sequence[BookedInterval],
        now: Optional[DateTime] = None,
    ) -> List[str]:
        """
        Return bookable start times as ``"h:mm AM/PM"`` labels.

        Args:
            day: Target calendar date (local)
            service_duration: Length of the chosen service in minutes
            availability: The business's availability, or None if never configured
            booked: Existing bookings for this business on ``day``
            now: Current instant; defaults to the clock

        Returns:
            Labels in window-declaration order, empty if nothing is bookable
        """
        candidates = self.generate_candidates(day, service_duration, availability, booked, now)
        return [candidate.label for candidate in candidates]

    def generate_candidates(
        self,
        day: date,
        service_duration: int,
        availability: Optional[Availability],
        booked: Sequence[BookedInterval],
        now: Optional[DateTime] = None,
    ) -> List[CandidateSlot]:
        """Same as ``generate_slots`` but returns ``CandidateSlot`` values."""
        if not service_duration or service_duration <= 0:
            logger.debug("No slots for non-positive service duration %r", service_duration)
            return []

        local_now = to_local(now, self.timezone) if now is not None else pendulum.now(self.timezone)
        is_today = same_local_day(day, local_now)
        booked_ranges = anchor_bookings(booked, day, self.timezone)

        slots: List[CandidateSlot] = []
        seen: set[str] = set()

        for window in windows_for(availability, day, self.fallback_windows):
            for candidate in self._walk_window(
                window=window,
                day=day,
                service_duration=service_duration,
                booked_ranges=booked_ranges,
                local_now=local_now,
                is_today=is_today,
            ):
                if candidate.label in seen:
                    continue
                seen.add(candidate.label)
                slots.append(candidate)

        logger.debug(
            "Generated %d slot(s) for %s (duration=%d, bookings=%d)",
            len(slots), day, service_duration, len(booked_ranges),
        )
        return slots

    def _walk_window(
        self,
        *,
        window: DailyWindow,
        day: date,
        service_duration: int,
        booked_ranges: List[TimeRange],
        local_now: DateTime,
        is_today: bool,
    ) -> List[CandidateSlot]:
        """
        Walk one window at the fixed step and collect free, fully contained slots.

        The first candidate is the window start itself, even when it is off
        the quarter-hour grid.
        """
        bounds = window.bounds()
        if bounds is None:
            logger.warning("Skipping malformed window %s-%s", window.start, window.end)
            return []

        window_start = at_minutes(day, bounds[0], self.timezone)
        window_end = at_minutes(day, bounds[1], self.timezone)

        cursor = window_start
        if is_today:
            cursor = max(window_start, round_up_to_interval(local_now, self.step_minutes), key=to_utc)

        found: List[CandidateSlot] = []
        end_utc = to_utc(window_end)
        now_utc = to_utc(local_now)

        # Steps are absolute time. On a fall-back day the repeated hour is
        # walked twice, and its labels are de-duplicated by the caller.
        while to_utc(cursor) < end_utc:
            slot_end = cursor.add(minutes=service_duration)

            # No partial slots at the tail
            if to_utc(slot_end) > end_utc:
                break

            already_over = is_today and to_utc(slot_end) < now_utc
            if not already_over and not overlaps(cursor, slot_end, booked_ranges):
                found.append(CandidateSlot(time_range=TimeRange(start=cursor, end=slot_end)))

            cursor = cursor.add(minutes=self.step_minutes)

        return found


def generate_slots(
    day: date,
    service_duration: int,
    availability: Optional[Availability],
    booked: Sequence[BookedInterval],
    now: Optional[DateTime] = None,
    step_minutes: int = DEFAULT_STEP_MINUTES,
    timezone: Optional[str] = None,
) -> List[str]:
    """Generate slot labels with a one-off ``SlotGenerator``."""
    generator = SlotGenerator(step_minutes=step_minutes, timezone=timezone)
    return generator.generate_slots(day, service_duration, availability, booked, now)
