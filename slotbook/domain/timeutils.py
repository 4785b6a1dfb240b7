"""
Time-of-day helpers shared by the availability model and the slot generator.

Everything here works on local wall-clock values. Dates are formatted from
their own year/month/day fields and never pass through UTC, since that would
shift dates near midnight.
"""

import re
from datetime import date
from typing import Optional

import pendulum
from pendulum import DateTime

from .exceptions import InvalidTimeError

MINUTES_PER_DAY = 24 * 60

_TIME_PATTERN = re.compile(
    r"^\s*(?P<hour>\d{1,2}):(?P<minute>\d{2})\s*(?P<meridiem>[AaPp][Mm])?\s*$"
)


def parse_minutes_of_day(text: Optional[str], strict: bool = False) -> int:
    """
    Parse ``"HH:mm"`` (24-hour) or ``"h:mm AM/PM"`` into minutes after midnight.

    In lenient mode unparseable input yields 0. With ``strict=True`` an
    ``InvalidTimeError`` is raised instead.
    """
    match = _TIME_PATTERN.match(text) if isinstance(text, str) else None
    if match is None:
        return _reject(text, strict)

    hour = int(match.group("hour"))
    minute = int(match.group("minute"))
    meridiem = match.group("meridiem")

    if minute > 59:
        return _reject(text, strict)

    if meridiem:
        if not 1 <= hour <= 12:
            return _reject(text, strict)
        hour = hour % 12
        if meridiem.upper() == "PM":
            hour += 12
    elif hour > 23:
        return _reject(text, strict)

    return hour * 60 + minute


def _reject(text: Optional[str], strict: bool) -> int:
    if strict:
        raise InvalidTimeError(f"Invalid time of day: {text!r}")
    return 0


def round_up_to_interval(instant: DateTime, step_minutes: int) -> DateTime:
    """
    Round an instant up to the next multiple of ``step_minutes`` after local midnight.

    An instant already on a boundary is returned unchanged.
    """
    if step_minutes <= 0:
        raise ValueError(f"step_minutes must be positive, got {step_minutes}")

    elapsed_us = (
        (instant.hour * 60 + instant.minute) * 60 + instant.second
    ) * 1_000_000 + instant.microsecond
    step_us = step_minutes * 60 * 1_000_000

    if elapsed_us % step_us == 0:
        return instant

    total = (elapsed_us // step_us + 1) * step_minutes
    midnight = instant.start_of("day")
    if total >= MINUTES_PER_DAY:
        return midnight.add(days=1).add(minutes=total - MINUTES_PER_DAY)
    return midnight.set(hour=total // 60, minute=total % 60)


def format_local_date(day: date) -> str:
    """Format a calendar date as ``YYYY-MM-DD`` from its local fields."""
    return f"{day.year:04d}-{day.month:02d}-{day.day:02d}"


def same_local_day(a: date, b: date) -> bool:
    """Year/month/day equality in local time."""
    return (a.year, a.month, a.day) == (b.year, b.month, b.day)


def weekday_index(day: date) -> int:
    """Weekday index with 0=Sunday ... 6=Saturday."""
    return day.isoweekday() % 7


def format_time_label(instant: DateTime) -> str:
    """Format an instant as a ``"h:mm AM/PM"`` label."""
    return instant.format("h:mm A", locale="en")


def resolve_timezone(name: Optional[str] = None):
    """Return the named pendulum timezone, or the machine's local one."""
    if name:
        return pendulum.timezone(name)
    return pendulum.local_timezone()


def at_minutes(day: date, minutes: int, tz=None) -> DateTime:
    """Anchor a minute-of-day on a calendar date in the given timezone."""
    return pendulum.datetime(
        day.year,
        day.month,
        day.day,
        minutes // 60,
        minutes % 60,
        tz=tz if tz is not None else resolve_timezone(),
    )


def to_local(instant, tz) -> DateTime:
    """Convert any datetime to a pendulum ``DateTime`` in ``tz``.

    Naive values are taken to already be wall-clock time in ``tz``.
    """
    return pendulum.instance(instant, tz=tz).in_timezone(tz)


def to_utc(instant) -> DateTime:
    """The same instant in UTC.

    Aware datetimes sharing a tzinfo compare by wall clock, which breaks in
    the repeated hour of a DST fall-back. Compare UTC values instead.
    """
    return pendulum.instance(instant).in_timezone("UTC")
