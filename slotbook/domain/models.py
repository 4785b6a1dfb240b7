"""
Domain models for windows, services, bookings and candidate slots.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import pendulum
from pendulum import DateTime

from .timeutils import (
    at_minutes,
    format_local_date,
    format_time_label,
    parse_minutes_of_day,
    to_utc,
)
from .exceptions import InvalidTimeError

logger = logging.getLogger(__name__)

DEFAULT_BOOKED_DURATION_MINUTES = 30


@dataclass(frozen=True)
class TimeRange:
    """
    Represents an immutable half-open time range ``[start, end)``.

    Invariant: start must be before end. Comparisons use UTC so ranges
    crossing a DST change keep their real order and length.
    """
    start: DateTime
    end: DateTime

    def __post_init__(self):
        if to_utc(self.start) >= to_utc(self.end):
            raise ValueError(f"Start time {self.start} must be before end time {self.end}")

    def duration_minutes(self) -> int:
        """Return the duration in minutes."""
        return int((to_utc(self.end) - to_utc(self.start)).total_seconds() / 60)

    def overlaps(self, other: "TimeRange") -> bool:
        """Check if this range overlaps with another."""
        return to_utc(self.start) < to_utc(other.end) and to_utc(other.start) < to_utc(self.end)

    def contains(self, other: "TimeRange") -> bool:
        """Check if ``other`` lies entirely inside this range."""
        return to_utc(self.start) <= to_utc(other.start) and to_utc(other.end) <= to_utc(self.end)

    def __str__(self) -> str:
        return f"{format_time_label(self.start)} - {format_time_label(self.end)}"


@dataclass(frozen=True)
class DailyWindow:
    """
    One open interval within a day, as ``"HH:mm"`` 24-hour strings.

    Windows are stored as entered; ``bounds()`` tells whether they are usable.
    """
    start: str
    end: str

    def bounds(self) -> Optional[Tuple[int, int]]:
        """
        Return ``(start_minutes, end_minutes)``, or None if the window is
        malformed or not strictly increasing.
        """
        try:
            start = parse_minutes_of_day(self.start, strict=True)
            end = parse_minutes_of_day(self.end, strict=True)
        except InvalidTimeError:
            return None
        if start >= end:
            return None
        return start, end

    def is_valid(self) -> bool:
        return self.bounds() is not None

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start, "end": self.end}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DailyWindow":
        if not isinstance(data, dict):
            raise TypeError(f"Window must be a mapping with start and end, got {data!r}")
        return cls(start=str(data.get("start", "")), end=str(data.get("end", "")))


@dataclass(frozen=True)
class Service:
    """
    A bookable service from a business catalog.

    ``name`` is unique within a business. Price fields are display-only.
    """
    name: str
    duration_minutes: int
    price: Decimal = Decimal("0")
    price_is_starting_at: bool = False

    def display_price(self) -> str:
        """Format as ``$25.00``, or ``$25.00+`` for starting-at prices."""
        amount = Decimal(self.price).quantize(Decimal("0.01"))
        suffix = "+" if self.price_is_starting_at else ""
        return f"${amount}{suffix}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Service":
        return cls(
            name=data["name"],
            duration_minutes=int(data.get("duration") or 0),
            price=Decimal(str(data.get("price", 0))),
            price_is_starting_at=bool(data.get("pricePlus", False)),
        )


def find_service(services: Sequence[Service], name: str) -> Optional[Service]:
    """Find a service by its exact name."""
    for service in services:
        if service.name == name:
            return service
    return None


@dataclass(frozen=True)
class BookedInterval:
    """
    An existing appointment on the target date: start label plus duration.

    A missing or non-positive duration counts as 30 minutes.
    """
    start: str
    duration_minutes: Optional[int] = None

    def effective_duration(self) -> int:
        if not self.duration_minutes or self.duration_minutes <= 0:
            return DEFAULT_BOOKED_DURATION_MINUTES
        return self.duration_minutes

    def start_minutes(self) -> int:
        try:
            return parse_minutes_of_day(self.start, strict=True)
        except InvalidTimeError:
            logger.warning("Booked interval has unparseable start %r, treating as midnight", self.start)
            return 0

    def to_range(self, day: date, tz=None) -> TimeRange:
        """Anchor this booking on a calendar date."""
        start = at_minutes(day, self.start_minutes(), tz)
        return TimeRange(start=start, end=start.add(minutes=self.effective_duration()))


@dataclass(frozen=True)
class CandidateSlot:
    """
    A bookable start time derived for display. Never persisted.
    """
    time_range: TimeRange

    @property
    def label(self) -> str:
        return format_time_label(self.time_range.start)

    @property
    def duration_minutes(self) -> int:
        return self.time_range.duration_minutes()


@dataclass
class Appointment:
    """
    A committed booking as stored by the booking store.

    Either ``customer_id`` is set, or the guest contact fields are.
    """
    id: str
    business_id: str
    service: str
    duration_minutes: int
    date: str
    time: str
    note: Optional[str] = None
    customer_id: Optional[str] = None
    guest_name: Optional[str] = None
    guest_phone: Optional[str] = None
    guest_email: Optional[str] = None

    def to_booked_interval(self) -> BookedInterval:
        return BookedInterval(start=self.time, duration_minutes=self.duration_minutes)

    def starts_at(self, tz=None) -> DateTime:
        """The start instant, from the stored date and time label."""
        day = pendulum.from_format(self.date, "YYYY-MM-DD").date()
        return self.to_booked_interval().to_range(day, tz).start

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "businessId": self.business_id,
            "service": self.service,
            "duration": self.duration_minutes,
            "date": self.date,
            "time": self.time,
            "note": self.note,
            "customerId": self.customer_id,
            "guestName": self.guest_name,
            "guestPhone": self.guest_phone,
            "guestEmail": self.guest_email,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Appointment":
        return cls(
            id=data["id"],
            business_id=data["businessId"],
            service=data.get("service", ""),
            duration_minutes=int(data.get("duration") or DEFAULT_BOOKED_DURATION_MINUTES),
            date=data["date"],
            time=data["time"],
            note=data.get("note"),
            customer_id=data.get("customerId"),
            guest_name=data.get("guestName"),
            guest_phone=data.get("guestPhone"),
            guest_email=data.get("guestEmail"),
        )


@dataclass
class AppointmentSchedule:
    """
    Appointments split around the current instant.

    ``upcoming`` holds those starting at or after now, soonest first.
    ``past`` holds the rest, most recent first.
    """
    upcoming: List[Appointment] = field(default_factory=list)
    past: List[Appointment] = field(default_factory=list)

    @classmethod
    def split(cls, appointments: Iterable[Appointment], now: DateTime, tz=None) -> "AppointmentSchedule":
        now_utc = to_utc(now)
        timed = [(to_utc(a.starts_at(tz)), a) for a in appointments]
        timed.sort(key=lambda pair: pair[0])
        return cls(
            upcoming=[a for start, a in timed if start >= now_utc],
            past=[a for start, a in reversed(timed) if start < now_utc],
        )


WEEKDAYS = range(7)  # 0=Sunday, 6=Saturday


@dataclass(frozen=True)
class Availability:
    """
    Recurring weekly windows plus blackout dates for one business calendar.

    A weekday mapped to an empty list is closed all day. Windows for a day
    keep their insertion order and may overlap.
    """
    weekly: Dict[int, Tuple[DailyWindow, ...]] = field(default_factory=dict)
    blackout_dates: frozenset = field(default_factory=frozenset)

    @classmethod
    def default(cls) -> "Availability":
        """Mon-Fri 09:00-17:00, weekends closed, no blackout dates."""
        business_day = (DailyWindow("09:00", "17:00"),)
        return cls(
            weekly={day: business_day if 1 <= day <= 5 else () for day in WEEKDAYS},
            blackout_dates=frozenset(),
        )

    def windows(self, weekday: int) -> Optional[Tuple[DailyWindow, ...]]:
        """Windows for a weekday, or None if the weekday is not configured."""
        return self.weekly.get(weekday)

    def is_blackout(self, day: date) -> bool:
        return format_local_date(day) in self.blackout_dates

    def with_window(self, weekday: int, window: DailyWindow) -> "Availability":
        windows = tuple(self.weekly.get(weekday, ()))
        return self._replace_day(weekday, windows + (window,))

    def without_window(self, weekday: int, index: int) -> "Availability":
        windows = list(self.weekly.get(weekday, ()))
        del windows[index]
        return self._replace_day(weekday, tuple(windows))

    def with_updated_window(self, weekday: int, index: int, window: DailyWindow) -> "Availability":
        windows = list(self.weekly.get(weekday, ()))
        windows[index] = window
        return self._replace_day(weekday, tuple(windows))

    def with_blackout(self, day: str) -> "Availability":
        return Availability(weekly=self.weekly, blackout_dates=self.blackout_dates | {day})

    def without_blackout(self, day: str) -> "Availability":
        return Availability(weekly=self.weekly, blackout_dates=self.blackout_dates - {day})

    def _replace_day(self, weekday: int, windows: Tuple[DailyWindow, ...]) -> "Availability":
        if weekday not in WEEKDAYS:
            raise ValueError(f"Weekday must be between 0 and 6, got {weekday}")
        weekly = dict(self.weekly)
        weekly[weekday] = windows
        return Availability(weekly=weekly, blackout_dates=self.blackout_dates)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "weekly": {
                str(day): [window.to_dict() for window in windows]
                for day, windows in sorted(self.weekly.items())
            },
            "blackoutDates": sorted(self.blackout_dates),
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["Availability"]:
        """
        Build from the stored document shape.

        Returns None when the document lacks ``weekly`` or ``blackoutDates``,
        which callers treat as "no availability configured".
        """
        if not data or data.get("weekly") is None or data.get("blackoutDates") is None:
            return None

        weekly: Dict[int, Tuple[DailyWindow, ...]] = {}
        for key, windows in data["weekly"].items():
            day = int(key)
            if day not in WEEKDAYS:
                logger.warning("Ignoring availability for unknown weekday %r", key)
                continue
            weekly[day] = tuple(DailyWindow.from_dict(w) for w in windows or [])

        return cls(weekly=weekly, blackout_dates=frozenset(data["blackoutDates"]))


@dataclass
class Business:
    """
    A business with its service catalog and (optional) availability.

    ``availability`` is None when the business never configured it.
    """
    id: str
    name: str
    phone: str = ""
    services: List[Service] = field(default_factory=list)
    availability: Optional[Availability] = None

    def find_service(self, name: str) -> Optional[Service]:
        return find_service(self.services, name)
