"""
Domain layer - Pure scheduling logic without external dependencies.
"""

from .availability import FALLBACK_WINDOWS, is_bookable_date, windows_for
from .conflicts import find_conflicts, intervals_overlap, overlaps
from .models import (
    Appointment,
    AppointmentSchedule,
    Availability,
    BookedInterval,
    Business,
    CandidateSlot,
    DailyWindow,
    Service,
    TimeRange,
    find_service,
)
from .slot_generator import SlotGenerator, generate_slots

__all__ = [
    "Appointment",
    "AppointmentSchedule",
    "Availability",
    "BookedInterval",
    "Business",
    "CandidateSlot",
    "DailyWindow",
    "FALLBACK_WINDOWS",
    "Service",
    "SlotGenerator",
    "TimeRange",
    "find_conflicts",
    "find_service",
    "generate_slots",
    "intervals_overlap",
    "is_bookable_date",
    "overlaps",
    "windows_for",
]
