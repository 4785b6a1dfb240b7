"""
Domain-specific exception hierarchy for the slotbook application.
"""


class SchedulingError(Exception):
    """Base class for all application-level errors."""


class InvalidTimeError(SchedulingError, ValueError):
    """Raised when a time-of-day string cannot be parsed in strict mode."""


class UnknownBusinessError(SchedulingError):
    """Raised when a business identifier does not resolve to a business."""


class UnknownServiceError(SchedulingError):
    """Raised when a service name is not part of the business catalog."""


class BookingValidationError(SchedulingError):
    """Raised when a booking request is incomplete or malformed."""


class SlotUnavailableError(SchedulingError):
    """Raised when the requested start time is not among the bookable slots."""


class BookingConflictError(SchedulingError):
    """Raised by a booking store when a write would overlap an existing booking."""
