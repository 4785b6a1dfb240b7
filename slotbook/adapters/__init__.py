"""
Adapters layer - Storage collaborators for businesses and bookings.
"""

from .booking_store import InMemoryBookingStore
from .json_directory import JsonBusinessDirectory

__all__ = ["InMemoryBookingStore", "JsonBusinessDirectory"]
