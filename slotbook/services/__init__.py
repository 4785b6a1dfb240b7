"""
Service layer helpers that orchestrate adapters and domain logic.
"""

from .booking_service import BookingService, BookingStoreProtocol, BusinessDirectoryProtocol

__all__ = ["BookingService", "BookingStoreProtocol", "BusinessDirectoryProtocol"]
