"""
Application services for listing slots and committing bookings.

The service fetches business data and a fresh booking snapshot through
protocol-typed collaborators and delegates slot generation to the
domain-level ``SlotGenerator``. Mutual exclusion between concurrent
bookers is the booking store's job; the service only checks that the
requested time is still offered before asking the store to write.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import List, Optional, Protocol

import pendulum
from pendulum import DateTime

from ..domain.exceptions import (
    BookingValidationError,
    SlotUnavailableError,
    UnknownBusinessError,
    UnknownServiceError,
)
from ..domain.models import Appointment, AppointmentSchedule, BookedInterval, Business, Service
from ..domain.slot_generator import SlotGenerator
from ..domain.timeutils import format_local_date, parse_minutes_of_day

logger = logging.getLogger(__name__)


class BusinessDirectoryProtocol(Protocol):
    """Read-only access to business profiles."""

    async def get_business(self, business_id: str) -> Optional[Business]:
        """Return the business, or None if unknown."""


class BookingStoreProtocol(Protocol):
    """Booking storage; writes must reject overlapping bookings."""

    async def list_bookings(self, business_id: str, day: str) -> List[Appointment]:
        """Return bookings for a business on a ``YYYY-MM-DD`` date."""

    async def get_booking(self, appointment_id: str) -> Optional[Appointment]:
        """Return a booking by id, or None."""

    async def create_booking(self, appointment: Appointment) -> Appointment:
        """Persist a new booking."""

    async def update_booking(self, appointment: Appointment) -> Appointment:
        """Replace an existing booking."""

    async def delete_booking(self, appointment_id: str) -> Appointment:
        """Remove a booking; raises KeyError if unknown."""

    async def list_for_business(self, business_id: str) -> List[Appointment]:
        """Return all bookings of a business."""

    async def list_for_customer(self, customer_id: str) -> List[Appointment]:
        """Return all bookings of a customer account."""


class BookingService:
    """
    Orchestrates business lookup, booking snapshots and slot generation.
    """

    def __init__(
        self,
        directory: BusinessDirectoryProtocol,
        store: BookingStoreProtocol,
        slot_generator: SlotGenerator,
    ) -> None:
        self._directory = directory
        self._store = store
        self._slot_generator = slot_generator

    async def available_slots(
        self,
        *,
        business_id: str,
        service_name: str,
        day: date,
        now: Optional[DateTime] = None,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[str]:
        """
        Return the bookable start times for a service on a date.

        Bookings are re-read on every call. When rescheduling, pass the
        appointment being edited so its current time stays selectable.
        """
        business = await self._require_business(business_id)
        service = self._require_service(business, service_name)

        booked = await self.fetch_booked_intervals(
            business_id=business_id,
            day=day,
            exclude_appointment_id=exclude_appointment_id,
        )

        return self._slot_generator.generate_slots(
            day,
            service.duration_minutes,
            business.availability,
            booked,
            now,
        )

    async def fetch_booked_intervals(
        self,
        *,
        business_id: str,
        day: date,
        exclude_appointment_id: Optional[str] = None,
    ) -> List[BookedInterval]:
        """Fetch the booked intervals for a business on a date."""
        appointments = await self._store.list_bookings(business_id, format_local_date(day))
        return [
            appointment.to_booked_interval()
            for appointment in appointments
            if appointment.id != exclude_appointment_id
        ]

    async def book(
        self,
        *,
        business_id: str,
        service_name: str,
        day: date,
        time: str,
        now: Optional[DateTime] = None,
        customer_id: Optional[str] = None,
        guest_name: Optional[str] = None,
        guest_phone: Optional[str] = None,
        guest_email: Optional[str] = None,
        note: Optional[str] = None,
    ) -> Appointment:
        """
        Book ``time`` on ``day`` for a customer account or a walk-in guest.

        Raises:
            UnknownBusinessError, UnknownServiceError: For bad identifiers
            BookingValidationError: If neither a customer nor guest contact is given
            SlotUnavailableError: If the time is not currently offered
            BookingConflictError: If the store detects an overlap on write
        """
        if not customer_id and not ((guest_name or "").strip() and (guest_phone or "").strip()):
            raise BookingValidationError("Guest name and phone are required.")

        label = self._normalize_label(time)
        slots = await self.available_slots(
            business_id=business_id,
            service_name=service_name,
            day=day,
            now=now,
        )
        if label not in slots:
            raise SlotUnavailableError(f"{label} is not available on {format_local_date(day)}")

        business = await self._require_business(business_id)
        service = self._require_service(business, service_name)

        appointment = Appointment(
            id=str(uuid.uuid4()),
            business_id=business_id,
            service=service.name,
            duration_minutes=service.duration_minutes,
            date=format_local_date(day),
            time=label,
            note=(note or "").strip() or None,
            customer_id=customer_id,
            guest_name=None if customer_id else guest_name.strip(),
            guest_phone=None if customer_id else guest_phone.strip(),
            guest_email=None if customer_id else ((guest_email or "").strip() or None),
        )
        logger.info("Booking %s for %s on %s at %s", service.name, business.name, appointment.date, label)
        return await self._store.create_booking(appointment)

    async def reschedule(
        self,
        *,
        appointment_id: str,
        day: date,
        time: str,
        now: Optional[DateTime] = None,
        service_name: Optional[str] = None,
    ) -> Appointment:
        """
        Move an existing appointment, optionally switching its service.

        The appointment's own current time does not block the new one.
        """
        existing = await self._store.get_booking(appointment_id)
        if existing is None:
            raise BookingValidationError(f"Unknown appointment: {appointment_id}")

        business = await self._require_business(existing.business_id)
        service = self._require_service(business, service_name or existing.service)

        label = self._normalize_label(time)
        slots = await self.available_slots(
            business_id=existing.business_id,
            service_name=service.name,
            day=day,
            now=now,
            exclude_appointment_id=appointment_id,
        )
        if label not in slots:
            raise SlotUnavailableError(f"{label} is not available on {format_local_date(day)}")

        existing.service = service.name
        existing.duration_minutes = service.duration_minutes
        existing.date = format_local_date(day)
        existing.time = label
        return await self._store.update_booking(existing)

    async def cancel(self, *, appointment_id: str) -> Appointment:
        """
        Cancel an appointment. Its time is offered again to later callers.

        Raises:
            BookingValidationError: If the appointment does not exist
        """
        try:
            appointment = await self._store.delete_booking(appointment_id)
        except KeyError:
            raise BookingValidationError(f"Unknown appointment: {appointment_id}") from None

        logger.info("Cancelled %s on %s at %s", appointment.service, appointment.date, appointment.time)
        return appointment

    async def business_appointments(
        self,
        *,
        business_id: str,
        now: Optional[DateTime] = None,
    ) -> AppointmentSchedule:
        """A business's appointments, split into upcoming and past."""
        await self._require_business(business_id)
        appointments = await self._store.list_for_business(business_id)
        return self._split(appointments, now)

    async def customer_appointments(
        self,
        *,
        customer_id: str,
        now: Optional[DateTime] = None,
    ) -> AppointmentSchedule:
        """A customer's appointments across businesses, split into upcoming and past."""
        appointments = await self._store.list_for_customer(customer_id)
        return self._split(appointments, now)

    def _split(self, appointments: List[Appointment], now: Optional[DateTime]) -> AppointmentSchedule:
        tz = self._slot_generator.timezone
        return AppointmentSchedule.split(appointments, now or pendulum.now(tz), tz)

    async def _require_business(self, business_id: str) -> Business:
        business = await self._directory.get_business(business_id)
        if business is None:
            raise UnknownBusinessError(f"Unknown business: '{business_id}'")
        return business

    @staticmethod
    def _require_service(business: Business, service_name: str) -> Service:
        service = business.find_service(service_name)
        if service is None:
            raise UnknownServiceError(
                f"Unknown service '{service_name}' for {business.name}. "
                f"Available: {', '.join(s.name for s in business.services) or 'none'}"
            )
        return service

    @staticmethod
    def _normalize_label(time: str) -> str:
        """Accept ``"14:30"`` or ``"2:30 pm"`` and return ``"2:30 PM"``."""
        minutes = parse_minutes_of_day(time, strict=True)
        hour, minute = divmod(minutes, 60)
        meridiem = "AM" if hour < 12 else "PM"
        return f"{hour % 12 or 12}:{minute:02d} {meridiem}"
