"""
In-memory booking store.

Reads return snapshots. Writes re-check overlaps against the other bookings
of the same business and date while holding a lock, so two callers racing
for the same slot cannot both succeed.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

import pendulum

from ..domain.conflicts import find_conflicts
from ..domain.exceptions import BookingConflictError
from ..domain.models import Appointment

logger = logging.getLogger(__name__)


class InMemoryBookingStore:
    """
    Keeps appointments in a dict keyed by appointment id.

    Conflict checks anchor bookings on their stored date in ``timezone``.

    The ``asyncio.Lock`` makes the overlap check and the write of
    ``create_booking`` and ``update_booking`` one critical section. Here the
    section has no await, so the event loop already runs it atomically. The
    lock is what keeps a store whose writes await I/O (a database or a
    remote document store) from interleaving two checks before either
    write lands.
    """

    def __init__(self, appointments: Iterable[Appointment] = (), timezone: Optional[str] = None):
        self._appointments: Dict[str, Appointment] = {a.id: a for a in appointments}
        self._timezone = timezone
        self._lock = asyncio.Lock()

    async def list_bookings(self, business_id: str, day: str) -> List[Appointment]:
        """List bookings for a business on a ``YYYY-MM-DD`` date."""
        return [
            replace(appointment)
            for appointment in self._appointments.values()
            if appointment.business_id == business_id and appointment.date == day
        ]

    async def get_booking(self, appointment_id: str) -> Optional[Appointment]:
        appointment = self._appointments.get(appointment_id)
        return replace(appointment) if appointment else None

    async def list_for_business(self, business_id: str) -> List[Appointment]:
        """List every booking of a business, on any date."""
        return [replace(a) for a in self._appointments.values() if a.business_id == business_id]

    async def list_for_customer(self, customer_id: str) -> List[Appointment]:
        """List every booking made by a customer account."""
        return [replace(a) for a in self._appointments.values() if a.customer_id == customer_id]

    async def create_booking(self, appointment: Appointment) -> Appointment:
        """
        Persist a new booking.

        Raises:
            BookingConflictError: If the id exists or the time overlaps another booking
        """
        async with self._lock:
            if appointment.id in self._appointments:
                raise BookingConflictError(f"Appointment {appointment.id} already exists")
            self._ensure_free(appointment)
            self._appointments[appointment.id] = replace(appointment)

        logger.info(
            "Created booking %s for %s on %s at %s",
            appointment.id, appointment.business_id, appointment.date, appointment.time,
        )
        return appointment

    async def update_booking(self, appointment: Appointment) -> Appointment:
        """
        Replace an existing booking, ignoring its own previous time in the check.

        Raises:
            KeyError: If the booking does not exist
            BookingConflictError: If the new time overlaps another booking
        """
        async with self._lock:
            if appointment.id not in self._appointments:
                raise KeyError(appointment.id)
            self._ensure_free(appointment)
            self._appointments[appointment.id] = replace(appointment)

        logger.info("Updated booking %s to %s at %s", appointment.id, appointment.date, appointment.time)
        return appointment

    async def delete_booking(self, appointment_id: str) -> Appointment:
        """
        Remove a booking and return it. Its time becomes free again.

        Raises:
            KeyError: If the booking does not exist
        """
        async with self._lock:
            appointment = self._appointments.pop(appointment_id)

        logger.info("Deleted booking %s on %s at %s", appointment.id, appointment.date, appointment.time)
        return appointment

    def _ensure_free(self, appointment: Appointment) -> None:
        others = [
            existing.to_booked_interval()
            for existing in self._appointments.values()
            if existing.business_id == appointment.business_id
            and existing.date == appointment.date
            and existing.id != appointment.id
        ]
        if not others:
            return

        day = pendulum.from_format(appointment.date, "YYYY-MM-DD").date()
        candidate = appointment.to_booked_interval().to_range(day, self._timezone)
        conflicts = find_conflicts(candidate, others, day, self._timezone)
        if conflicts:
            taken = ", ".join(f"{c.start} ({c.effective_duration()} min)" for c in conflicts)
            raise BookingConflictError(
                f"{appointment.time} on {appointment.date} overlaps existing booking(s): {taken}"
            )
