"""
Tests for the BookingService orchestration layer.
"""

import asyncio
from decimal import Decimal
from typing import Dict, Optional

import pendulum
import pytest

from slotbook.adapters.booking_store import InMemoryBookingStore
from slotbook.domain.exceptions import (
    BookingConflictError,
    BookingValidationError,
    SlotUnavailableError,
    UnknownBusinessError,
    UnknownServiceError,
)
from slotbook.domain.models import Appointment, Availability, Business, Service
from slotbook.domain.slot_generator import SlotGenerator
from slotbook.services.booking_service import BookingService

TZ = "Europe/Berlin"
MONDAY = pendulum.date(2024, 11, 25)
EARLIER = pendulum.datetime(2024, 11, 20, 12, 0, tz=TZ)


class StubDirectory:
    """Minimal stub matching BusinessDirectoryProtocol."""

    def __init__(self, businesses: Dict[str, Business]):
        self._businesses = businesses
        self.calls = 0

    async def get_business(self, business_id: str) -> Optional[Business]:
        self.calls += 1
        # Yield like a real lookup so concurrent callers interleave
        await asyncio.sleep(0)
        return self._businesses.get(business_id)


def _build_service(*appointments: Appointment):
    business = Business(
        id="b1",
        name="Fade Factory",
        services=[
            Service("Haircut", 30, Decimal("25")),
            Service("Haircut & Beard", 60, Decimal("40"), True),
        ],
        availability=Availability.default(),
    )
    store = InMemoryBookingStore(appointments, timezone=TZ)
    service = BookingService(
        directory=StubDirectory({"b1": business}),
        store=store,
        slot_generator=SlotGenerator(timezone=TZ),
    )
    return service, store


def _existing(appointment_id: str = "a1", time: str = "10:00 AM", duration: int = 60) -> Appointment:
    return Appointment(
        id=appointment_id,
        business_id="b1",
        service="Haircut & Beard",
        duration_minutes=duration,
        date="2024-11-25",
        time=time,
        customer_id="c1",
    )


class TestAvailableSlots:
    """Tests for listing slots through the service."""

    def test_existing_bookings_are_excluded(self):
        """Slots come from the store's bookings for that date."""
        service, _ = _build_service(_existing())

        slots = asyncio.run(
            service.available_slots(business_id="b1", service_name="Haircut & Beard", day=MONDAY, now=EARLIER)
        )

        assert slots[:2] == ["9:00 AM", "11:00 AM"]

    def test_rescheduling_excludes_own_booking(self):
        """The appointment being edited does not block its own time."""
        service, _ = _build_service(_existing())

        slots = asyncio.run(
            service.available_slots(
                business_id="b1",
                service_name="Haircut & Beard",
                day=MONDAY,
                now=EARLIER,
                exclude_appointment_id="a1",
            )
        )

        assert "10:00 AM" in slots

    def test_unknown_business(self):
        """Unknown business ids raise."""
        service, _ = _build_service()

        with pytest.raises(UnknownBusinessError):
            asyncio.run(service.available_slots(business_id="nope", service_name="Haircut", day=MONDAY, now=EARLIER))

    def test_unknown_service(self):
        """Unknown service names raise and list what exists."""
        service, _ = _build_service()

        with pytest.raises(UnknownServiceError, match="Available: Haircut"):
            asyncio.run(service.available_slots(business_id="b1", service_name="Perm", day=MONDAY, now=EARLIER))


class TestBook:
    """Tests for committing bookings."""

    def test_book_persists_and_refreshes_slots(self):
        """A booked slot disappears from the next listing."""
        service, store = _build_service()

        appointment = asyncio.run(
            service.book(
                business_id="b1",
                service_name="Haircut",
                day=MONDAY,
                time="14:30",
                now=EARLIER,
                guest_name=" Ana ",
                guest_phone="555-0100",
                note="  ",
            )
        )

        assert appointment.time == "2:30 PM"
        assert appointment.duration_minutes == 30
        assert appointment.date == "2024-11-25"
        assert appointment.guest_name == "Ana"
        assert appointment.note is None
        assert asyncio.run(store.get_booking(appointment.id)) == appointment

        slots = asyncio.run(service.available_slots(business_id="b1", service_name="Haircut", day=MONDAY, now=EARLIER))
        assert "2:30 PM" not in slots
        assert "2:15 PM" not in slots
        assert "3:00 PM" in slots

    def test_customer_booking_clears_guest_fields(self):
        """Account bookings store the customer id only."""
        service, _ = _build_service()

        appointment = asyncio.run(
            service.book(
                business_id="b1", service_name="Haircut", day=MONDAY, time="9:00 am",
                now=EARLIER, customer_id="c9", guest_name="ignored",
            )
        )

        assert appointment.customer_id == "c9"
        assert appointment.guest_name is None

    def test_guest_needs_name_and_phone(self):
        """Walk-ins need contact details."""
        service, _ = _build_service()

        with pytest.raises(BookingValidationError, match="Guest name and phone"):
            asyncio.run(
                service.book(business_id="b1", service_name="Haircut", day=MONDAY, time="9:00 AM",
                             now=EARLIER, guest_name="Ana")
            )

    def test_taken_time_rejected(self):
        """Times that are not offered cannot be booked."""
        service, _ = _build_service(_existing())

        with pytest.raises(SlotUnavailableError, match="10:15 AM is not available"):
            asyncio.run(
                service.book(business_id="b1", service_name="Haircut", day=MONDAY, time="10:15 AM",
                             now=EARLIER, customer_id="c2")
            )

    def test_racing_bookings_for_one_slot(self):
        """Both bookers pass the availability check; the store rejects the second write."""
        service, store = _build_service()

        async def race():
            return await asyncio.gather(
                service.book(business_id="b1", service_name="Haircut", day=MONDAY, time="1:00 PM",
                             now=EARLIER, customer_id="c1"),
                service.book(business_id="b1", service_name="Haircut", day=MONDAY, time="1:00 PM",
                             now=EARLIER, customer_id="c2"),
                return_exceptions=True,
            )

        results = asyncio.run(race())

        assert isinstance(results[0], Appointment)
        assert isinstance(results[1], BookingConflictError)
        assert "overlaps existing booking" in str(results[1])
        assert [a.customer_id for a in asyncio.run(store.list_bookings("b1", "2024-11-25"))] == ["c1"]


class TestReschedule:
    """Tests for moving appointments."""

    def test_shift_within_own_booking(self):
        """An appointment can move 15 minutes into its own old span."""
        service, store = _build_service(_existing())

        moved = asyncio.run(service.reschedule(appointment_id="a1", day=MONDAY, time="10:15 AM", now=EARLIER))

        assert moved.time == "10:15 AM"
        assert asyncio.run(store.get_booking("a1")).time == "10:15 AM"

    def test_switch_service_and_day(self):
        """Rescheduling can change service (and so duration) and date."""
        service, store = _build_service(_existing())
        tuesday = pendulum.date(2024, 11, 26)

        moved = asyncio.run(
            service.reschedule(appointment_id="a1", day=tuesday, time="4:30 PM", now=EARLIER, service_name="Haircut")
        )

        assert (moved.date, moved.time, moved.duration_minutes) == ("2024-11-26", "4:30 PM", 30)

    def test_conflicting_target_rejected(self):
        """Another booking still blocks the new time."""
        service, _ = _build_service(_existing(), _existing("a2", "1:00 PM", 30))

        with pytest.raises(SlotUnavailableError):
            asyncio.run(service.reschedule(appointment_id="a1", day=MONDAY, time="12:30 PM", now=EARLIER))

    def test_unknown_appointment(self):
        """Unknown appointment ids raise."""
        service, _ = _build_service()

        with pytest.raises(BookingValidationError, match="Unknown appointment"):
            asyncio.run(service.reschedule(appointment_id="zz", day=MONDAY, time="9:00 AM", now=EARLIER))


class TestCancel:
    """Tests for cancelling appointments."""

    def test_cancelled_slot_is_offered_again(self):
        """Cancelling frees the time for the next listing."""
        service, store = _build_service(_existing())

        cancelled = asyncio.run(service.cancel(appointment_id="a1"))

        assert cancelled.id == "a1"
        assert asyncio.run(store.get_booking("a1")) is None
        slots = asyncio.run(
            service.available_slots(business_id="b1", service_name="Haircut & Beard", day=MONDAY, now=EARLIER)
        )
        assert "10:00 AM" in slots
        assert "9:15 AM" in slots

    def test_unknown_appointment(self):
        """Cancelling an unknown id raises."""
        service, _ = _build_service()

        with pytest.raises(BookingValidationError, match="Unknown appointment: zz"):
            asyncio.run(service.cancel(appointment_id="zz"))


class TestAppointmentLists:
    """Tests for the upcoming/past appointment views."""

    def setup_method(self):
        tuesday = _existing("a3", "9:00 AM", 30)
        tuesday.date = "2024-11-26"
        other_customer = _existing("a4", "3:00 PM", 30)
        other_customer.customer_id = "c2"
        self.service, _ = _build_service(
            _existing("a1", "10:00 AM"), _existing("a2", "1:00 PM", 30), tuesday, other_customer,
        )
        self.now = pendulum.datetime(2024, 11, 25, 12, 0, tz=TZ)

    def test_business_schedule_split_around_now(self):
        """Upcoming is soonest first, past is most recent first."""
        schedule = asyncio.run(self.service.business_appointments(business_id="b1", now=self.now))

        assert [a.id for a in schedule.upcoming] == ["a2", "a4", "a3"]
        assert [a.id for a in schedule.past] == ["a1"]

    def test_appointment_starting_now_is_upcoming(self):
        """The boundary instant counts as upcoming."""
        now = pendulum.datetime(2024, 11, 25, 13, 0, tz=TZ)

        schedule = asyncio.run(self.service.business_appointments(business_id="b1", now=now))

        assert [a.id for a in schedule.upcoming] == ["a2", "a4", "a3"]

    def test_customer_schedule(self):
        """Only the customer's own appointments are listed."""
        schedule = asyncio.run(self.service.customer_appointments(customer_id="c1", now=self.now))

        assert [a.id for a in schedule.upcoming] == ["a2", "a3"]
        assert [a.id for a in schedule.past] == ["a1"]

    def test_unknown_business(self):
        """Listing for an unknown business raises."""
        with pytest.raises(UnknownBusinessError):
            asyncio.run(self.service.business_appointments(business_id="nope", now=self.now))
