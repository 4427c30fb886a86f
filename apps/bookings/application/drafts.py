"""
Booking draft

The customer's in-progress booking: venue, date, start time, duration,
phone number and a single or group selection. Failed steps never clear it,
so nothing has to be re-entered after an error.

Every change to what has to be available (date, start time, room, system
type, quantity, duration, line items) bumps ``version`` and drops the last
availability result. Submission needs a result for the current version.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, List

from shared.domain.exceptions import CapacityError, PolicyError, ValidationError
from shared.domain.value_objects import ClockTime, Hours, Money, PhoneNumber

from apps.bookings.application.availability import AvailabilityQuery, AvailabilityResult
from apps.bookings.domain import pricing
from apps.bookings.domain.allocation import GroupSelection, SingleSelection
from apps.bookings.domain.entities import BookedSystems
from apps.cafes.domain.catalog import SystemTypeGroup, Venue, find_group, group_systems_by_type

logger = logging.getLogger(__name__)


class BookingDraft:

    def __init__(self, venue: Venue, friend_count: int | None = None):
        self.venue = venue
        self.booking_date: date | None = None
        self.start_time: str | None = None
        self.duration = Hours('1')
        self.phone_number = ''
        if friend_count is None:
            self.selection = SingleSelection()
        else:
            self.selection = GroupSelection(friend_count)
        self.version = 0
        self.availability: AvailabilityResult | None = None

    @property
    def is_group(self) -> bool:
        return isinstance(self.selection, GroupSelection)

    def _changed(self):
        self.version += 1
        self.availability = None

    def _ensure_open(self):
        if not self.venue.is_open:
            raise PolicyError(
                f"{self.venue.name or 'This cafe'} is currently closed and not accepting bookings",
                reason=PolicyError.VENUE_CLOSED,
            )

    # ----- when -----

    def set_date(self, booking_date: date):
        self.booking_date = booking_date
        self._changed()

    def set_start_time(self, start_time: str):
        self.start_time = ClockTime.parse(start_time).label()
        self._changed()

    def set_duration(self, hours):
        self.duration = Hours.bookable(hours)
        self._changed()

    def increase_duration(self):
        self.duration = self.duration.step_up()
        self._changed()

    def decrease_duration(self):
        self.duration = self.duration.step_down()
        self._changed()

    def set_phone_number(self, digits: str):
        # Validated at submission; typing a number does not touch availability
        self.phone_number = (digits or '').strip()

    # ----- what -----

    def groups_in(self, room_reference: str) -> List[SystemTypeGroup]:
        return group_systems_by_type(self.venue.get_room(room_reference))

    def select_room(self, room_reference: str):
        self._ensure_open()
        self._single().select_room(self.venue.get_room(room_reference))
        self._changed()

    def select_system(self, system_type: str):
        self._ensure_open()
        selection = self._single()
        if selection.room is None:
            raise ValidationError("Select a room first", field='room')
        selection.select_group(find_group(group_systems_by_type(selection.room), system_type))
        self._changed()

    def set_quantity(self, quantity: int):
        self._single().set_quantity(quantity)
        self._changed()

    def add_system(self, room_reference: str, system_type: str, quantity: int = 1):
        self._ensure_open()
        room = self.venue.get_room(room_reference)
        self._group().add(room, find_group(group_systems_by_type(room), system_type), quantity)
        self._changed()

    def increment(self, room_reference: str, system_type: str):
        self._group().increment(room_reference, system_type)
        self._changed()

    def decrement(self, room_reference: str, system_type: str):
        self._group().decrement(room_reference, system_type)
        self._changed()

    def remove_system(self, room_reference: str, system_type: str):
        self._group().remove(room_reference, system_type)
        self._changed()

    def set_friend_count(self, friend_count: int):
        self._group().set_friend_count(friend_count)
        self._changed()

    def _single(self) -> SingleSelection:
        if self.is_group:
            raise ValidationError("This is a group booking", field='systems_booked')
        return self.selection

    def _group(self) -> GroupSelection:
        if not self.is_group:
            raise ValidationError("This is a single booking", field='system_type')
        return self.selection

    # ----- derived -----

    @property
    def has_selection(self) -> bool:
        if self.is_group:
            return bool(self.selection.items)
        return self.selection.is_complete

    def booked_systems(self) -> BookedSystems:
        return self.selection.to_booked_systems()

    @property
    def total_price(self) -> Money | None:
        """Advisory total; the backend's total is the one that counts."""
        if not self.has_selection:
            return None
        if self.is_group:
            return pricing.price_lines(self.duration, self.selection.lines())
        return pricing.price(self.duration, self.booked_systems())

    def availability_queries(self) -> List[AvailabilityQuery]:
        if self.booking_date is None:
            raise ValidationError("Please select a date", field='booking_date')
        if self.is_group:
            pairs = [(item.room, item.group, item.quantity) for item in self.selection.items]
        elif self.selection.is_complete:
            pairs = [(self.selection.room, self.selection.group, self.selection.quantity)]
        else:
            pairs = []
        if not pairs:
            raise ValidationError("Please select a room and a system", field='system_type')
        return [
            AvailabilityQuery(
                venue_id=self.venue.id,
                room_ref=room.reference,
                system_type=group.type,
                booking_date=self.booking_date,
                duration=self.duration,
                quantity=quantity,
            )
            for room, group, quantity in pairs
        ]

    def apply_availability(self, result: AvailabilityResult) -> bool:
        """Store ``result`` unless it answers an older version of this draft."""
        if result.version != self.version:
            logger.info(
                f"Discarding stale availability result (version {result.version}, "
                f"draft at {self.version})"
            )
            return False
        self.availability = result
        return True

    def refresh_availability(self, oracle, credential=None) -> AvailabilityResult:
        """Ask ``oracle`` about the current selection and keep the answer if still current."""
        result = oracle.check_all(self.availability_queries(), credential=credential, version=self.version)
        self.apply_availability(result)
        return result

    # ----- submission -----

    def ensure_submittable(self, today: date):
        self._ensure_open()
        if self.booking_date is None:
            raise ValidationError("Please select a date", field='booking_date')
        if self.booking_date < today:
            raise ValidationError("Booking date cannot be in the past", field='booking_date')
        if not self.start_time:
            raise ValidationError("Please select a start time", field='start_time')
        PhoneNumber(self.phone_number)
        self.booked_systems()

        if self.availability is None:
            raise ValidationError("Check availability before booking", field='availability')
        if not self.availability.available:
            raise CapacityError("The selected systems are not available for this slot", limit=0)

    def can_submit(self, today: date) -> bool:
        try:
            self.ensure_submittable(today)
        except (ValidationError, CapacityError, PolicyError):
            return False
        return True

    def to_payload(self) -> dict[str, Any]:
        """
        Request body for createBooking.

        Carries unit prices but never a total: the backend prices the booking.
        """
        payload = {
            'cafeId': self.venue.id,
            'bookingDate': self.booking_date.isoformat(),
            'startTime': self.start_time,
            'duration': float(self.duration.value),
            'phoneNumber': self.phone_number,
        }
        payload.update(self.booked_systems().to_payload())
        return payload
