"""
Allocation Engine

Accepts, rejects or adjusts the systems a customer selects.

Single mode: one room, one system type, 1 <= quantity <= group.count.

Group mode: the customer declares a head-count (friend_count >= 2) and
assembles line items across rooms and types. On every change:

1. sum(quantities) <= friend_count
2. a (room, type) pair appears at most once; adding it again increments
3. a line item's quantity never exceeds its group's count
4. decrementing to zero removes the line item

A rejected change raises CapacityError and leaves the selection untouched.
Submission requires sum(quantities) == friend_count exactly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

from shared.domain.exceptions import CapacityError, ValidationError

from apps.bookings.domain.entities import (
    GroupBooking,
    SingleBooking,
    SystemLine,
)
from apps.cafes.domain.catalog import Room, SystemTypeGroup


def _line(room: Room, group: SystemTypeGroup, quantity: int) -> SystemLine:
    return SystemLine(
        room_type=room.name or room.reference,
        system_type=group.type,
        number_of_systems=quantity,
        price_per_hour=group.unit_price,
    )


class SingleSelection:
    """Room, system type and quantity for a single booking."""

    def __init__(self):
        self.room: Room | None = None
        self.group: SystemTypeGroup | None = None
        self.quantity = 1

    def select_room(self, room: Room):
        """Choosing another room clears the system type."""
        self.room = room
        self.group = None
        self.quantity = 1

    def select_group(self, group: SystemTypeGroup):
        if self.room is None:
            raise ValidationError("Select a room first", field='room')
        if group.count < 1:
            raise CapacityError(f"No {group.type} systems available", limit=0)
        self.group = group
        self.quantity = 1

    def set_quantity(self, quantity: int):
        if self.group is None:
            raise ValidationError("Select a system first", field='system_type')
        if quantity < 1:
            raise ValidationError("Select at least one system", field='number_of_systems')
        if quantity > self.group.count:
            raise CapacityError(
                f"Only {self.group.count} {self.group.type} system(s) available",
                limit=self.group.count,
            )
        self.quantity = quantity

    def increment(self):
        self.set_quantity(self.quantity + 1)

    def decrement(self):
        self.set_quantity(self.quantity - 1)

    @property
    def is_complete(self) -> bool:
        return self.room is not None and self.group is not None

    def to_booked_systems(self) -> SingleBooking:
        if not self.is_complete:
            raise ValidationError("Please select a room and a system", field='system_type')
        return SingleBooking(line=_line(self.room, self.group, self.quantity))


@dataclass
class LineItem:
    room: Room
    group: SystemTypeGroup
    quantity: int

    @property
    def key(self) -> Tuple[str, str]:
        return (self.room.reference, self.group.type)


class GroupSelection:
    """Working set of line items for a group booking."""

    def __init__(self, friend_count: int):
        if friend_count < 2:
            raise ValidationError("A group booking needs at least 2 people", field='friend_count')
        self.friend_count = friend_count
        self._items: List[LineItem] = []

    @property
    def items(self) -> List[LineItem]:
        return list(self._items)

    @property
    def total(self) -> int:
        return sum(item.quantity for item in self._items)

    @property
    def remaining(self) -> int:
        return self.friend_count - self.total

    def _find(self, room_reference: str, system_type: str) -> LineItem | None:
        for item in self._items:
            if item.key == (room_reference, system_type):
                return item
        return None

    def _check_step(self, by: int):
        if by < 1:
            raise ValidationError("Step must be at least one system", field='number_of_systems')

    def _check_room_for(self, extra: int):
        if self.total + extra > self.friend_count:
            raise CapacityError(
                f"Limit reached: you can select {self.friend_count} systems for your group",
                limit=self.friend_count,
            )

    def add(self, room: Room, group: SystemTypeGroup, quantity: int = 1):
        """Add a line item, or increment the existing one for the same room and type."""
        if quantity < 1:
            raise ValidationError("Select at least one system", field='number_of_systems')

        existing = self._find(room.reference, group.type)
        if existing is not None:
            self.increment(room.reference, group.type, by=quantity)
            return

        if quantity > group.count:
            raise CapacityError(
                f"Only {group.count} {group.type} system(s) available in {room.name or room.reference}",
                limit=group.count,
            )
        self._check_room_for(quantity)
        self._items.append(LineItem(room=room, group=group, quantity=quantity))

    def increment(self, room_reference: str, system_type: str, by: int = 1):
        self._check_step(by)
        item = self._find(room_reference, system_type)
        if item is None:
            raise ValidationError(f"{system_type} is not in your selection", field='systems_booked')
        if item.quantity + by > item.group.count:
            raise CapacityError(
                f"Only {item.group.count} {system_type} system(s) available",
                limit=item.group.count,
            )
        self._check_room_for(by)
        item.quantity += by

    def decrement(self, room_reference: str, system_type: str, by: int = 1):
        self._check_step(by)
        item = self._find(room_reference, system_type)
        if item is None:
            raise ValidationError(f"{system_type} is not in your selection", field='systems_booked')
        item.quantity -= by
        if item.quantity <= 0:
            self._items.remove(item)

    def remove(self, room_reference: str, system_type: str):
        item = self._find(room_reference, system_type)
        if item is not None:
            self._items.remove(item)

    def set_friend_count(self, friend_count: int):
        if friend_count < 2:
            raise ValidationError("A group booking needs at least 2 people", field='friend_count')
        if friend_count < self.total:
            raise CapacityError(
                f"You already selected {self.total} systems; remove some first",
                limit=self.total,
            )
        self.friend_count = friend_count

    @property
    def is_complete(self) -> bool:
        return self.total == self.friend_count

    def validate_for_submission(self):
        if self.remaining > 0:
            raise ValidationError(
                f"Please select {self.remaining} more system(s) for your group of {self.friend_count}",
                field='systems_booked',
                missing=self.remaining,
            )

    def lines(self) -> Tuple[SystemLine, ...]:
        return tuple(_line(item.room, item.group, item.quantity) for item in self._items)

    def to_booked_systems(self) -> GroupBooking:
        self.validate_for_submission()
        return GroupBooking(
            lines=self.lines(),
            friend_count=self.friend_count,
        )
