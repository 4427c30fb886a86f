"""
Catalog Model

Normalises a room's raw system inventory into system-type groups.

A room holds individual units ("PS5 #3", "PC-High-End #1"); customers pick
a type and a quantity, never a specific unit. Units of one type are folded
into a SystemTypeGroup:

- count: number of Available units of that type
- unit_price: the cheapest hourly price among those units
- unit_ids: identifiers of the folded units (len(unit_ids) == count)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, List

from shared.domain.value_objects import Money, to_decimal

logger = logging.getLogger(__name__)


class SystemStatus(Enum):
    AVAILABLE = 'Available'
    UNDER_MAINTENANCE = 'UnderMaintenance'
    ACTIVE = 'Active'

    @classmethod
    def parse(cls, raw: str | None) -> 'SystemStatus':
        # Units without a status are treated as bookable
        if not raw:
            return cls.AVAILABLE
        normalised = str(raw).replace(' ', '').lower()
        for status in cls:
            if status.value.lower() == normalised:
                return status
        raise ValueError(f"Unknown system status: {raw}")


@dataclass(frozen=True)
class SystemUnit:
    """One bookable device inside a room."""
    identifier: str | None
    type: str
    price_per_hour: Decimal
    status: SystemStatus = SystemStatus.AVAILABLE

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> 'SystemUnit':
        identifier = data.get('_id') or data.get('id') or data.get('systemId')
        return cls(
            identifier=str(identifier) if identifier else None,
            type=data.get('type') or data.get('systemType') or '',
            price_per_hour=to_decimal(data.get('pricePerHour') or 0),
            status=SystemStatus.parse(data.get('status')),
        )


@dataclass(frozen=True)
class SystemTypeGroup:
    """Available units of one type within a room."""
    type: str
    unit_price: Money
    unit_ids: tuple[str, ...]

    @property
    def count(self) -> int:
        return len(self.unit_ids)

    @property
    def label(self) -> str:
        return f"{self.type} (₹{self.unit_price.amount}/hr)"


@dataclass
class Room:
    """
    A sub-area of a venue

    ``reference`` is the server id when one was issued, otherwise the room
    type and, as a last resort, the room name.
    """
    reference: str
    name: str
    systems: List[SystemUnit] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> 'Room':
        name = data.get('name') or data.get('roomType') or ''
        reference = data.get('_id') or data.get('id') or data.get('roomType') or name
        return cls(
            reference=str(reference),
            name=name,
            systems=[SystemUnit.from_payload(s) for s in data.get('systems') or []],
        )

    def summary(self) -> str:
        """Human readable inventory, e.g. "PS5 (2), PC (5)"."""
        counts: dict[str, int] = {}
        for unit in self.systems:
            counts[unit.type] = counts.get(unit.type, 0) + 1
        return ', '.join(f"{system_type} ({count})" for system_type, count in counts.items())

    def starting_price(self) -> Money | None:
        """Cheapest hourly price in the room, shown as "Starting from"."""
        if not self.systems:
            return None
        return Money(min(unit.price_per_hour for unit in self.systems))


@dataclass
class Venue:
    """A cafe offering bookable systems."""
    id: str
    name: str
    is_open: bool = True
    rooms: List[Room] = field(default_factory=list)

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> 'Venue':
        is_open = data.get('isOpen')
        if is_open is None:
            is_open = str(data.get('status', 'open')).lower() != 'closed'
        return cls(
            id=str(data.get('_id') or data.get('id')),
            name=data.get('name', ''),
            is_open=bool(is_open),
            rooms=[Room.from_payload(r) for r in data.get('rooms') or []],
        )

    def get_room(self, reference: str) -> Room:
        for room in self.rooms:
            if room.reference == reference:
                return room
        raise KeyError(f"Room {reference} not found in venue {self.id}")


def group_systems_by_type(room: Room) -> List[SystemTypeGroup]:
    """
    Fold a room's Available units into per-type groups.

    Units without an identifier are skipped with a warning; units that are
    not Available are skipped silently. Groups keep the order in which a type
    first appears. An empty list means "no systems available", not an error.
    """
    order: List[str] = []
    prices: dict[str, Decimal] = {}
    ids: dict[str, List[str]] = {}

    for position, unit in enumerate(room.systems):
        if not unit.identifier:
            logger.warning(
                f"Skipping system #{position} ({unit.type or 'untyped'}) in room "
                f"{room.reference}: no identifier"
            )
            continue
        if unit.status is not SystemStatus.AVAILABLE:
            continue

        if unit.type not in ids:
            order.append(unit.type)
            ids[unit.type] = []
            prices[unit.type] = unit.price_per_hour
        ids[unit.type].append(unit.identifier)
        prices[unit.type] = min(prices[unit.type], unit.price_per_hour)

    return [
        SystemTypeGroup(
            type=system_type,
            unit_price=Money(prices[system_type]),
            unit_ids=tuple(ids[system_type]),
        )
        for system_type in order
    ]


def find_group(groups: Iterable[SystemTypeGroup], system_type: str) -> SystemTypeGroup:
    for group in groups:
        if group.type == system_type:
            return group
    raise KeyError(f"No available systems of type {system_type}")
