"""
Pricing Calculator

Total price = sum of unit price x duration x quantity over the booked lines.
A single booking is the one-line case. Pure functions; the backend's total
stays authoritative and whatever the customer saw is advisory.
"""

from __future__ import annotations

from typing import Iterable

from shared.domain.value_objects import Hours, Money

from apps.bookings.domain.entities import (
    BookedSystems,
    GroupBooking,
    SingleBooking,
    SystemLine,
)


def price_lines(duration: Hours, lines: Iterable[SystemLine]) -> Money:
    total = Money.zero()
    for line in lines:
        total = total + line.price_per_hour * duration * line.number_of_systems
    return total


def price(duration: Hours, systems: BookedSystems) -> Money:
    """Price a booking of either shape for ``duration`` hours."""
    if isinstance(systems, SingleBooking):
        line = systems.line
        return line.price_per_hour * duration * line.number_of_systems
    if isinstance(systems, GroupBooking):
        return price_lines(duration, systems.lines)
    raise TypeError(f"Cannot price {type(systems).__name__}")


def extension_amount(additional: Hours, systems: BookedSystems) -> Money:
    """Price of extending an existing booking by ``additional`` hours."""
    return price(additional, systems)
