"""
Booking Domain Events

Published after the local booking mirror has been committed.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from shared.domain.base import DomainEvent
from shared.domain.value_objects import Money


@dataclass
class BookingCreated(DomainEvent):
    """
    Event: The backend accepted a new booking (status Pending Payment)

    Triggers:
    - Prompt the customer to pay
    """
    booking_id: str = None
    venue_id: str = None
    booking_date: date = None
    total_price: Money = None
    is_group: bool = False


@dataclass
class BookingPaid(DomainEvent):
    """Event: Initial payment settled (PENDING_PAYMENT -> BOOKED)"""
    booking_id: str = None
    amount: Money = None
    payment_id: str | None = None


@dataclass
class SessionStarted(DomainEvent):
    """Event: The customer's session began at the venue (BOOKED -> ACTIVE)"""
    booking_id: str = None
    started_at: datetime = None


@dataclass
class SessionEnded(DomainEvent):
    """Event: Session finished (ACTIVE -> COMPLETED)"""
    booking_id: str = None


@dataclass
class BookingExtended(DomainEvent):
    """
    Event: The venue extended the session

    Triggers:
    - Ask the customer to pay ``amount_due``
    """
    booking_id: str = None
    additional_hours: Decimal = None
    amount_due: Money = None


@dataclass
class ExtensionSettled(DomainEvent):
    """Event: Extension payment settled"""
    booking_id: str = None
    amount: Money = None
    payment_id: str | None = None


@dataclass
class BookingCancelled(DomainEvent):
    """
    Event: Booking was cancelled

    ``refund`` carries the backend's refund details {method, amount, status}.
    """
    booking_id: str = None
    old_status: str = None
    refund: dict | None = None
