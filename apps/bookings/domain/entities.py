"""
Booking Domain Entities

- Booking: aggregate root for a reservation of gaming systems
- BookingStatus: FSM states for the booking lifecycle
- ExtensionPaymentStatus: state of an owner-initiated extension obligation
- SingleBooking / GroupBooking: the two shapes of booked systems
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Tuple, Union

from shared.domain.base import Aggregate, ValueObject
from shared.domain.exceptions import PolicyError, ValidationError
from shared.domain.value_objects import Hours, Money, PhoneNumber, to_decimal

from apps.bookings.domain import policies

logger = logging.getLogger(__name__)


class BookingStatus(Enum):
    """
    Booking Status Finite State Machine

    State transitions:
    - PENDING_PAYMENT -> BOOKED (initial payment settled, OTP issued)
    - PENDING_PAYMENT -> CANCELLED
    - BOOKED -> ACTIVE (session started at the venue)
    - BOOKED -> CANCELLED (inside the cancellation window)
    - ACTIVE -> COMPLETED (session ended)
    A failed payment leaves the booking in PENDING_PAYMENT for another attempt.
    """
    PENDING_PAYMENT = 'Pending Payment'
    BOOKED = 'Booked'
    ACTIVE = 'Active'
    COMPLETED = 'Completed'
    CANCELLED = 'Cancelled'

    @classmethod
    def parse(cls, raw: str) -> 'BookingStatus':
        normalised = (raw or '').replace('_', ' ').replace('-', ' ').strip().lower()
        for status in cls:
            if status.value.lower() == normalised or status.name.lower().replace('_', ' ') == normalised:
                return status
        raise ValueError(f"Unknown booking status: {raw}")


BOOKING_TRANSITIONS = {
    BookingStatus.PENDING_PAYMENT: {BookingStatus.BOOKED, BookingStatus.CANCELLED},
    BookingStatus.BOOKED: {BookingStatus.ACTIVE, BookingStatus.CANCELLED},
    BookingStatus.ACTIVE: {BookingStatus.COMPLETED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.CANCELLED: set(),
}

EXTENDABLE_STATUSES = (BookingStatus.ACTIVE, BookingStatus.COMPLETED)


class ExtensionPaymentStatus(Enum):
    NONE = 'none'
    PENDING = 'pending'
    SETTLED = 'settled'

    @classmethod
    def parse(cls, raw: str | None) -> 'ExtensionPaymentStatus':
        if not raw:
            return cls.NONE
        raw = raw.lower()
        if raw in ('paid', 'completed'):
            return cls.SETTLED
        return cls(raw)


@dataclass(frozen=True)
class SystemLine(ValueObject):
    """One booked system type: {roomType, systemType, numberOfSystems, pricePerHour}."""
    room_type: str
    system_type: str
    number_of_systems: int
    price_per_hour: Money

    def __post_init__(self):
        if self.number_of_systems < 1:
            raise ValidationError("Number of systems must be at least 1", field='number_of_systems')

    def to_payload(self) -> dict[str, Any]:
        return {
            'roomType': self.room_type,
            'systemType': self.system_type,
            'numberOfSystems': self.number_of_systems,
            'pricePerHour': float(self.price_per_hour.amount),
        }

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> 'SystemLine':
        return cls(
            room_type=data.get('roomType') or '',
            system_type=data.get('systemType') or '',
            number_of_systems=int(data.get('numberOfSystems') or 1),
            price_per_hour=Money(to_decimal(data.get('pricePerHour') or 0)),
        )


@dataclass(frozen=True)
class SingleBooking(ValueObject):
    """One room, one system type, a quantity."""
    line: SystemLine

    kind = 'single'

    @property
    def lines(self) -> Tuple[SystemLine, ...]:
        return (self.line,)

    @property
    def total_systems(self) -> int:
        return self.line.number_of_systems

    def to_payload(self) -> dict[str, Any]:
        return self.line.to_payload()


@dataclass(frozen=True)
class GroupBooking(ValueObject):
    """Several system lines whose quantities add up to the party size exactly."""
    lines: Tuple[SystemLine, ...]
    friend_count: int

    kind = 'group'

    def __post_init__(self):
        if self.friend_count < 2:
            raise ValidationError("A group booking needs at least 2 people", field='friend_count')
        if not self.lines:
            raise ValidationError("A group booking needs at least one system", field='systems_booked')
        booked = sum(line.number_of_systems for line in self.lines)
        if booked != self.friend_count:
            raise ValidationError(
                f"Group of {self.friend_count} booked {booked} systems",
                field='systems_booked',
                missing=max(self.friend_count - booked, 0),
            )

    @property
    def total_systems(self) -> int:
        return sum(line.number_of_systems for line in self.lines)

    def to_payload(self) -> dict[str, Any]:
        return {
            'systemsBooked': [line.to_payload() for line in self.lines],
            'friendCount': self.friend_count,
        }


BookedSystems = Union[SingleBooking, GroupBooking]


def booked_systems_from_payload(data: dict[str, Any]) -> BookedSystems:
    """Read whichever variant the backend populated."""
    systems_booked = data.get('systemsBooked') or []
    if systems_booked:
        lines = tuple(SystemLine.from_payload(item) for item in systems_booked)
        friend_count = data.get('friendCount') or sum(line.number_of_systems for line in lines)
        return GroupBooking(lines=lines, friend_count=int(friend_count))
    return SingleBooking(line=SystemLine.from_payload(data))


@dataclass
class Booking(Aggregate):
    """
    Booking Aggregate Root

    A customer's reservation of systems at a venue for a time window.

    Key invariants:
    - Exactly one of the single/group shapes is populated (``systems``)
    - ``duration`` already includes settled and pending extensions
    - The OTP is only shown while the booking is BOOKED
    - Amounts to settle come from this aggregate, never from the caller
    """

    venue_id: str = ''
    booking_date: date = None
    start_time: str = ''
    duration: Hours = field(default_factory=lambda: Hours('0.5'))
    phone_number: PhoneNumber = None
    total_price: Money = field(default_factory=Money.zero)
    systems: BookedSystems = None

    status: BookingStatus = BookingStatus.PENDING_PAYMENT
    otp: str | None = None
    session_start_time: datetime | None = None
    extended_time: Hours = field(default_factory=lambda: Hours(0))
    extension_payment_status: ExtensionPaymentStatus = ExtensionPaymentStatus.NONE
    extension_payment_amount: Money | None = None

    # Gateway order awaiting verification, if any
    pending_payment_id: str | None = None
    refund: dict | None = None
    cancelled_at: datetime | None = None

    def __post_init__(self):
        if self.systems is None:
            raise ValueError("Booking must carry booked systems")
        if self.booking_date is None:
            raise ValueError("Booking must have a date")

    # ----- transitions -----

    def _transition(self, target: BookingStatus):
        allowed = BOOKING_TRANSITIONS.get(self.status, set())
        if target not in allowed:
            raise PolicyError(
                f"Invalid booking transition: {self.status.value} -> {target.value}",
                reason=PolicyError.WRONG_STATUS,
            )
        logger.info(f"Booking {self.id}: {self.status.value} -> {target.value}")
        self.status = target

    def mark_paid(self, otp: str | None = None, payment_id: str | None = None):
        """
        Settle the initial payment (PENDING_PAYMENT -> BOOKED)

        The OTP is issued by the backend; it is stored when the settlement
        confirmation carries it, otherwise it arrives with the next sync.
        Events: BookingPaid
        """
        from apps.bookings.domain.events import BookingPaid

        self._transition(BookingStatus.BOOKED)
        if otp:
            self.otp = otp
        self.pending_payment_id = None

        self.add_event(BookingPaid(
            aggregate_id=self.id,
            booking_id=self.id,
            amount=self.total_price,
            payment_id=payment_id,
        ))

    def start_session(self, started_at: datetime):
        """BOOKED -> ACTIVE. Events: SessionStarted"""
        from apps.bookings.domain.events import SessionStarted

        self._transition(BookingStatus.ACTIVE)
        self.session_start_time = started_at

        self.add_event(SessionStarted(
            aggregate_id=self.id,
            booking_id=self.id,
            started_at=started_at,
        ))

    def end_session(self):
        """ACTIVE -> COMPLETED. Events: SessionEnded"""
        from apps.bookings.domain.events import SessionEnded

        self._transition(BookingStatus.COMPLETED)

        self.add_event(SessionEnded(
            aggregate_id=self.id,
            booking_id=self.id,
        ))

    def apply_extension(self, additional: Hours, amount: Money):
        """
        Record an owner-initiated extension

        Allowed while ACTIVE or COMPLETED. Adds the hours to both ``duration``
        and ``extended_time`` and opens (or grows) a pending payment
        obligation. The primary status does not change.
        Events: BookingExtended
        """
        if self.status not in EXTENDABLE_STATUSES:
            raise PolicyError(
                f"Booking {self.id} cannot be extended while {self.status.value}",
                reason=PolicyError.WRONG_STATUS,
            )
        if additional.value <= 0:
            raise ValidationError("Extension must add time", field='extended_time')

        from apps.bookings.domain.events import BookingExtended

        self.duration = self.duration + additional
        self.extended_time = self.extended_time + additional
        if self.extension_payment_status is ExtensionPaymentStatus.PENDING and self.extension_payment_amount:
            amount = self.extension_payment_amount + amount
        self.extension_payment_status = ExtensionPaymentStatus.PENDING
        self.extension_payment_amount = amount

        self.add_event(BookingExtended(
            aggregate_id=self.id,
            booking_id=self.id,
            additional_hours=additional.value,
            amount_due=amount,
        ))

    def settle_extension(self, paid: Money | None = None, payment_id: str | None = None):
        """
        pending -> settled, amount cleared. Events: ExtensionSettled

        When ``paid`` is less than what is pending (the venue extended again
        after the payment was started) only that much is taken off and the
        remainder stays pending.
        """
        if self.extension_payment_status is not ExtensionPaymentStatus.PENDING:
            raise PolicyError(
                f"Booking {self.id} has no pending extension payment",
                reason=PolicyError.WRONG_STATUS,
            )

        from apps.bookings.domain.events import ExtensionSettled

        amount = self.extension_payment_amount
        if paid is not None and amount is not None and paid < amount:
            self.extension_payment_amount = amount - paid
            self.pending_payment_id = None
            logger.warning(
                f"Booking {self.id}: extension payment of {paid} leaves "
                f"{self.extension_payment_amount} pending"
            )
            return
        self.extension_payment_status = ExtensionPaymentStatus.SETTLED
        self.extension_payment_amount = None
        self.pending_payment_id = None

        self.add_event(ExtensionSettled(
            aggregate_id=self.id,
            booking_id=self.id,
            amount=amount,
            payment_id=payment_id,
        ))

    def cancel(self, now: datetime, refund: dict | None = None):
        """
        Cancel a paid booking (BOOKED -> CANCELLED)

        Only BOOKED bookings inside the cancellation window may be cancelled.
        Events: BookingCancelled
        """
        self.ensure_cancellable(now)

        from apps.bookings.domain.events import BookingCancelled

        old_status = self.status
        self._transition(BookingStatus.CANCELLED)
        self.cancelled_at = now
        self.refund = refund

        self.add_event(BookingCancelled(
            aggregate_id=self.id,
            booking_id=self.id,
            old_status=old_status.value,
            refund=refund,
        ))

    def record_external_cancellation(self, at: datetime, refund: dict | None = None):
        """
        Mirror a cancellation decided by the backend (e.g. an unpaid booking
        released by the venue). Bypasses the customer window, not the FSM.
        """
        from apps.bookings.domain.events import BookingCancelled

        old_status = self.status
        self._transition(BookingStatus.CANCELLED)
        self.cancelled_at = at
        self.refund = refund

        self.add_event(BookingCancelled(
            aggregate_id=self.id,
            booking_id=self.id,
            old_status=old_status.value,
            refund=refund,
        ))

    # ----- queries -----

    def ensure_cancellable(self, now: datetime):
        if self.status is not BookingStatus.BOOKED:
            raise PolicyError(
                f"Only booked reservations can be cancelled (status: {self.status.value})",
                reason=PolicyError.WRONG_STATUS,
            )
        reason = policies.cancellation_block_reason(self.booking_date, self.start_time, now)
        if reason == PolicyError.DATE_PASSED:
            raise PolicyError("The booking date has passed", reason=reason)
        if reason == PolicyError.TOO_LATE_TODAY:
            raise PolicyError(
                f"Bookings can only be cancelled up to {policies.CANCELLATION_WINDOW_MINUTES} "
                f"minutes after the start time",
                reason=reason,
            )

    def can_cancel(self, now: datetime) -> bool:
        return (
            self.status is BookingStatus.BOOKED
            and policies.is_within_cancellation_window(self.booking_date, self.start_time, now)
        )

    @property
    def is_group(self) -> bool:
        return isinstance(self.systems, GroupBooking)

    @property
    def has_pending_extension(self) -> bool:
        return self.extension_payment_status is ExtensionPaymentStatus.PENDING

    @property
    def otp_visible(self) -> bool:
        return bool(self.otp) and self.status is BookingStatus.BOOKED

    @property
    def was_modified(self) -> bool:
        return policies.was_modified(self.created_at, self.updated_at)

    @property
    def shows_extended_badge(self) -> bool:
        return (
            self.was_modified
            and self.extended_time.value > 0
            and self.status in EXTENDABLE_STATUSES
        )

    @property
    def session_end_time(self) -> datetime | None:
        return policies.session_end_time(self.session_start_time, self.duration)

    @property
    def display_date(self) -> date:
        return policies.display_date(self.session_start_time, self.booking_date, self.created_at)

    def __str__(self):
        return f"Booking {self.id} ({self.status.value})"

    def __repr__(self):
        return (
            f"Booking(id={self.id}, venue_id={self.venue_id}, status={self.status.value}, "
            f"date={self.booking_date}, start_time={self.start_time!r}, duration={self.duration.value})"
        )
