"""
Payment Domain

- PaymentMethod: wallet debit or one of the online gateway methods
- ObligationKind: what a payment settles
- Obligation: the amount owed, always derived from the booking aggregate
- Wallet: the customer's balance as freshly read from the backend
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from shared.domain.base import Aggregate, ValueObject
from shared.domain.exceptions import InsufficientBalance, PolicyError, ValidationError
from shared.domain.value_objects import Money

from apps.bookings.domain.entities import Booking, BookingStatus

logger = logging.getLogger(__name__)


class PaymentMethod(Enum):
    WALLET = 'wallet'
    CARD = 'card'
    UPI = 'upi'
    NETBANKING = 'netbanking'

    @classmethod
    def parse(cls, raw: str) -> 'PaymentMethod':
        try:
            return cls((raw or '').strip().lower())
        except ValueError:
            raise ValidationError(f"Unsupported payment method: {raw}", field='payment_method')

    @property
    def uses_gateway(self) -> bool:
        return self is not PaymentMethod.WALLET


class ObligationKind(Enum):
    BOOKING = 'booking'
    EXTENSION = 'extension'
    TOP_UP = 'topup'


@dataclass(frozen=True)
class Obligation(ValueObject):
    """An amount the customer owes on a booking."""
    booking_id: str
    kind: ObligationKind
    amount: Money

    @property
    def is_extension(self) -> bool:
        return self.kind is ObligationKind.EXTENSION

    @classmethod
    def outstanding_on(cls, booking: Booking) -> 'Obligation':
        """
        What is payable on ``booking`` right now.

        The initial total while Pending Payment, otherwise a pending
        extension. The caller never supplies the amount.
        """
        if booking.status is BookingStatus.PENDING_PAYMENT:
            return cls(booking.id, ObligationKind.BOOKING, booking.total_price)
        if booking.has_pending_extension and booking.extension_payment_amount:
            return cls(booking.id, ObligationKind.EXTENSION, booking.extension_payment_amount)
        raise PolicyError(
            f"Nothing to pay on booking {booking.id} ({booking.status.value})",
            reason=PolicyError.WRONG_STATUS,
        )

    def still_open_on(self, booking: Booking) -> bool:
        if self.kind is ObligationKind.BOOKING:
            return booking.status is BookingStatus.PENDING_PAYMENT
        return booking.has_pending_extension

    def owed_on(self, booking: Booking) -> Money | None:
        """What ``booking`` currently expects for this kind of obligation."""
        if self.kind is ObligationKind.BOOKING:
            return booking.total_price
        return booking.extension_payment_amount

    def matches(self, booking: Booking) -> bool:
        return self.owed_on(booking) == self.amount


@dataclass
class Wallet(Aggregate):
    """
    Customer wallet

    Only ever built from a fresh balance read; a cached balance must not be
    used to approve a debit.
    """
    balance: Money = field(default_factory=Money.zero)

    def ensure_covers(self, amount: Money):
        if self.balance < amount:
            logger.info(f"Wallet balance {self.balance} does not cover {amount}")
            raise InsufficientBalance(
                f"Insufficient wallet balance: {self.balance} available, {amount} required",
                balance=self.balance,
                required=amount,
            )

    def credit(self, amount: Money, new_balance: Money | None = None, payment_id: str | None = None):
        """Record a verified top-up. Events: WalletToppedUp"""
        from apps.finances.domain.events import WalletToppedUp

        if not amount:
            raise ValidationError("Top-up amount must be greater than zero", field='amount')
        self.balance = new_balance if new_balance is not None else self.balance + amount

        self.add_event(WalletToppedUp(
            aggregate_id=self.id,
            amount=amount,
            balance=self.balance,
            payment_id=payment_id,
        ))
