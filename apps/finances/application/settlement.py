"""
Extension & Settlement

Settles what a booking owes (the initial total or a pending extension) on
one of two rails:

- Wallet debit: a freshly fetched balance must cover the amount; the debit
  settles the obligation synchronously.
- Online gateway (card, upi, netbanking): an order is created for the exact
  amount and the obligation stays pending until the gateway callback is
  verified (see apps.finances.tasks.verify_gateway_payment).

The amount always comes from the booking aggregate, never from the caller.
A verification failure after the gateway reported a successful charge is
ReconciliationRequired: logged as critical and never retried automatically.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from django.conf import settings

from shared.application.uow import DjangoUnitOfWork
from shared.domain.exceptions import (
    BackendUnavailable,
    GatewayOrderError,
    PaymentError,
    ReconciliationRequired,
    ValidationError,
    VerificationFailed,
)
from shared.domain.value_objects import Credential, Money, to_decimal

from apps.bookings.domain.entities import Booking
from apps.finances.domain.payments import Obligation, ObligationKind, PaymentMethod, Wallet
from apps.finances.models import PaymentAttempt

logger = logging.getLogger(__name__)

GATEWAY_SUCCESS_STATUSES = ('success', 'captured')


def gateway_reported_success(gateway_response: dict[str, Any] | None) -> bool:
    status = str((gateway_response or {}).get('status', '')).lower()
    return status in GATEWAY_SUCCESS_STATUSES


@dataclass
class SettlementOutcome:
    """
    Result of starting a payment

    ``settled`` is True for wallet debits. Gateway payments return the
    ``order`` the customer is redirected with and settle later.
    """
    obligation: Obligation
    method: PaymentMethod
    settled: bool
    booking: Booking | None = None
    order: dict[str, Any] | None = None
    payment_id: str | None = None
    gateway_mode: str | None = None


class SettlementService:

    def __init__(self, client=None, booking_repo=None):
        if client is None:
            from apps.finances.infrastructure.client import PaymentBackendClient
            client = PaymentBackendClient()
        if booking_repo is None:
            from apps.bookings.infrastructure.repository import DjangoBookingRepository
            booking_repo = DjangoBookingRepository()
        self.client = client
        self.booking_repo = booking_repo

    def _load(self, booking_id: str, lock: bool = False) -> Booking:
        booking = self.booking_repo.get(booking_id, lock=lock)
        if booking is None:
            raise ValueError(f"Booking {booking_id} not found")
        return booking

    # ----- paying -----

    def pay(self, booking_id: str, method: str | PaymentMethod, credential: Credential) -> SettlementOutcome:
        """Start settling whatever ``booking_id`` currently owes."""
        method = method if isinstance(method, PaymentMethod) else PaymentMethod.parse(method)
        obligation = Obligation.outstanding_on(self._load(booking_id))

        logger.info(
            f"Paying {obligation.kind.value} of {obligation.amount} on booking "
            f"{obligation.booking_id} via {method.value}"
        )
        if method.uses_gateway:
            return self._create_gateway_order(obligation, method, credential)
        return self._pay_from_wallet(obligation, credential)

    def wallet(self, credential: Credential) -> Wallet:
        return Wallet(id='wallet', balance=self.client.wallet_balance(credential=credential))

    def _pay_from_wallet(self, obligation: Obligation, credential: Credential) -> SettlementOutcome:
        try:
            wallet = self.wallet(credential)
        except BackendUnavailable as e:
            raise PaymentError(f"Could not read wallet balance: {e}") from e
        wallet.ensure_covers(obligation.amount)

        try:
            response = self.client.wallet_pay(
                obligation.booking_id,
                obligation.amount,
                obligation.is_extension,
                credential=credential,
            )
        except BackendUnavailable as e:
            logger.error(f"Wallet payment failed for booking {obligation.booking_id}: {e}")
            PaymentAttempt.objects.create(
                booking_id=obligation.booking_id,
                kind=obligation.kind.value,
                method=PaymentMethod.WALLET.value,
                status=PaymentAttempt.Status.FAILED,
                amount=obligation.amount.amount,
                currency=obligation.amount.currency,
                error_message=str(e),
            )
            raise PaymentError(f"Wallet payment failed: {e}") from e

        if isinstance(response, dict) and response.get('success') is False:
            message = response.get('message') or 'Wallet payment was declined'
            logger.error(f"Wallet payment declined for booking {obligation.booking_id}: {message}")
            raise PaymentError(message)

        attempt = PaymentAttempt.objects.create(
            booking_id=obligation.booking_id,
            kind=obligation.kind.value,
            method=PaymentMethod.WALLET.value,
            amount=obligation.amount.amount,
            currency=obligation.amount.currency,
        )
        attempt.mark_success(response if isinstance(response, dict) else None)

        booking = self._settle(obligation, response if isinstance(response, dict) else {}, payment_id=None)
        return SettlementOutcome(obligation, PaymentMethod.WALLET, settled=True, booking=booking)

    def _create_gateway_order(self, obligation: Obligation, method: PaymentMethod,
                              credential: Credential) -> SettlementOutcome:
        try:
            order = self.client.create_payment_order(
                obligation.booking_id,
                obligation.amount,
                method.value,
                is_extension=obligation.is_extension,
                is_wallet_top_up=False,
                credential=credential,
            )
        except BackendUnavailable as e:
            logger.error(f"Gateway order failed for booking {obligation.booking_id}: {e}")
            raise GatewayOrderError(f"Could not create payment order: {e}") from e

        payment_id = order.get('paymentId') or (order.get('payuParams') or {}).get('txnid')
        if not payment_id:
            raise GatewayOrderError("Payment order has no payment id")

        PaymentAttempt.objects.create(
            booking_id=obligation.booking_id,
            kind=obligation.kind.value,
            method=method.value,
            amount=obligation.amount.amount,
            currency=obligation.amount.currency,
            payment_id=payment_id,
        )

        with DjangoUnitOfWork():
            booking = self._load(obligation.booking_id, lock=True)
            booking.pending_payment_id = payment_id
            self.booking_repo.save(booking)

        logger.info(f"Gateway order {payment_id} created for booking {obligation.booking_id}")
        return SettlementOutcome(
            obligation,
            method,
            settled=False,
            booking=booking,
            order=order,
            payment_id=payment_id,
            gateway_mode=settings.PAYMENT_GATEWAY_MODE,
        )

    # ----- verification -----

    def verify(self, payment_id: str, gateway_response: dict[str, Any],
               credential: Credential) -> Booking | Wallet:
        """
        Confirm a gateway payment with the backend and settle its obligation.

        Verifying an attempt that already succeeded is a no-op.
        """
        attempt = PaymentAttempt.objects.filter(payment_id=payment_id).first()
        if attempt is None:
            raise VerificationFailed(f"Unknown payment {payment_id}")
        if attempt.kind == PaymentAttempt.Kind.TOP_UP:
            return self.verify_top_up(payment_id, gateway_response, credential)
        if attempt.status == PaymentAttempt.Status.SUCCESS:
            logger.info(f"Payment {payment_id} already verified")
            return self._load(attempt.booking_id)
        if attempt.status == PaymentAttempt.Status.RECONCILIATION:
            raise ReconciliationRequired(
                "This payment is awaiting manual reconciliation. Please contact support",
                payment_id=payment_id,
            )

        response = self._confirm(attempt, gateway_response, credential, self.client.verify_payment)
        attempt.mark_success(response)

        obligation = Obligation(
            attempt.booking_id,
            ObligationKind(attempt.kind),
            Money(attempt.amount, attempt.currency),
        )
        return self._settle(obligation, response, payment_id=payment_id)

    def _confirm(self, attempt: PaymentAttempt, gateway_response: dict[str, Any],
                 credential: Credential, call) -> dict[str, Any]:
        charged = gateway_reported_success(gateway_response)
        try:
            response = call(attempt.payment_id, gateway_response, credential=credential)
        except BackendUnavailable as e:
            if e.status_code is None:
                # Never reached the backend; the attempt stays pending
                raise
            raise self._verification_failure(attempt, str(e), charged) from e

        if not isinstance(response, dict) or response.get('success') is False:
            message = (response or {}).get('message') if isinstance(response, dict) else None
            raise self._verification_failure(attempt, message or 'Payment verification failed', charged)
        return response

    def _verification_failure(self, attempt: PaymentAttempt, message: str, charged: bool) -> PaymentError:
        if charged:
            logger.critical(
                f"Payment {attempt.payment_id} ({attempt.kind}, {attempt.amount} {attempt.currency}) "
                f"was charged but could not be verified: {message}. Manual reconciliation required"
            )
            attempt.mark_failed(message, status=PaymentAttempt.Status.RECONCILIATION)
            return ReconciliationRequired(
                "Your payment was received but could not be confirmed. Please contact support",
                payment_id=attempt.payment_id,
            )
        logger.error(f"Payment {attempt.payment_id} verification failed: {message}")
        attempt.mark_failed(message)
        return VerificationFailed(message)

    def _settle(self, obligation: Obligation, response: dict[str, Any], payment_id: str | None) -> Booking:
        booking_data = response.get('booking') if isinstance(response.get('booking'), dict) else {}
        otp = response.get('otp') or booking_data.get('otp')

        with DjangoUnitOfWork() as uow:
            booking = self._load(obligation.booking_id, lock=True)
            if not obligation.still_open_on(booking):
                logger.warning(
                    f"{obligation.kind.value} on booking {booking.id} already settled; "
                    f"nothing to apply for payment {payment_id or 'wallet'}"
                )
                return booking
            if not obligation.matches(booking):
                logger.warning(
                    f"Payment {payment_id or 'wallet'} covered {obligation.amount} but booking "
                    f"{booking.id} now owes {obligation.owed_on(booking)} for its {obligation.kind.value}"
                )

            if obligation.kind is ObligationKind.BOOKING:
                booking.mark_paid(otp=otp, payment_id=payment_id)
            else:
                booking.settle_extension(paid=obligation.amount, payment_id=payment_id)

            uow.collect_events(booking)
            self.booking_repo.save(booking)
            # Events: BookingPaid or ExtensionSettled

        if obligation.kind is ObligationKind.EXTENSION and booking.has_pending_extension:
            logger.info(
                f"Applied {obligation.amount} to the extension on booking {booking.id}; "
                f"{booking.extension_payment_amount} still pending"
            )
        else:
            logger.info(f"Settled {obligation.kind.value} of {obligation.amount} on booking {booking.id}")
        return booking

    # ----- wallet top-up -----

    def top_up(self, amount, method: str | PaymentMethod, credential: Credential) -> SettlementOutcome:
        """Create a gateway order that credits the wallet once verified."""
        method = method if isinstance(method, PaymentMethod) else PaymentMethod.parse(method)
        if not method.uses_gateway:
            raise ValidationError("The wallet cannot be topped up from itself", field='payment_method')
        try:
            value = to_decimal(amount)
        except ValueError:
            raise ValidationError("Please enter a valid amount", field='amount')
        if value <= 0:
            raise ValidationError("Please enter a valid amount", field='amount')
        money = Money(value, settings.BOOKING_CURRENCY)

        try:
            order = self.client.create_wallet_topup(money, method.value, credential=credential)
        except BackendUnavailable as e:
            logger.error(f"Wallet top-up order failed: {e}")
            raise GatewayOrderError(f"Could not create top-up order: {e}") from e

        payment_id = order.get('paymentId') or (order.get('payuParams') or {}).get('txnid')
        if not payment_id:
            raise GatewayOrderError("Top-up order has no payment id")

        PaymentAttempt.objects.create(
            kind=PaymentAttempt.Kind.TOP_UP,
            method=method.value,
            amount=money.amount,
            currency=money.currency,
            payment_id=payment_id,
        )
        logger.info(f"Wallet top-up order {payment_id} created for {money}")
        return SettlementOutcome(
            Obligation('', ObligationKind.TOP_UP, money),
            method,
            settled=False,
            order=order,
            payment_id=payment_id,
            gateway_mode=settings.PAYMENT_GATEWAY_MODE,
        )

    def verify_top_up(self, payment_id: str, gateway_response: dict[str, Any],
                      credential: Credential) -> Wallet:
        attempt = PaymentAttempt.objects.filter(
            payment_id=payment_id,
            kind=PaymentAttempt.Kind.TOP_UP,
        ).first()
        if attempt is None:
            raise VerificationFailed(f"Unknown top-up {payment_id}")
        if attempt.status == PaymentAttempt.Status.SUCCESS:
            logger.info(f"Top-up {payment_id} already verified")
            return self.wallet(credential)
        if attempt.status == PaymentAttempt.Status.RECONCILIATION:
            raise ReconciliationRequired(
                "This top-up is awaiting manual reconciliation. Please contact support",
                payment_id=payment_id,
            )

        response = self._confirm(attempt, gateway_response, credential, self.client.verify_wallet_topup)
        attempt.mark_success(response)

        amount = Money(attempt.amount, attempt.currency)
        balance = response.get('balance')
        if balance is not None:
            new_balance = Money(to_decimal(balance), attempt.currency)
        else:
            new_balance = self.client.wallet_balance(credential=credential)
        with DjangoUnitOfWork() as uow:
            wallet = Wallet(id='wallet')
            wallet.credit(
                amount,
                new_balance=new_balance,
                payment_id=payment_id,
            )
            uow.collect_events(wallet)
            # Event: WalletToppedUp

        logger.info(f"Wallet topped up by {amount}; balance {wallet.balance}")
        return wallet
