"""Tests for wallet and gateway settlement."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock, patch

from django.test import TestCase, override_settings

from shared.application.message_bus import message_bus
from shared.domain.exceptions import (
    BackendUnavailable,
    GatewayOrderError,
    InsufficientBalance,
    PaymentError,
    PolicyError,
    ReconciliationRequired,
    ValidationError,
    VerificationFailed,
)
from shared.domain.value_objects import Credential, Hours, Money

from apps.bookings.domain.entities import BookingStatus, ExtensionPaymentStatus
from apps.bookings.infrastructure.repository import DjangoBookingRepository
from apps.bookings.tests.builders import single_booking
from apps.finances.application.settlement import SettlementService
from apps.finances.domain.payments import ObligationKind, PaymentMethod, Wallet
from apps.finances.models import PaymentAttempt

SETTLEMENT = 'apps.finances.application.settlement'


def extension_due(amount='200'):
    booking = single_booking(status=BookingStatus.ACTIVE)
    booking.apply_extension(Hours('2'), Money(Decimal(amount)))
    booking.clear_events()
    return booking


class WalletSettlementTests(TestCase):

    def setUp(self):
        self.client = MagicMock()
        self.repo = DjangoBookingRepository()
        self.service = SettlementService(client=self.client, booking_repo=self.repo)
        self.credential = Credential('token-1')

    def test_insufficient_balance_for_extension(self):
        self.repo.save(extension_due('200'))
        self.client.wallet_balance.return_value = Money(Decimal('150'))

        with self.assertRaises(InsufficientBalance) as ctx:
            self.service.pay('bk-1', 'wallet', self.credential)

        self.assertEqual(ctx.exception.balance, Money(Decimal('150')))
        self.assertEqual(ctx.exception.required, Money(Decimal('200')))
        self.client.wallet_pay.assert_not_called()
        booking = self.repo.get('bk-1')
        self.assertEqual(booking.extension_payment_status, ExtensionPaymentStatus.PENDING)
        self.assertEqual(booking.extension_payment_amount, Money(Decimal('200')))

    def test_extension_settled_from_wallet(self):
        self.repo.save(extension_due('200'))
        self.client.wallet_balance.return_value = Money(Decimal('250'))
        self.client.wallet_pay.return_value = {'success': True, 'balance': 50}

        with patch.object(message_bus, 'publish_events') as publish:
            with self.captureOnCommitCallbacks(execute=True):
                outcome = self.service.pay('bk-1', 'wallet', self.credential)

        self.assertTrue(outcome.settled)
        self.assertEqual(outcome.obligation.kind, ObligationKind.EXTENSION)
        self.client.wallet_pay.assert_called_once_with(
            'bk-1', Money(Decimal('200')), True, credential=self.credential,
        )
        booking = self.repo.get('bk-1')
        self.assertEqual(booking.extension_payment_status, ExtensionPaymentStatus.SETTLED)
        self.assertIsNone(booking.extension_payment_amount)
        self.assertEqual(booking.status, BookingStatus.ACTIVE)
        [events] = publish.call_args.args
        self.assertEqual([type(event).__name__ for event in events], ['ExtensionSettled'])

        attempt = PaymentAttempt.objects.get()
        self.assertEqual(attempt.status, PaymentAttempt.Status.SUCCESS)
        self.assertEqual(attempt.kind, 'extension')
        self.assertEqual(attempt.amount, Decimal('200'))

    def test_booking_paid_from_wallet_stores_otp(self):
        self.repo.save(single_booking())
        self.client.wallet_balance.return_value = Money(Decimal('100'))
        self.client.wallet_pay.return_value = {'success': True, 'booking': {'otp': '4321'}}

        outcome = self.service.pay('bk-1', PaymentMethod.WALLET, self.credential)

        self.assertEqual(outcome.booking.status, BookingStatus.BOOKED)
        self.assertEqual(self.repo.get('bk-1').otp, '4321')
        self.client.wallet_pay.assert_called_once_with(
            'bk-1', Money(Decimal('100')), False, credential=self.credential,
        )

    def test_balance_read_failure(self):
        self.repo.save(single_booking())
        self.client.wallet_balance.side_effect = BackendUnavailable('down')

        with self.assertRaises(PaymentError):
            self.service.pay('bk-1', 'wallet', self.credential)
        self.client.wallet_pay.assert_not_called()

    def test_declined_debit_leaves_booking_unpaid(self):
        self.repo.save(single_booking())
        self.client.wallet_balance.return_value = Money(Decimal('500'))
        self.client.wallet_pay.side_effect = BackendUnavailable('Insufficient funds', status_code=400)

        with self.assertRaises(PaymentError):
            self.service.pay('bk-1', 'wallet', self.credential)

        self.assertEqual(self.repo.get('bk-1').status, BookingStatus.PENDING_PAYMENT)
        self.assertEqual(PaymentAttempt.objects.get().status, PaymentAttempt.Status.FAILED)

    def test_nothing_to_pay(self):
        self.repo.save(single_booking(status=BookingStatus.BOOKED))

        with self.assertRaises(PolicyError) as ctx:
            self.service.pay('bk-1', 'wallet', self.credential)

        self.assertEqual(ctx.exception.reason, PolicyError.WRONG_STATUS)
        self.client.wallet_balance.assert_not_called()

    def test_unsupported_method(self):
        self.repo.save(single_booking())

        with self.assertRaises(ValidationError):
            self.service.pay('bk-1', 'cash', self.credential)

    def test_wallet_debit_only_settles_the_amount_it_paid(self):
        self.repo.save(extension_due('200'))
        self.client.wallet_balance.return_value = Money(Decimal('500'))

        def extended_during_debit(*args, **kwargs):
            booking = self.repo.get('bk-1')
            booking.apply_extension(Hours('1'), Money(Decimal('100')))
            self.repo.save(booking)
            return {'success': True}

        self.client.wallet_pay.side_effect = extended_during_debit

        with self.assertLogs(SETTLEMENT, level='WARNING'):
            outcome = self.service.pay('bk-1', 'wallet', self.credential)

        self.assertEqual(outcome.obligation.amount, Money(Decimal('200')))
        booking = self.repo.get('bk-1')
        self.assertEqual(booking.extension_payment_status, ExtensionPaymentStatus.PENDING)
        self.assertEqual(booking.extension_payment_amount, Money(Decimal('100')))


class GatewaySettlementTests(TestCase):

    def setUp(self):
        self.client = MagicMock()
        self.client.create_payment_order.return_value = {
            'paymentId': 'pay-1',
            'payuParams': {'txnid': 'pay-1', 'amount': '100.00'},
            'paymentUrl': 'https://gateway.test/pay',
        }
        self.repo = DjangoBookingRepository()
        self.repo.save(single_booking())
        self.service = SettlementService(client=self.client, booking_repo=self.repo)
        self.credential = Credential('token-1')

    @override_settings(PAYMENT_GATEWAY_MODE='testing')
    def test_order_leaves_obligation_pending(self):
        outcome = self.service.pay('bk-1', 'upi', self.credential)

        self.assertFalse(outcome.settled)
        self.assertEqual(outcome.payment_id, 'pay-1')
        self.assertEqual(outcome.gateway_mode, 'testing')
        self.client.create_payment_order.assert_called_once_with(
            'bk-1', Money(Decimal('100')), 'upi',
            is_extension=False, is_wallet_top_up=False, credential=self.credential,
        )
        booking = self.repo.get('bk-1')
        self.assertEqual(booking.status, BookingStatus.PENDING_PAYMENT)
        self.assertEqual(booking.pending_payment_id, 'pay-1')
        self.assertEqual(PaymentAttempt.objects.get().status, PaymentAttempt.Status.PENDING)

    def test_order_failure(self):
        self.client.create_payment_order.side_effect = BackendUnavailable('gateway down', status_code=502)

        with self.assertRaises(GatewayOrderError):
            self.service.pay('bk-1', 'card', self.credential)
        self.assertFalse(PaymentAttempt.objects.exists())

    def test_verified_payment_settles_booking(self):
        self.service.pay('bk-1', 'upi', self.credential)
        self.client.verify_payment.return_value = {'success': True, 'otp': '5555'}

        booking = self.service.verify('pay-1', {'status': 'success', 'txnid': 'pay-1'}, self.credential)

        self.assertEqual(booking.status, BookingStatus.BOOKED)
        self.assertEqual(booking.otp, '5555')
        self.assertIsNone(self.repo.get('bk-1').pending_payment_id)
        self.assertEqual(PaymentAttempt.objects.get().status, PaymentAttempt.Status.SUCCESS)

        again = self.service.verify('pay-1', {'status': 'success'}, self.credential)
        self.assertEqual(again.status, BookingStatus.BOOKED)
        self.client.verify_payment.assert_called_once()

    def test_charged_but_unverified_needs_reconciliation(self):
        self.service.pay('bk-1', 'upi', self.credential)
        self.client.verify_payment.side_effect = BackendUnavailable('Hash mismatch', status_code=400)

        with self.assertLogs(SETTLEMENT, level='CRITICAL') as logs:
            with self.assertRaises(ReconciliationRequired) as ctx:
                self.service.verify('pay-1', {'status': 'success'}, self.credential)

        self.assertFalse(ctx.exception.retryable)
        self.assertEqual(ctx.exception.payment_id, 'pay-1')
        self.assertIn('Manual reconciliation required', logs.output[0])
        self.assertEqual(PaymentAttempt.objects.get().status, PaymentAttempt.Status.RECONCILIATION)
        self.assertEqual(self.repo.get('bk-1').status, BookingStatus.PENDING_PAYMENT)

        with self.assertRaises(ReconciliationRequired):
            self.service.verify('pay-1', {'status': 'success'}, self.credential)
        self.client.verify_payment.assert_called_once()

    def test_failed_gateway_payment(self):
        self.service.pay('bk-1', 'card', self.credential)
        self.client.verify_payment.return_value = {'success': False, 'message': 'Payment failed'}

        with self.assertRaises(VerificationFailed):
            self.service.verify('pay-1', {'status': 'failure'}, self.credential)

        attempt = PaymentAttempt.objects.get()
        self.assertEqual(attempt.status, PaymentAttempt.Status.FAILED)
        self.assertEqual(attempt.error_message, 'Payment failed')
        self.assertEqual(self.repo.get('bk-1').status, BookingStatus.PENDING_PAYMENT)

    def test_unreachable_backend_keeps_attempt_pending(self):
        self.service.pay('bk-1', 'upi', self.credential)
        self.client.verify_payment.side_effect = BackendUnavailable('connection reset')

        with self.assertRaises(BackendUnavailable):
            self.service.verify('pay-1', {'status': 'success'}, self.credential)

        self.assertEqual(PaymentAttempt.objects.get().status, PaymentAttempt.Status.PENDING)

    def test_unknown_payment(self):
        with self.assertRaises(VerificationFailed):
            self.service.verify('pay-404', {}, self.credential)

    def test_verified_extension_leaves_later_extension_pending(self):
        self.repo.save(extension_due('200'))
        self.service.pay('bk-1', 'upi', self.credential)
        booking = self.repo.get('bk-1')
        booking.apply_extension(Hours('1'), Money(Decimal('100')))
        self.repo.save(booking)
        self.client.verify_payment.return_value = {'success': True}

        with self.assertLogs(SETTLEMENT, level='WARNING') as logs:
            booking = self.service.verify('pay-1', {'status': 'success'}, self.credential)

        self.assertIn('now owes 300', logs.output[0])
        self.assertEqual(booking.extension_payment_status, ExtensionPaymentStatus.PENDING)
        self.assertEqual(booking.extension_payment_amount, Money(Decimal('100')))
        stored = self.repo.get('bk-1')
        self.assertEqual(stored.extension_payment_amount, Money(Decimal('100')))
        self.assertIsNone(stored.pending_payment_id)
        self.assertEqual(PaymentAttempt.objects.get().amount, Decimal('200'))


class WalletTopUpTests(TestCase):

    def setUp(self):
        self.client = MagicMock()
        self.client.create_wallet_topup.return_value = {'paymentId': 'top-1'}
        self.service = SettlementService(client=self.client, booking_repo=DjangoBookingRepository())
        self.credential = Credential('token-1')

    def test_invalid_top_ups(self):
        for amount, method in ((0, 'upi'), ('-10', 'card'), ('abc', 'upi'), (100, 'wallet')):
            with self.assertRaises(ValidationError):
                self.service.top_up(amount, method, self.credential)
        self.client.create_wallet_topup.assert_not_called()

    def test_verified_top_up_credits_wallet(self):
        outcome = self.service.top_up('500', 'upi', self.credential)
        self.assertEqual(outcome.obligation.kind, ObligationKind.TOP_UP)
        self.client.verify_wallet_topup.return_value = {'success': True, 'balance': 750}

        with patch.object(message_bus, 'publish_events') as publish:
            with self.captureOnCommitCallbacks(execute=True):
                wallet = self.service.verify('top-1', {'status': 'success'}, self.credential)

        self.assertIsInstance(wallet, Wallet)
        self.assertEqual(wallet.balance, Money(Decimal('750')))
        [events] = publish.call_args.args
        self.assertEqual(events[0].amount, Money(Decimal('500')))
        self.assertEqual(events[0].payment_id, 'top-1')
        self.assertEqual(PaymentAttempt.objects.get().status, PaymentAttempt.Status.SUCCESS)

    def test_balance_refetched_when_not_echoed(self):
        self.service.top_up(200, 'netbanking', self.credential)
        self.client.verify_wallet_topup.return_value = {'success': True}
        self.client.wallet_balance.return_value = Money(Decimal('260'))

        wallet = self.service.verify_top_up('top-1', {'status': 'success'}, self.credential)

        self.assertEqual(wallet.balance, Money(Decimal('260')))
