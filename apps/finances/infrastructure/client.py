"""
Payments backend client

Wallet and online gateway endpoints of the cafe backend:
- GET  payments/wallet          -> {balance}
- POST payments/wallet/pay      -> settlement confirmation
- POST payments/create-order    -> {paymentId, payuParams, paymentUrl, ...}
- POST payments/verify          -> settlement confirmation
- POST payments/wallet/topup    -> gateway order for a top-up
- POST payments/wallet/verify   -> {balance, ...}
"""

from __future__ import annotations

import logging
from typing import Any

from shared.domain.value_objects import Credential, Money, to_decimal
from shared.infrastructure.http import CafeApiClient

logger = logging.getLogger(__name__)


class PaymentBackendClient(CafeApiClient):

    def wallet_balance(self, *, credential: Credential) -> Money:
        data = self.get('payments/wallet', credential=credential)
        balance = data.get('balance') if isinstance(data, dict) else None
        return Money(to_decimal(balance or 0))

    def wallet_pay(self, booking_id: str, amount: Money, is_extension: bool,
                   *, credential: Credential) -> dict[str, Any]:
        return self.post('payments/wallet/pay', credential=credential, json={
            'bookingId': booking_id,
            'amount': float(amount.amount),
            'isExtension': is_extension,
        })

    def create_payment_order(self, booking_id: str | None, amount: Money, method: str,
                             is_extension: bool = False, is_wallet_top_up: bool = False,
                             *, credential: Credential) -> dict[str, Any]:
        return self.post('payments/create-order', credential=credential, json={
            'bookingId': booking_id,
            'amount': float(amount.amount),
            'paymentMethod': method,
            'isExtension': is_extension,
            'isWalletTopUp': is_wallet_top_up,
        })

    def verify_payment(self, payment_id: str, gateway_response: dict[str, Any],
                       *, credential: Credential) -> dict[str, Any]:
        return self.post('payments/verify', credential=credential, json={
            'paymentId': payment_id,
            'payuResponse': gateway_response,
        })

    def create_wallet_topup(self, amount: Money, method: str, *, credential: Credential) -> dict[str, Any]:
        return self.post('payments/wallet/topup', credential=credential, json={
            'amount': float(amount.amount),
            'paymentMethod': method,
        })

    def verify_wallet_topup(self, payment_id: str, gateway_response: dict[str, Any],
                            *, credential: Credential) -> dict[str, Any]:
        return self.post('payments/wallet/verify', credential=credential, json={
            'paymentId': payment_id,
            'payuResponse': gateway_response,
        })
