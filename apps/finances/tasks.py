"""Celery tasks for payment settlement."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from shared.domain.exceptions import BackendUnavailable, PaymentError, ReconciliationRequired
from shared.domain.value_objects import Credential
from shared.infrastructure.encryption import decrypt_string, encrypt_string

logger = logging.getLogger(__name__)


def enqueue_verification(payment_id: str, gateway_response: dict, credential: Credential):
    """Queue verification of a gateway callback; the credential travels encrypted."""
    return verify_gateway_payment.delay(payment_id, gateway_response, encrypt_string(credential.token))


@shared_task(
    name="finances.verify_gateway_payment",
    bind=True,
    max_retries=3,
    default_retry_delay=30,
)
def verify_gateway_payment(self, payment_id: str, gateway_response: dict, encrypted_token: str) -> dict:
    """
    Verify a gateway payment and settle the booking or top-up it paid for.

    Unreachable backend: retried. Verification rejected: reported, not
    retried. Charged but rejected: left for manual reconciliation.
    """
    from apps.finances.application.settlement import SettlementService
    from apps.finances.domain.payments import Wallet

    credential = Credential(decrypt_string(encrypted_token))
    try:
        result = SettlementService().verify(payment_id, gateway_response, credential)
    except ReconciliationRequired as e:
        logger.critical(f"Payment {payment_id} needs manual reconciliation: {e}")
        return {"payment_id": payment_id, "status": "reconciliation_required"}
    except PaymentError as e:
        logger.error(f"Payment {payment_id} verification failed: {e}")
        return {"payment_id": payment_id, "status": "failed", "error": str(e)}
    except BackendUnavailable as e:
        logger.warning(f"Backend unavailable verifying payment {payment_id}, retrying: {e}")
        raise self.retry(exc=e)

    if isinstance(result, Wallet):
        return {"payment_id": payment_id, "status": "settled", "balance": str(result.balance.amount)}

    if not result.otp:
        from apps.bookings.tasks import sync_customer_bookings
        sync_customer_bookings.delay(encrypted_token)
    return {"payment_id": payment_id, "status": "settled", "booking_id": result.id}
