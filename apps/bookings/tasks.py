"""Celery tasks for the booking domain."""

from __future__ import annotations

import logging

from celery import shared_task  # type: ignore

from shared.domain.exceptions import BackendUnavailable
from shared.domain.value_objects import Credential
from shared.infrastructure.encryption import decrypt_string

logger = logging.getLogger(__name__)


@shared_task(
    name="bookings.sync_customer_bookings",
    bind=True,
    max_retries=3,
    default_retry_delay=60,
)
def sync_customer_bookings(self, encrypted_token: str) -> dict[str, int]:
    """
    Refresh a customer's bookings from the backend.

    Queued after a gateway payment settles without an OTP in the
    confirmation, so the code shows up without waiting for the next
    manual refresh.

    Returns:
        dict: {"synced": number of bookings mirrored}
    """
    from apps.bookings.application.command_handlers import SyncBookingsCommand, SyncBookingsHandler
    from apps.bookings.infrastructure.client import BookingBackendClient
    from apps.bookings.infrastructure.repository import DjangoBookingRepository

    handler = SyncBookingsHandler(BookingBackendClient(), DjangoBookingRepository())
    try:
        bookings = handler.handle(SyncBookingsCommand(credential=Credential(decrypt_string(encrypted_token))))
    except BackendUnavailable as e:
        logger.warning(f"Backend unavailable while syncing bookings, retrying: {e}")
        raise self.retry(exc=e)

    logger.info(f"Synced {len(bookings)} bookings")
    return {"synced": len(bookings)}
