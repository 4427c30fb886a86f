"""
Booking event subscribers

Run after the unit of work commits. They only report; every state change
has already happened on the aggregate.
"""

import logging

from shared.application.message_bus import message_bus
from apps.bookings.domain.events import (
    BookingCancelled,
    BookingCreated,
    BookingExtended,
    BookingPaid,
    ExtensionSettled,
    SessionEnded,
    SessionStarted,
)

logger = logging.getLogger(__name__)


@message_bus.subscribe(BookingCreated)
def on_booking_created(event: BookingCreated):
    kind = 'group' if event.is_group else 'single'
    logger.info(
        f"New {kind} booking {event.booking_id} at venue {event.venue_id} "
        f"on {event.booking_date}: {event.total_price} due"
    )


@message_bus.subscribe(BookingPaid, ExtensionSettled)
def on_payment_settled(event):
    logger.info(f"Payment settled for booking {event.booking_id}: {event.amount} ({event.payment_id or 'wallet'})")


@message_bus.subscribe(SessionStarted, SessionEnded)
def on_session_changed(event):
    logger.info(f"{type(event).__name__} for booking {event.booking_id}")


@message_bus.subscribe(BookingExtended)
def on_booking_extended(event: BookingExtended):
    logger.info(
        f"Booking {event.booking_id} extended by {event.additional_hours}h; "
        f"customer owes {event.amount_due}"
    )


@message_bus.subscribe(BookingCancelled)
def on_booking_cancelled(event: BookingCancelled):
    refund = event.refund or {}
    logger.info(
        f"Booking {event.booking_id} cancelled from {event.old_status}; "
        f"refund {refund.get('amount', 0)} via {refund.get('method', 'n/a')} ({refund.get('status', 'none')})"
    )
