"""
Backend booking JSON -> Booking aggregate

The backend populates either the single fields (roomType, systemType,
numberOfSystems, pricePerHour) or systemsBooked + friendCount. ``cafe`` may
be a bare id or the populated cafe document.
"""

from __future__ import annotations

import logging
from typing import Any

from shared.domain.exceptions import ValidationError
from shared.domain.value_objects import Hours, Money, PhoneNumber, to_decimal
from shared.infrastructure.clock import local_now, parse_day, parse_timestamp

from apps.bookings.domain.entities import (
    Booking,
    BookingStatus,
    ExtensionPaymentStatus,
    booked_systems_from_payload,
)

logger = logging.getLogger(__name__)


def _reference(value) -> str:
    if isinstance(value, dict):
        value = value.get('_id') or value.get('id')
    return str(value or '')


def _phone(raw) -> PhoneNumber | None:
    if not raw:
        return None
    try:
        return PhoneNumber(str(raw))
    except ValidationError:
        logger.warning(f"Ignoring malformed phone number from backend: {raw!r}")
        return None


def booking_from_payload(data: dict[str, Any]) -> Booking:
    booking_id = data.get('_id') or data.get('id')
    if not booking_id:
        raise ValueError("Booking payload has no id")

    created_at = parse_timestamp(data.get('createdAt')) or local_now()
    extension_amount = data.get('extensionPaymentAmount')

    return Booking(
        id=str(booking_id),
        venue_id=_reference(data.get('cafe') or data.get('cafeId')),
        booking_date=parse_day(data.get('bookingDate') or data.get('date')),
        start_time=data.get('startTime') or '',
        duration=Hours(data.get('duration') or 0),
        phone_number=_phone(data.get('phoneNumber')),
        total_price=Money(to_decimal(data.get('totalPrice') or 0)),
        systems=booked_systems_from_payload(data),
        status=BookingStatus.parse(data.get('status') or BookingStatus.PENDING_PAYMENT.value),
        otp=data.get('otp') or None,
        session_start_time=parse_timestamp(data.get('sessionStartTime')),
        extended_time=Hours(data.get('extendedTime') or 0),
        extension_payment_status=ExtensionPaymentStatus.parse(data.get('extensionPaymentStatus')),
        extension_payment_amount=Money(to_decimal(extension_amount)) if extension_amount else None,
        refund=data.get('refund') or None,
        created_at=created_at,
        updated_at=parse_timestamp(data.get('updatedAt')) or created_at,
    )
