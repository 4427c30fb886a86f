"""
Booking repository

Maps the Booking aggregate to the BookingRecord mirror and back.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import List

from shared.domain.value_objects import Hours, Money, PhoneNumber
from shared.infrastructure.clock import to_aware, to_local_naive

from apps.bookings.domain.entities import (
    Booking,
    BookingStatus,
    ExtensionPaymentStatus,
    GroupBooking,
    SingleBooking,
    SystemLine,
)
from apps.bookings.models import BookingRecord

logger = logging.getLogger(__name__)


class DjangoBookingRepository:

    def get(self, booking_id: str, lock: bool = False) -> Booking | None:
        """
        Load a booking by backend id.

        ``lock=True`` takes SELECT FOR UPDATE; call it inside DjangoUnitOfWork.
        """
        queryset = BookingRecord.objects.all()
        if lock:
            queryset = queryset.select_for_update()
        record = queryset.filter(pk=booking_id).first()
        if record is None:
            return None
        return self._to_domain(record)

    def save(self, booking: Booking) -> None:
        fields = self._to_fields(booking)
        BookingRecord.objects.update_or_create(pk=booking.id, defaults=fields)
        logger.debug(f"Saved {booking}")

    def list(self, on_date: date | None = None) -> List[Booking]:
        """All mirrored bookings, or those listed under ``on_date``."""
        bookings = [self._to_domain(record) for record in BookingRecord.objects.all()]
        if on_date is not None:
            bookings = [booking for booking in bookings if booking.display_date == on_date]
        return bookings

    # ----- mapping -----

    def _to_fields(self, booking: Booking) -> dict:
        fields = {
            'venue_id': booking.venue_id,
            'booking_date': booking.booking_date,
            'start_time': booking.start_time,
            'duration': booking.duration.value,
            'phone_number': str(booking.phone_number) if booking.phone_number else '',
            'total_price': booking.total_price.amount,
            'currency': booking.total_price.currency,
            'status': booking.status.value,
            'otp': booking.otp or '',
            'session_start_time': to_aware(booking.session_start_time),
            'extended_time': booking.extended_time.value,
            'extension_payment_status': booking.extension_payment_status.value,
            'extension_payment_amount': (
                booking.extension_payment_amount.amount if booking.extension_payment_amount else None
            ),
            'pending_payment_id': booking.pending_payment_id or '',
            'refund': booking.refund,
            'cancelled_at': to_aware(booking.cancelled_at),
            'created_at': to_aware(booking.created_at),
            'updated_at': to_aware(booking.updated_at),
        }

        if isinstance(booking.systems, GroupBooking):
            fields.update({
                'room_type': '',
                'system_type': '',
                'number_of_systems': None,
                'price_per_hour': None,
                'systems_booked': [line.to_payload() for line in booking.systems.lines],
                'friend_count': booking.systems.friend_count,
            })
        else:
            line = booking.systems.line
            fields.update({
                'room_type': line.room_type,
                'system_type': line.system_type,
                'number_of_systems': line.number_of_systems,
                'price_per_hour': line.price_per_hour.amount,
                'systems_booked': [],
                'friend_count': None,
            })
        return fields

    def _to_domain(self, record: BookingRecord) -> Booking:
        currency = record.currency or 'INR'
        if record.is_group:
            systems = GroupBooking(
                lines=tuple(
                    SystemLine(
                        room_type=item.get('roomType') or '',
                        system_type=item.get('systemType') or '',
                        number_of_systems=int(item.get('numberOfSystems') or 1),
                        price_per_hour=Money(Decimal(str(item.get('pricePerHour') or 0)), currency),
                    )
                    for item in record.systems_booked
                ),
                friend_count=record.friend_count,
            )
        else:
            systems = SingleBooking(line=SystemLine(
                room_type=record.room_type,
                system_type=record.system_type,
                number_of_systems=record.number_of_systems or 1,
                price_per_hour=Money(record.price_per_hour or Decimal('0'), currency),
            ))

        return Booking(
            id=record.pk,
            venue_id=record.venue_id,
            booking_date=record.booking_date,
            start_time=record.start_time,
            duration=Hours(record.duration),
            phone_number=PhoneNumber(record.phone_number) if record.phone_number else None,
            total_price=Money(record.total_price, currency),
            systems=systems,
            status=BookingStatus(record.status),
            otp=record.otp or None,
            session_start_time=to_local_naive(record.session_start_time),
            extended_time=Hours(record.extended_time),
            extension_payment_status=ExtensionPaymentStatus(record.extension_payment_status),
            extension_payment_amount=(
                Money(record.extension_payment_amount, currency)
                if record.extension_payment_amount is not None else None
            ),
            pending_payment_id=record.pending_payment_id or None,
            refund=record.refund,
            cancelled_at=to_local_naive(record.cancelled_at),
            created_at=to_local_naive(record.created_at),
            updated_at=to_local_naive(record.updated_at),
        )
