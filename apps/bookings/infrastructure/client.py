"""
Booking backend client

Wraps the cafe backend booking endpoints:
- GET  bookings/availability/<venueId>   -> {available}
- POST bookings/                         -> {id, ...echoed fields}
- POST bookings/<id>/cancel              -> {status: 'Cancelled', refund?}
- GET  bookings/my-bookings              -> [booking, ...]
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from shared.domain.exceptions import BackendUnavailable
from shared.domain.value_objects import Credential, Hours
from shared.infrastructure.http import CafeApiClient

logger = logging.getLogger(__name__)


class BookingBackendClient(CafeApiClient):

    def check_availability(
        self,
        venue_id: str,
        room_ref: str,
        system_type: str,
        booking_date: date,
        duration: Hours,
        quantity: int,
        *,
        credential: Credential | None = None,
        timeout: float | None = None,
    ) -> bool:
        params = {
            'roomId': room_ref,
            'systemType': system_type,
            'date': booking_date.isoformat(),
            'duration': str(duration.value),
            'numberOfSystems': quantity,
        }
        data = self.get(
            f'bookings/availability/{venue_id}',
            credential=credential,
            params=params,
            timeout=timeout,
        )
        if not isinstance(data, dict) or 'available' not in data:
            raise BackendUnavailable(f"Unexpected availability answer for venue {venue_id}", payload=data)
        return bool(data['available'])

    def create_booking(self, payload: dict[str, Any], *, credential: Credential) -> dict[str, Any]:
        logger.info(f"Submitting booking for venue {payload.get('cafeId')} on {payload.get('bookingDate')}")
        data = self.post('bookings/', credential=credential, json=payload)
        return data.get('booking', data) if isinstance(data, dict) else {}

    def cancel_booking(self, booking_id: str, *, credential: Credential) -> dict[str, Any]:
        data = self.post(f'bookings/{booking_id}/cancel', credential=credential)
        return data if isinstance(data, dict) else {}

    def my_bookings(self, *, credential: Credential) -> list[dict[str, Any]]:
        data = self.get('bookings/my-bookings', credential=credential)
        if isinstance(data, dict):
            data = data.get('bookings') or data.get('data') or []
        return list(data or [])
