"""
Booking Command Handlers

Use cases for the booking domain. They talk to the cafe backend, drive the
Booking aggregate and persist the local mirror within a unit of work.

Commands:
- CreateBookingCommand: Submit a draft to the backend (-> Pending Payment)
- CancelBookingCommand: Cancel a booked reservation inside the window
- SyncBookingsCommand: Pull "my bookings" and replay what changed remotely
- ApplyExtensionCommand: Record a venue-initiated extension
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import List
import logging

from shared.application.uow import DjangoUnitOfWork
from shared.domain.exceptions import BackendUnavailable, PolicyError
from shared.domain.value_objects import Credential, Hours, Money
from shared.infrastructure.clock import local_now, local_today
from apps.bookings.application.drafts import BookingDraft
from apps.bookings.domain import pricing
from apps.bookings.domain.entities import (
    EXTENDABLE_STATUSES,
    Booking,
    BookingStatus,
    ExtensionPaymentStatus,
)
from apps.bookings.domain.events import BookingCreated
from apps.bookings.infrastructure.payloads import booking_from_payload

logger = logging.getLogger(__name__)


# ===== Commands =====

@dataclass
class CreateBookingCommand:
    """
    Command to create a new booking

    The draft stays untouched whatever happens, so a failed submission can
    be retried without re-entering anything.
    """
    draft: BookingDraft
    credential: Credential


@dataclass
class CancelBookingCommand:
    booking_id: str
    credential: Credential


@dataclass
class SyncBookingsCommand:
    """Refresh the local mirror from the backend's "my bookings" list"""
    credential: Credential


@dataclass
class ApplyExtensionCommand:
    """
    Venue extended a session by ``additional_hours``

    ``amount`` is the backend's figure when it sent one; otherwise the
    extension is priced locally.
    """
    booking_id: str
    additional_hours: Decimal
    amount: Decimal | None = None


# ===== Command Handlers =====

class CreateBookingHandler:
    """
    Handler for CreateBooking command

    1. Re-check that the venue is open (fresh read when a directory is given)
    2. Validate the draft: complete selection, phone, current availability
    3. Send the payload without a total; the backend prices the booking
    4. Mirror the created booking in Pending Payment
    """

    def __init__(self, backend, booking_repo, directory=None):
        self.backend = backend
        self.booking_repo = booking_repo
        self.directory = directory

    def handle(self, command: CreateBookingCommand) -> Booking:
        draft = command.draft

        if self.directory is not None:
            venue = self.directory.get_venue(draft.venue.id, credential=command.credential)
            if not venue.is_open:
                raise PolicyError(
                    f"{venue.name or 'This cafe'} has closed and is not accepting bookings",
                    reason=PolicyError.VENUE_CLOSED,
                )

        draft.ensure_submittable(local_today())
        payload = draft.to_payload()
        quoted = draft.total_price

        logger.info(
            f"Creating booking at venue {draft.venue.id} on {draft.booking_date} "
            f"{draft.start_time} for {draft.duration.value}h"
        )

        response = self.backend.create_booking(payload, credential=command.credential)
        if not response.get('_id') and not response.get('id'):
            raise BackendUnavailable("Booking was not created: backend returned no id", payload=response)

        # Fill what the backend did not echo from what was sent
        merged = {**payload, **response}
        merged.setdefault('status', BookingStatus.PENDING_PAYMENT.value)
        if not response.get('totalPrice'):
            merged['totalPrice'] = str(quoted.amount)
        booking = booking_from_payload(merged)

        if booking.total_price != quoted:
            logger.warning(
                f"Backend priced booking {booking.id} at {booking.total_price}, "
                f"quoted {quoted}; keeping backend total"
            )

        with DjangoUnitOfWork() as uow:
            booking.add_event(BookingCreated(
                aggregate_id=booking.id,
                booking_id=booking.id,
                venue_id=booking.venue_id,
                booking_date=booking.booking_date,
                total_price=booking.total_price,
                is_group=booking.is_group,
            ))
            uow.collect_events(booking)
            self.booking_repo.save(booking)

        logger.info(f"Booking {booking.id} created, awaiting payment of {booking.total_price}")
        return booking


class CancelBookingHandler:
    """
    Handler for cancelling a booking

    The window and status are checked locally first so an obviously
    disallowed cancellation never reaches the backend.
    """

    def __init__(self, backend, booking_repo):
        self.backend = backend
        self.booking_repo = booking_repo

    def handle(self, command: CancelBookingCommand) -> Booking:
        logger.info(f"Cancelling booking {command.booking_id}")

        with DjangoUnitOfWork() as uow:
            booking = self.booking_repo.get(command.booking_id, lock=True)
            if not booking:
                raise ValueError(f"Booking {command.booking_id} not found")

            now = local_now()
            booking.ensure_cancellable(now)

            response = self.backend.cancel_booking(booking.id, credential=command.credential)
            status = response.get('status') or (response.get('booking') or {}).get('status')
            if status and BookingStatus.parse(status) is not BookingStatus.CANCELLED:
                raise BackendUnavailable(
                    f"Backend did not cancel booking {booking.id} (status {status})",
                    payload=response,
                )

            booking.cancel(now, refund=response.get('refund'))

            uow.collect_events(booking)
            self.booking_repo.save(booking)
            # Event: BookingCancelled

        if booking.refund:
            logger.info(f"Booking {booking.id} cancelled, refund {booking.refund}")
        else:
            logger.info(f"Booking {booking.id} cancelled")
        return booking


class SyncBookingsHandler:
    """
    Handler for syncing the mirror from the backend

    External lifecycle events (payment confirmed elsewhere, session start and
    end at the venue, owner extensions, cancellations by the venue) reach the
    core this way. Each one is replayed through the aggregate so the same
    transition rules and events apply.
    """

    def __init__(self, backend, booking_repo):
        self.backend = backend
        self.booking_repo = booking_repo

    def handle(self, command: SyncBookingsCommand) -> List[Booking]:
        items = self.backend.my_bookings(credential=command.credential)
        logger.info(f"Syncing {len(items)} bookings from backend")

        synced = []
        with DjangoUnitOfWork() as uow:
            for item in items:
                remote = booking_from_payload(item)
                booking = self.booking_repo.get(remote.id, lock=True)
                if booking is None:
                    booking = remote
                else:
                    self._replay(booking, remote)
                uow.collect_events(booking)
                self.booking_repo.save(booking)
                synced.append(booking)
        return synced

    def _replay(self, booking: Booking, remote: Booking):
        now = local_now()

        if remote.otp:
            booking.otp = remote.otp

        if booking.status is BookingStatus.PENDING_PAYMENT and remote.status in (
                BookingStatus.BOOKED, BookingStatus.ACTIVE, BookingStatus.COMPLETED):
            booking.mark_paid(remote.otp)
        if booking.status is BookingStatus.BOOKED and remote.status in (
                BookingStatus.ACTIVE, BookingStatus.COMPLETED):
            booking.start_session(remote.session_start_time or now)
        if booking.status is BookingStatus.ACTIVE and remote.status is BookingStatus.COMPLETED:
            booking.end_session()
        if remote.status is BookingStatus.CANCELLED and booking.status in (
                BookingStatus.PENDING_PAYMENT, BookingStatus.BOOKED):
            booking.record_external_cancellation(now, remote.refund)

        if booking.status is not remote.status:
            logger.warning(
                f"Booking {booking.id} is {booking.status.value} locally but "
                f"{remote.status.value} on the backend"
            )

        if remote.session_start_time:
            booking.session_start_time = remote.session_start_time
        if remote.refund:
            booking.refund = remote.refund

        self._replay_extension(booking, remote)

        if remote.duration != booking.duration:
            logger.warning(
                f"Booking {booking.id} duration {booking.duration.value}h differs from "
                f"backend {remote.duration.value}h; keeping backend value"
            )
            booking.duration = remote.duration

        booking.total_price = remote.total_price
        booking.created_at = remote.created_at
        booking.updated_at = remote.updated_at

    def _replay_extension(self, booking: Booking, remote: Booking):
        added = remote.extended_time.value - booking.extended_time.value
        if added > 0 and booking.status in EXTENDABLE_STATUSES:
            amount = _extension_amount(booking, Hours(added), remote)
            booking.apply_extension(Hours(added), amount)

        if (remote.extension_payment_status is ExtensionPaymentStatus.SETTLED
                and booking.has_pending_extension):
            booking.settle_extension()


def _extension_amount(booking: Booking, added: Hours, remote: Booking) -> Money:
    """
    Amount owed for ``added`` hours: the backend's pending figure minus what is
    already pending locally, else the locally priced delta.
    """
    expected = pricing.extension_amount(added, booking.systems)
    if not remote.extension_payment_amount:
        return expected

    already = booking.extension_payment_amount if booking.has_pending_extension else None
    reported = remote.extension_payment_amount
    if already and already < reported:
        reported = reported - already
    elif already:
        logger.warning(
            f"Booking {booking.id}: backend extension amount {remote.extension_payment_amount} "
            f"does not exceed pending {already}; pricing locally"
        )
        return expected

    if reported != expected:
        logger.warning(
            f"Booking {booking.id}: backend extension amount {reported} differs from "
            f"computed {expected}; keeping backend amount"
        )
    return reported


class ApplyExtensionHandler:
    """Handler for a venue-initiated extension reported to the core directly"""

    def __init__(self, booking_repo):
        self.booking_repo = booking_repo

    def handle(self, command: ApplyExtensionCommand) -> Booking:
        with DjangoUnitOfWork() as uow:
            booking = self.booking_repo.get(command.booking_id, lock=True)
            if not booking:
                raise ValueError(f"Booking {command.booking_id} not found")

            additional = Hours(command.additional_hours)
            if command.amount is not None:
                amount = Money(command.amount, booking.total_price.currency)
            else:
                amount = pricing.extension_amount(additional, booking.systems)

            booking.apply_extension(additional, amount)

            uow.collect_events(booking)
            self.booking_repo.save(booking)
            # Event: BookingExtended

        logger.info(
            f"Booking {booking.id} extended by {additional.value}h, "
            f"{booking.extension_payment_amount} due"
        )
        return booking


# ===== Queries =====

def bookings_on(day: date, bookings: List[Booking]) -> List[Booking]:
    """Bookings listed under ``day``: session start date, else booking date, else creation date."""
    return [booking for booking in bookings if booking.display_date == day]


def booking_details(booking: Booking, now=None) -> dict:
    """Normalised view of either booking shape for display."""
    now = now or local_now()
    return {
        'id': booking.id,
        'status': booking.status.value,
        'date': booking.booking_date,
        'start_time': booking.start_time,
        'duration': str(booking.duration),
        'total_price': booking.total_price,
        'is_group': booking.is_group,
        'friend_count': booking.systems.friend_count if booking.is_group else None,
        'lines': [
            {
                'room': line.room_type,
                'system': line.system_type,
                'quantity': line.number_of_systems,
                'unit_price': line.price_per_hour,
            }
            for line in booking.systems.lines
        ],
        'otp': booking.otp if booking.otp_visible else None,
        'session_start_time': booking.session_start_time,
        'session_end_time': booking.session_end_time,
        'extended_time': booking.extended_time.value,
        'extension_due': booking.extension_payment_amount if booking.has_pending_extension else None,
        'updated_badge': booking.shows_extended_badge,
        'can_cancel': booking.can_cancel(now),
        'refund': booking.refund,
    }

