"""
Booking policies

Pure time-based rules used by the Booking aggregate. All datetimes are
naive local wall-clock times; callers convert "now" before passing it in.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta

from shared.domain.exceptions import PolicyError
from shared.domain.value_objects import ClockTime, Hours

CANCELLATION_WINDOW_MINUTES = 15
MODIFIED_THRESHOLD = timedelta(seconds=60)


def scheduled_start(booking_date: date, start_time: str) -> datetime:
    clock = ClockTime.parse(start_time)
    return datetime.combine(booking_date, time(clock.hour, clock.minute))


def cancellation_block_reason(booking_date: date, start_time: str, now: datetime) -> str | None:
    """
    Why cancellation is not allowed at ``now``, or None when it is.

    - Booking date in the future: always allowed.
    - Booking date today: allowed while ``now - start <= 15`` minutes. The
      difference is not clamped, so this also allows cancelling up to 15
      minutes after the scheduled start.
    - Booking date in the past: never allowed.
    """
    today = now.date()
    if booking_date > today:
        return None
    if booking_date < today:
        return PolicyError.DATE_PASSED

    elapsed = now - scheduled_start(booking_date, start_time)
    if elapsed.total_seconds() / 60 <= CANCELLATION_WINDOW_MINUTES:
        return None
    return PolicyError.TOO_LATE_TODAY


def is_within_cancellation_window(booking_date: date, start_time: str, now: datetime) -> bool:
    return cancellation_block_reason(booking_date, start_time, now) is None


def was_modified(created_at: datetime | None, updated_at: datetime | None) -> bool:
    """
    Heuristic "updated by the venue" flag for display.

    True when the record changed more than a minute after it was created.
    Not an audit trail; never drives lifecycle decisions.
    """
    if not created_at or not updated_at:
        return False
    return updated_at - created_at > MODIFIED_THRESHOLD


def session_end_time(session_start_time: datetime | None, duration: Hours) -> datetime | None:
    """Start plus duration. Duration already contains extensions."""
    if session_start_time is None:
        return None
    return session_start_time + timedelta(hours=float(duration.value))


def display_date(session_start_time: datetime | None, booking_date: date | None,
                 created_at: datetime | None) -> date | None:
    """Date a booking is listed under: session start, else booking date, else creation."""
    if session_start_time:
        return session_start_time.date()
    if booking_date:
        return booking_date
    if created_at:
        return created_at.date()
    return None
