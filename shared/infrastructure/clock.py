"""
Local wall-clock helpers

Domain code works with naive datetimes in the venue's local time
(settings.TIME_ZONE). These helpers convert at the edges: the ORM stores
aware datetimes and the backend sends ISO-8601 timestamps.
"""

from datetime import date, datetime

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime


def local_now() -> datetime:
    return timezone.localtime().replace(tzinfo=None)


def local_today() -> date:
    return local_now().date()


def to_aware(value: datetime | None) -> datetime | None:
    if value is None or timezone.is_aware(value):
        return value
    return timezone.make_aware(value)


def to_local_naive(value: datetime | None) -> datetime | None:
    if value is None or timezone.is_naive(value):
        return value
    return timezone.localtime(value).replace(tzinfo=None)


def parse_timestamp(raw) -> datetime | None:
    """Backend timestamp ("2025-08-01T09:30:00.000Z") as naive local time."""
    if not raw:
        return None
    if isinstance(raw, datetime):
        return to_local_naive(raw)
    parsed = parse_datetime(str(raw))
    if parsed is None:
        raise ValueError(f"Invalid timestamp: {raw!r}")
    return to_local_naive(parsed)


def parse_day(raw) -> date | None:
    """Calendar day from "2025-08-01" or a full timestamp."""
    if not raw:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    text = str(raw)
    parsed = parse_date(text[:10])
    if parsed is None:
        raise ValueError(f"Invalid date: {raw!r}")
    return parsed
