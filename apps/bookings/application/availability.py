"""
Availability Oracle Adapter

Asks the cafe backend whether the requested systems are free for a date and
duration. A group booking issues one call per line item; the answer is the
AND of all calls and stops at the first ``False``.

Calls run concurrently, each bounded by ``AVAILABILITY_CHECK_TIMEOUT``. A
call that fails or times out is AvailabilityUnknown and is resolved by the
fallback policy:

- fail_open (default): assume available so the customer is not blocked
- fail_closed: treat as unavailable

Fallback answers carry ``source=FALLBACK`` so they are never confused with a
confirmed ``True``. Results are tagged with the draft version that asked for
them; the draft discards results for versions it has moved past.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout, as_completed
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import List, Sequence, Tuple

from django.conf import settings

from shared.domain.exceptions import AvailabilityUnknown, BackendUnavailable
from shared.domain.value_objects import Credential, Hours

logger = logging.getLogger(__name__)


class FallbackPolicy(Enum):
    FAIL_OPEN = 'fail_open'
    FAIL_CLOSED = 'fail_closed'

    @classmethod
    def from_settings(cls) -> 'FallbackPolicy':
        return cls(getattr(settings, 'AVAILABILITY_FALLBACK_POLICY', cls.FAIL_OPEN.value))

    @property
    def assumed_available(self) -> bool:
        return self is FallbackPolicy.FAIL_OPEN


class AvailabilitySource(Enum):
    CONFIRMED = 'confirmed'
    FALLBACK = 'fallback'


@dataclass(frozen=True)
class AvailabilityQuery:
    """One line item to check: quantity systems of a type in a room."""
    venue_id: str
    room_ref: str
    system_type: str
    booking_date: date
    duration: Hours
    quantity: int

    def describe(self) -> str:
        return f"{self.quantity}x {self.system_type} in {self.room_ref} on {self.booking_date}"


@dataclass(frozen=True)
class AvailabilityResult:
    available: bool
    source: AvailabilitySource
    version: int | None = None
    unknown: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def confirmed(self) -> bool:
        return self.source is AvailabilitySource.CONFIRMED


class AvailabilityOracle:
    """
    Aggregates per-line-item availability calls into one answer.

    ``client`` needs a ``check_availability(venue_id, room_ref, system_type,
    booking_date, duration, quantity, credential=..., timeout=...)`` method
    (see BookingBackendClient).
    """

    def __init__(self, client=None, policy: FallbackPolicy | None = None,
                 timeout: float | None = None, max_workers: int | None = None):
        if client is None:
            from apps.bookings.infrastructure.client import BookingBackendClient
            client = BookingBackendClient()
        self.client = client
        self.policy = policy or FallbackPolicy.from_settings()
        self.timeout = timeout if timeout is not None else settings.AVAILABILITY_CHECK_TIMEOUT
        self.max_workers = max_workers or getattr(settings, 'AVAILABILITY_MAX_WORKERS', 4)

    def check_availability(self, venue_id: str, room_ref: str, system_type: str,
                           booking_date: date, duration: Hours, quantity: int,
                           credential: Credential | None = None) -> bool:
        query = AvailabilityQuery(venue_id, room_ref, system_type, booking_date, duration, quantity)
        return self.check_all([query], credential=credential).available

    def _ask(self, query: AvailabilityQuery, credential: Credential | None) -> bool:
        return self.client.check_availability(
            query.venue_id,
            query.room_ref,
            query.system_type,
            query.booking_date,
            query.duration,
            query.quantity,
            credential=credential,
            timeout=self.timeout,
        )

    def check_all(self, queries: Sequence[AvailabilityQuery],
                  credential: Credential | None = None,
                  version: int | None = None) -> AvailabilityResult:
        if not queries:
            raise ValueError("Nothing to check")

        workers = max(1, min(self.max_workers, len(queries)))
        # Queued calls start late when there are more line items than workers
        deadline = self.timeout * math.ceil(len(queries) / workers)

        unknown: List[str] = []
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix='availability')
        try:
            futures = {executor.submit(self._ask, query, credential): query for query in queries}
            try:
                for future in as_completed(futures, timeout=deadline):
                    query = futures[future]
                    try:
                        available = future.result()
                    except Exception as e:
                        if isinstance(e, (BackendUnavailable, AvailabilityUnknown)):
                            logger.warning(f"Availability check failed for {query.describe()}: {e}")
                        else:
                            logger.exception(f"Availability check raised for {query.describe()}")
                        unknown.append(query.describe())
                        if not self.policy.assumed_available:
                            return self._fallback(unknown, version)
                        continue

                    if not available:
                        logger.info(f"Not available: {query.describe()}")
                        return AvailabilityResult(False, AvailabilitySource.CONFIRMED, version)
            except FuturesTimeout:
                for future, query in futures.items():
                    if not future.done():
                        logger.warning(
                            f"Availability check timed out after {self.timeout}s for {query.describe()}"
                        )
                        unknown.append(query.describe())
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        if unknown:
            return self._fallback(unknown, version)
        return AvailabilityResult(True, AvailabilitySource.CONFIRMED, version)

    def _fallback(self, unknown: List[str], version: int | None) -> AvailabilityResult:
        available = self.policy.assumed_available
        logger.warning(
            f"Availability unknown for {', '.join(unknown)}; "
            f"policy {self.policy.value} assumes available={available} (source=fallback)"
        )
        return AvailabilityResult(available, AvailabilitySource.FALLBACK, version, tuple(unknown))
