"""Venue directory client."""

from __future__ import annotations

from shared.domain.value_objects import Credential
from shared.infrastructure.http import CafeApiClient

from apps.cafes.domain.catalog import Venue


class CafeDirectoryClient(CafeApiClient):
    """Reads venues, rooms and systems from ``/cafes/``."""

    def get_venue(self, venue_id: str, credential: Credential | None = None) -> Venue:
        payload = self.get(f'cafes/{venue_id}', credential=credential)
        return Venue.from_payload(payload)
