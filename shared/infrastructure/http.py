"""
Cafe backend HTTP client

Lowest layer of every collaborator: sends one JSON request to the cafe
backend with the caller's bearer credential and returns the decoded body.
Transport failures, non-2xx answers and undecodable bodies are raised as
BackendUnavailable so services only deal with domain exceptions.
"""

from __future__ import annotations

import logging
from typing import Any

import requests
from django.conf import settings

from shared.domain.exceptions import BackendUnavailable
from shared.domain.value_objects import Credential

logger = logging.getLogger(__name__)


class CafeApiClient:
    """Base class for clients of the cafe backend REST API."""

    def __init__(self, base_url: str | None = None, timeout: float | None = None):
        self.base_url = (base_url or settings.CAFE_API_BASE_URL).rstrip('/')
        self.timeout = timeout if timeout is not None else settings.CAFE_API_TIMEOUT

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(self, credential: Credential | None) -> dict[str, str]:
        headers = {
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        }
        if credential is not None:
            headers.update(credential.headers())
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        credential: Credential | None = None,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        timeout: float | None = None,
    ) -> Any:
        url = self._url(path)
        try:
            response = requests.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(credential),
                timeout=timeout if timeout is not None else self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Cafe backend unreachable: {method} {url}: {e}")
            raise BackendUnavailable(f"Cafe backend unreachable: {e}") from e

        try:
            payload = response.json() if response.content else {}
        except ValueError:
            payload = {'_raw_body': response.text[:500]}

        if not response.ok:
            message = payload.get('message') if isinstance(payload, dict) else None
            logger.error(f"Cafe backend error {response.status_code}: {method} {url}: {message}")
            raise BackendUnavailable(
                message or f"Cafe backend error: {response.status_code}",
                status_code=response.status_code,
                payload=payload,
            )

        if isinstance(payload, dict) and '_raw_body' in payload:
            raise BackendUnavailable(f"Cafe backend returned invalid JSON for {method} {url}")

        return payload

    def get(self, path: str, **kwargs) -> Any:
        return self.request('GET', path, **kwargs)

    def post(self, path: str, **kwargs) -> Any:
        return self.request('POST', path, **kwargs)
