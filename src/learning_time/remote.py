"""Client for the remote learning-time collector."""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence

import requests

from . import http_client
from .models import TimeRecord

logger = logging.getLogger(__name__)

BATCH_ENDPOINT = "/api/learning-time/batch"
_SUCCESS_CODES = frozenset({200, 201, 202, 204})


class RemoteCollector(Protocol):
    """Anything that can take a batch of records, all or nothing."""

    def submit_time_batch(self, records: Sequence[TimeRecord]) -> bool:
        ...


class HttpRemoteCollector:
    """Posts record batches to the collector's batch endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        api_token: Optional[str] = None,
        timeout: float = 15.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._api_token = api_token
        self._session = session or http_client.create_session(api_token)

    @property
    def batch_url(self) -> str:
        return f"{self.base_url}{BATCH_ENDPOINT}"

    def submit_time_batch(self, records: Sequence[TimeRecord]) -> bool:
        """Send one batch. Returns True only when the collector accepted it."""
        if not records:
            return True
        payload = {"records": [record.to_payload() for record in records]}
        try:
            resp = self._session.post(self.batch_url, json=payload, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Batch submit network error: %s", exc)
            self._session = http_client.reset_session(self._session, self._api_token)
            return False

        if resp.status_code in _SUCCESS_CODES:
            logger.info("Submitted %d time records", len(records))
            return True
        if resp.status_code in (401, 403):
            logger.error("Batch submit REJECTED (%d): check the API token", resp.status_code)
        else:
            logger.warning(
                "Batch submit failed: HTTP %d - %s", resp.status_code, resp.text[:200]
            )
        return False

    def close(self) -> None:
        self._session.close()
