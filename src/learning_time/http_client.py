"""HTTP session with connection pooling and automatic retry."""

from __future__ import annotations

import logging
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)

_retry_strategy = Retry(
    total=3,
    backoff_factor=2,  # 2s, 4s, 8s between retries
    status_forcelist=[502, 503, 504],
    allowed_methods=["HEAD", "GET", "POST"],
)


def create_session(api_token: Optional[str] = None) -> requests.Session:
    """Create a requests.Session with pooling, retry and optional bearer auth."""
    session = requests.Session()
    adapter = HTTPAdapter(
        pool_connections=1,
        pool_maxsize=3,
        max_retries=_retry_strategy,
    )
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    session.headers["Accept"] = "application/json"
    if api_token:
        session.headers["Authorization"] = f"Bearer {api_token}"
    return session


def reset_session(
    session: requests.Session, api_token: Optional[str] = None
) -> requests.Session:
    """Close and recreate the session (drops stale pooled connections)."""
    try:
        session.close()
    except Exception as exc:
        logger.debug("Ignoring error while closing session: %s", exc)
    return create_session(api_token)
