"""Connectivity monitoring for the remote collector.

The check is a plain TCP connect to the collector's host, so it works the
same on any network adapter. ``ConnectivityMonitor`` turns a stream of
probe results into a single "connectivity restored" callback per outage.
"""

from __future__ import annotations

import logging
import socket
from typing import Callable
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)


def is_online(server_url: str, timeout: float = 4.0) -> bool:
    """Return True if a TCP connection to the server's host can be opened."""
    parts = urlsplit(server_url)
    host = parts.hostname
    if not host:
        return False
    port = parts.port or (443 if parts.scheme == "https" else 80)
    try:
        sock = socket.create_connection((host, port), timeout=timeout)
        sock.close()
        return True
    except OSError:
        return False


class ConnectivityMonitor:
    """Fires ``on_restored`` on every offline to online transition."""

    def __init__(
        self,
        probe: Callable[[], bool],
        on_restored: Callable[[], object],
        *,
        online: bool = True,
    ) -> None:
        self._probe = probe
        self._on_restored = on_restored
        self.online = online

    @classmethod
    def for_url(
        cls, server_url: str, on_restored: Callable[[], object]
    ) -> "ConnectivityMonitor":
        return cls(lambda: is_online(server_url), on_restored)

    def check(self) -> bool:
        """Probe once and react to a state change. Returns the new state."""
        try:
            online_now = bool(self._probe())
        except Exception:
            logger.exception("Connectivity probe failed")
            online_now = False

        if online_now and not self.online:
            logger.info("Network ONLINE: collector reachable again")
            self.online = True
            self._fire()
        elif not online_now and self.online:
            logger.warning("Network OFFLINE: collector unreachable")
            self.online = False
        return self.online

    def notify_online(self) -> object:
        """External connectivity-restored signal (e.g. from the host UI).

        Returns whatever the reconnect callback returned, or None if it failed.
        """
        logger.info("Connectivity restored signal received")
        self.online = True
        return self._fire()

    def _fire(self) -> object:
        try:
            return self._on_restored()
        except Exception:
            logger.exception("Reconnect sync failed")
            return None
