"""
Connectivity Detection
======================

Decides whether the client should treat the server as unreachable.

The client is offline when either
  (a) the platform signal reports no network, or
  (b) the most recent request failed without reaching the server.

Only (b)-style failures are "connectivity errors"; an HTTP error response
with a body is an application error and must reach the caller.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Optional

import httpx

from worksuite.client.errors import TaskApiError

logger = logging.getLogger(__name__)

NETWORK_ERROR_PATTERN = re.compile(r"network", re.IGNORECASE)


def is_connectivity_error(exc: BaseException) -> bool:
    """
    Classify *exc* as a network/transport failure.

    - ``TaskApiError`` always carries a response -> never connectivity
    - ``httpx.TransportError`` (connect/read/write/pool errors, timeouts)
    - builtin ``ConnectionError`` / ``TimeoutError``
    - anything whose message mentions "network"
    """
    if isinstance(exc, TaskApiError):
        return False
    if isinstance(exc, (httpx.TransportError, ConnectionError, TimeoutError)):
        return True
    return bool(NETWORK_ERROR_PATTERN.search(str(exc)))


class ConnectivityMonitor:
    """
    Tracks the two offline conditions.

    ``online_signal`` is an optional callable standing in for the platform's
    network indicator; ``notify_online`` records connectivity-change events.
    """

    def __init__(self, online_signal: Optional[Callable[[], bool]] = None) -> None:
        self._online_signal = online_signal
        self._platform_online = True
        self._unreachable = False

    @property
    def platform_online(self) -> bool:
        """Explicit platform signal (condition a)."""
        if not self._platform_online:
            return False
        if self._online_signal is None:
            return True
        try:
            return bool(self._online_signal())
        except Exception as exc:
            logger.warning("Online signal failed (%s); assuming online", exc)
            return True

    @property
    def server_unreachable(self) -> bool:
        """Whether the last request failed with a connectivity error (condition b)."""
        return self._unreachable

    @property
    def is_offline(self) -> bool:
        return not self.platform_online or self._unreachable

    def notify_online(self, online: bool) -> None:
        """Record a platform connectivity change."""
        self._platform_online = online
        if online:
            # A fresh "online" event earns the server another attempt.
            self._unreachable = False
        logger.info("Connectivity changed: %s", "online" if online else "offline")

    def mark_unreachable(self) -> None:
        if not self._unreachable:
            logger.info("Server unreachable; switching to offline mode")
        self._unreachable = True

    def mark_reachable(self) -> None:
        self._unreachable = False
