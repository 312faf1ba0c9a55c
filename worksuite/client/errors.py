"""
Client Errors
=============

Exceptions raised by the task sync client.

Transport failures are not wrapped: ``httpx`` exceptions propagate as-is so
``connectivity.is_connectivity_error`` can classify them.
"""

from typing import Any, Optional

# 4xx codes that still mean "try again later".
RETRYABLE_CLIENT_STATUSES = frozenset({408, 425, 429})


class TaskApiError(Exception):
    """The server answered with a non-2xx response."""

    def __init__(
        self,
        status_code: int,
        message: str,
        code: Optional[str] = None,
        payload: Any = None,
    ):
        self.status_code = status_code
        self.message = message
        self.code = code
        self.payload = payload
        super().__init__(f"HTTP {status_code}: {message}")

    @property
    def is_permanent(self) -> bool:
        """True for rejections that will not succeed on retry (most 4xx)."""
        return 400 <= self.status_code < 500 and self.status_code not in RETRYABLE_CLIENT_STATUSES

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class StorageError(Exception):
    """Local durable storage could not be written."""
