"""
Shared HTTP Transport
=====================

One ``httpx.AsyncClient`` for every task request. A bearer credential is
attached automatically when the token provider has one; the sync engine
never sees it.
"""

from __future__ import annotations

from typing import Callable, Generator, Optional

import httpx

from worksuite.config import Settings, get_settings

TokenProvider = Callable[[], Optional[str]]


class BearerAuth(httpx.Auth):
    """Adds ``Authorization: Bearer <token>`` if a token is available."""

    def __init__(self, token_provider: TokenProvider) -> None:
        self._token_provider = token_provider

    def auth_flow(self, request: httpx.Request) -> Generator[httpx.Request, httpx.Response, None]:
        token = self._token_provider()
        if token:
            request.headers["Authorization"] = f"Bearer {token}"
        yield request


def build_http_client(
    settings: Optional[Settings] = None,
    token_provider: Optional[TokenProvider] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """
    Create the shared client.

    *transport* lets tests plug in ``httpx.MockTransport`` or
    ``httpx.ASGITransport``.
    """
    settings = settings or get_settings()
    return httpx.AsyncClient(
        base_url=settings.API_BASE_URL,
        timeout=settings.REQUEST_TIMEOUT_SECONDS,
        auth=BearerAuth(token_provider) if token_provider else None,
        headers={"Content-Type": "application/json"},
        transport=transport,
    )
