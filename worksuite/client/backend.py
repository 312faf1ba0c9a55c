"""
Task Backend
============

The server capability the sync engine depends on, and its HTTP
implementation over a shared ``httpx.AsyncClient``.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import httpx

from worksuite.client.errors import TaskApiError
from worksuite.client.normalize import normalize_single, normalize_task_list

logger = logging.getLogger(__name__)


class TaskBackend(Protocol):
    """Remote task resource. Every method returns normalized task dicts."""

    async def list_tasks(self) -> list[dict]: ...

    async def create_task(self, payload: dict[str, Any]) -> dict: ...

    async def update_task(self, task_id: str, patch: dict[str, Any]) -> dict: ...

    async def delete_task(self, task_id: str) -> None: ...


def _error_from_response(response: httpx.Response) -> TaskApiError:
    """
    Build a ``TaskApiError`` from an error response.

    Understands ``{"error": {"code", "message"}}``, ``{"error": "msg"}``
    and ``{"detail": ...}`` bodies; anything else falls back to the text.
    """
    code: Optional[str] = None
    message = response.reason_phrase or "Request failed"
    payload: Any = None

    try:
        payload = response.json()
    except ValueError:
        text = response.text.strip()
        if text:
            message = text[:200]
    else:
        if isinstance(payload, dict):
            error = payload.get("error", payload.get("detail"))
            if isinstance(error, dict):
                code = error.get("code")
                message = str(error.get("message") or message)
            elif error:
                message = str(error)

    return TaskApiError(response.status_code, message, code=code, payload=payload)


class HttpTaskBackend:
    """``TaskBackend`` over the REST task resource."""

    def __init__(self, client: httpx.AsyncClient, resource_path: str = "/tasks"):
        self.client = client
        self.resource_path = resource_path.rstrip("/")

    def _url(self, task_id: Optional[str] = None) -> str:
        if task_id is None:
            return self.resource_path
        return f"{self.resource_path}/{task_id}"

    async def _request(
        self,
        method: str,
        url: str,
        json: Optional[dict[str, Any]] = None,
    ) -> httpx.Response:
        response = await self.client.request(method, url, json=json)
        if response.is_error:
            logger.debug(
                "Task API %s %s -> %d",
                method,
                url,
                response.status_code,
            )
            raise _error_from_response(response)
        return response

    async def list_tasks(self) -> list[dict]:
        response = await self._request("GET", self._url())
        return normalize_task_list(response.json())

    async def create_task(self, payload: dict[str, Any]) -> dict:
        response = await self._request("POST", self._url(), json=payload)
        return normalize_single(response.json())

    async def update_task(self, task_id: str, patch: dict[str, Any]) -> dict:
        response = await self._request("PUT", self._url(task_id), json=patch)
        return normalize_single(response.json())

    async def delete_task(self, task_id: str) -> None:
        await self._request("DELETE", self._url(task_id))

    async def aclose(self) -> None:
        await self.client.aclose()
