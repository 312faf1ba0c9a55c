"""
Shared Test Fixtures
====================

- ASGI client for the task server (in-memory repository, real JWTs)
- In-process ``FakeTaskBackend`` + memory storage for the sync engine
"""

import asyncio
import os

os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("TASK_REPOSITORY", "memory")
os.environ.setdefault("OFFLINE_STORE_BACKEND", "memory")
os.environ.setdefault("JWT_SECRET", "test-secret-key-with-at-least-32-characters")

from typing import Any, Optional

import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient

from worksuite.client.connectivity import ConnectivityMonitor
from worksuite.client.errors import TaskApiError
from worksuite.client.storage import MemoryStore, OfflineStorage
from worksuite.client.sync_engine import OfflineTaskSyncEngine
from worksuite.core.security import create_access_token
from worksuite.dependencies import get_task_repository
from worksuite.main import app
from worksuite.services.task_repository import InMemoryTaskRepository

OWNER_ID = "owner-1"


# ---------------------------------------------------------------------------
# Task server
# ---------------------------------------------------------------------------

@pytest.fixture
def repository() -> InMemoryTaskRepository:
    return InMemoryTaskRepository()


@pytest_asyncio.fixture
async def client(repository):
    """HTTP client bound to the app with a fresh in-memory repository."""
    app.dependency_overrides[get_task_repository] = lambda: repository
    transport = httpx.ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    token = create_access_token({"sub": OWNER_ID})
    return {"Authorization": f"Bearer {token}"}


# ---------------------------------------------------------------------------
# Sync engine
# ---------------------------------------------------------------------------

class FakeTaskBackend:
    """
    In-process task server for engine tests.

    ``offline = True`` makes every call fail with ``httpx.ConnectError``;
    ``fail(method, exc)`` queues a one-shot failure for a single method;
    ``hold(method)`` parks calls to it until the returned event is set.
    """

    def __init__(self) -> None:
        self.tasks: list[dict] = []
        self.next_id = 1
        self.offline = False
        self.calls: list[tuple[str, Any]] = []
        self._failures: dict[str, list[Exception]] = {}
        self._gates: dict[str, asyncio.Event] = {}

    def fail(self, method: str, exc: Exception) -> None:
        self._failures.setdefault(method, []).append(exc)

    def hold(self, method: str) -> asyncio.Event:
        gate = self._gates[method] = asyncio.Event()
        return gate

    def seed(self, task_id: str, title: str, **fields: Any) -> dict:
        task = {
            "id": task_id,
            "title": title,
            "status": fields.get("status", "todo"),
            "priority": fields.get("priority", "normal"),
            "dueDate": fields.get("dueDate"),
            "createdAt": "2026-01-01T00:00:00+00:00",
        }
        self.tasks.append(task)
        if task_id.isdigit():
            self.next_id = max(self.next_id, int(task_id) + 1)
        return dict(task)

    def _enter(self, method: str, arg: Any = None) -> None:
        self.calls.append((method, arg))
        if self.offline:
            raise httpx.ConnectError("network unreachable")
        pending = self._failures.get(method)
        if pending:
            raise pending.pop(0)

    async def _wait(self, method: str) -> None:
        gate = self._gates.get(method)
        if gate is not None:
            await gate.wait()

    def _find(self, task_id: str) -> Optional[dict]:
        for task in self.tasks:
            if task["id"] == task_id:
                return task
        return None

    def method_calls(self, method: str) -> list:
        return [arg for name, arg in self.calls if name == method]

    async def list_tasks(self) -> list[dict]:
        self._enter("list_tasks")
        await self._wait("list_tasks")
        return [dict(t) for t in self.tasks]

    async def create_task(self, payload: dict) -> dict:
        self._enter("create_task", dict(payload))
        await self._wait("create_task")
        task = {
            "id": str(self.next_id),
            "title": payload["title"],
            "status": payload.get("status", "todo"),
            "priority": payload.get("priority"),
            "dueDate": payload.get("dueDate"),
            "createdAt": payload.get("createdAt"),
        }
        self.next_id += 1
        self.tasks.append(task)
        return dict(task)

    async def update_task(self, task_id: str, patch: dict) -> dict:
        self._enter("update_task", (task_id, dict(patch)))
        await self._wait("update_task")
        task = self._find(task_id)
        if task is None:
            raise TaskApiError(404, "Task not found", code="TASK_001")
        task.update(patch)
        return dict(task)

    async def delete_task(self, task_id: str) -> None:
        self._enter("delete_task", task_id)
        await self._wait("delete_task")
        task = self._find(task_id)
        if task is None:
            raise TaskApiError(404, "Task not found", code="TASK_001")
        self.tasks.remove(task)


@pytest.fixture
def backend() -> FakeTaskBackend:
    return FakeTaskBackend()


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def storage(store) -> OfflineStorage:
    return OfflineStorage(store)


@pytest.fixture
def connectivity() -> ConnectivityMonitor:
    return ConnectivityMonitor()


@pytest.fixture
def engine(backend, storage, connectivity) -> OfflineTaskSyncEngine:
    return OfflineTaskSyncEngine(backend, storage, connectivity)
