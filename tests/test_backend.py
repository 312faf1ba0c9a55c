"""
HTTP Task Backend Tests
=======================

``HttpTaskBackend`` against ``httpx.MockTransport`` and against the real
app through ``httpx.ASGITransport``.
"""

import json

import httpx
import pytest

from worksuite.client import build_sync_engine
from worksuite.client.backend import HttpTaskBackend
from worksuite.client.connectivity import is_connectivity_error
from worksuite.client.errors import TaskApiError
from worksuite.client.http import build_http_client
from worksuite.config import Settings
from worksuite.core.security import create_access_token
from worksuite.dependencies import get_task_repository
from worksuite.main import app


def _backend(handler, token=None) -> HttpTaskBackend:
    settings = Settings(API_BASE_URL="http://api.test")
    client = build_http_client(
        settings,
        token_provider=(lambda: token) if token else None,
        transport=httpx.MockTransport(handler),
    )
    return HttpTaskBackend(client)


class TestHttpTaskBackend:

    @pytest.mark.asyncio
    async def test_list_accepts_envelope_and_sends_bearer(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"tasks": [{"id": 1, "title": "A"}]})

        backend = _backend(handler, token="abc")
        tasks = await backend.list_tasks()

        assert tasks[0]["id"] == "1"
        assert seen["auth"] == "Bearer abc"
        assert seen["url"] == "http://api.test/tasks"

    @pytest.mark.asyncio
    async def test_create_posts_payload(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "POST"
            body = json.loads(request.content)
            return httpx.Response(201, json={"task": {"id": "9", **body}})

        backend = _backend(handler)
        task = await backend.create_task({"title": "A", "status": "todo"})

        assert task["id"] == "9"
        assert task["title"] == "A"

    @pytest.mark.asyncio
    async def test_update_uses_put(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "PUT"
            assert request.url.path == "/tasks/9"
            return httpx.Response(200, json={"id": "9", "title": "A", "status": "done"})

        task = await _backend(handler).update_task("9", {"status": "done"})
        assert task["status"] == "done"

    @pytest.mark.asyncio
    async def test_structured_error_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                404,
                json={"success": False, "error": {"code": "TASK_001", "message": "Task not found"}},
            )

        with pytest.raises(TaskApiError) as exc_info:
            await _backend(handler).delete_task("9")

        err = exc_info.value
        assert err.status_code == 404
        assert err.code == "TASK_001"
        assert err.message == "Task not found"
        assert err.is_permanent is True
        assert is_connectivity_error(err) is False

    @pytest.mark.asyncio
    async def test_plain_string_error_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(400, json={"error": "Title is required"})

        with pytest.raises(TaskApiError) as exc_info:
            await _backend(handler).create_task({"title": ""})
        assert exc_info.value.message == "Title is required"

    @pytest.mark.asyncio
    async def test_text_error_body(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="Bad gateway")

        with pytest.raises(TaskApiError) as exc_info:
            await _backend(handler).list_tasks()
        assert exc_info.value.message == "Bad gateway"
        assert exc_info.value.is_permanent is False

    @pytest.mark.asyncio
    async def test_transport_error_propagates_unwrapped(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(httpx.ConnectError) as exc_info:
            await _backend(handler).list_tasks()
        assert is_connectivity_error(exc_info.value)


class TestEndToEnd:
    """Sync engine -> HTTP backend -> task server, all in process."""

    @pytest.mark.asyncio
    async def test_offline_create_replays_against_server(self, repository):
        app.dependency_overrides[get_task_repository] = lambda: repository
        token = create_access_token({"sub": "owner-1"})
        settings = Settings(API_BASE_URL="http://test", OFFLINE_STORE_BACKEND="memory")
        engine = build_sync_engine(
            settings,
            token_provider=lambda: token,
            transport=httpx.ASGITransport(app=app),
        )
        try:
            engine.notify_online(False)
            draft = await engine.create_task("Buy milk", due_date="2026-04-01")
            await engine.update_task(draft["id"], {"status": "in_progress"})

            engine.notify_online(True)
            report = await engine.try_sync_if_online()

            assert report.committed == 2
            assert report.resynced is True
            tasks = await engine.fetch_tasks()
            assert len(tasks) == 1
            assert tasks[0]["id"] == "1"
            assert tasks[0]["status"] == "in_progress"
            assert tasks[0]["dueDate"] == "2026-04-01"
            assert engine.pending_operations() == []
        finally:
            await engine.aclose()
            app.dependency_overrides.clear()
