"""
Offline Storage Tests
=====================

Tests for local durable storage including:
- Corrupt / missing entries read as empty
- Write failure policy (fail silently vs StorageError)
- JSON file and Redis key-value stores
- Pending operation (de)serialization
"""

import json
from unittest.mock import AsyncMock

import pytest

from worksuite.client.errors import StorageError
from worksuite.client.operations import (
    CreateOperation,
    DeleteOperation,
    UpdateOperation,
    load_operations,
    new_temp_id,
)
from worksuite.client.storage import (
    CACHE_KEY,
    QUEUE_KEY,
    TOMBSTONES_KEY,
    JsonFileStore,
    MemoryStore,
    OfflineStorage,
    RedisStore,
)


class TestOfflineStorageReads:

    @pytest.mark.asyncio
    async def test_missing_entries_are_empty(self):
        storage = OfflineStorage(MemoryStore())

        assert await storage.load_cache() == []
        assert await storage.load_queue() == []
        assert await storage.load_tombstones() == []

    @pytest.mark.asyncio
    async def test_corrupt_entries_are_empty(self):
        store = MemoryStore()
        store.data[CACHE_KEY] = "{not json"
        store.data[QUEUE_KEY] = json.dumps({"op": "create"})
        store.data[TOMBSTONES_KEY] = "42"
        storage = OfflineStorage(store)

        assert await storage.load_cache() == []
        assert await storage.load_queue() == []
        assert await storage.load_tombstones() == []

    @pytest.mark.asyncio
    async def test_read_error_is_empty(self):
        store = AsyncMock()
        store.get.side_effect = OSError("disk gone")
        storage = OfflineStorage(store)

        assert await storage.load_cache() == []

    @pytest.mark.asyncio
    async def test_cache_entries_without_id_dropped(self):
        store = MemoryStore()
        store.data[CACHE_KEY] = json.dumps([{"id": "1", "title": "a"}, {"title": "b"}, "x"])

        assert await OfflineStorage(store).load_cache() == [{"id": "1", "title": "a"}]


class TestOfflineStorageWrites:

    @pytest.mark.asyncio
    async def test_queue_round_trip(self):
        storage = OfflineStorage(MemoryStore())
        temp_id = new_temp_id()
        ops = [
            CreateOperation(temp_id=temp_id, payload={"title": "A"}),
            UpdateOperation(task_id=temp_id, patch={"status": "done"}),
            DeleteOperation(task_id="7"),
        ]

        await storage.save_queue(ops)

        loaded = await storage.load_queue()
        assert [op.model_dump() for op in loaded] == [op.model_dump() for op in ops]
        assert [type(op) for op in loaded] == [CreateOperation, UpdateOperation, DeleteOperation]

    @pytest.mark.asyncio
    async def test_write_error_swallowed_by_default(self):
        store = AsyncMock()
        store.set.side_effect = OSError("read-only")
        storage = OfflineStorage(store)

        await storage.save_cache([{"id": "1"}])

        store.set.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_write_error_raised_when_strict(self):
        store = AsyncMock()
        store.set.side_effect = OSError("read-only")
        storage = OfflineStorage(store, fail_silently=False)

        with pytest.raises(StorageError):
            await storage.save_tombstones(["1"])


class TestStores:

    @pytest.mark.asyncio
    async def test_json_file_store(self, tmp_path):
        store = JsonFileStore(tmp_path / "offline")

        assert await store.get(CACHE_KEY) is None
        await store.set(CACHE_KEY, "[]")

        assert await store.get(CACHE_KEY) == "[]"
        assert (tmp_path / "offline" / "tasks.cache.json").read_text() == "[]"
        assert not (tmp_path / "offline" / "tasks.cache.json.tmp").exists()

    @pytest.mark.asyncio
    async def test_redis_store_prefixes_keys(self):
        client = AsyncMock()
        client.get.return_value = b"[1]"
        store = RedisStore(client, prefix="ws")

        await store.set(QUEUE_KEY, "[]")
        value = await store.get(QUEUE_KEY)

        client.set.assert_awaited_once_with("ws:tasks.queue", "[]")
        client.get.assert_awaited_once_with("ws:tasks.queue")
        assert value == "[1]"


class TestOperations:

    def test_temp_ids_have_prefix(self):
        assert new_temp_id().startswith("tmp-")

    def test_stored_form_uses_camel_case(self):
        op = CreateOperation(temp_id="tmp-1-a", payload={"title": "A"})
        dumped = op.model_dump(by_alias=True)
        assert dumped["op"] == "create"
        assert dumped["tempId"] == "tmp-1-a"

    def test_unreadable_operations_skipped(self):
        ops = load_operations([
            {"op": "delete", "taskId": "3"},
            {"op": "explode"},
            {"op": "update", "taskId": "4"},
        ])
        assert len(ops) == 1
        assert isinstance(ops[0], DeleteOperation)
