"""
Offline Storage
===============

Durable key-value persistence for the sync engine.

Three JSON entries are kept:

    tasks.cache       -> ordered list of task dicts
    tasks.queue       -> ordered list of pending operations
    tasks.tombstones  -> ids deleted locally

Reads never fail: missing, corrupt or unreadable entries come back empty.
Writes are write-through; on failure they are logged and swallowed when
``fail_silently`` is on, otherwise ``StorageError`` is raised.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Iterable, Optional, Protocol

from redis.asyncio import Redis

from worksuite.client.errors import StorageError
from worksuite.client.operations import (
    PendingOperation,
    dump_operations,
    load_operations,
)

logger = logging.getLogger(__name__)

CACHE_KEY = "tasks.cache"
QUEUE_KEY = "tasks.queue"
TOMBSTONES_KEY = "tasks.tombstones"


# ---------------------------------------------------------------------------
# Key-value backends
# ---------------------------------------------------------------------------

class KeyValueStore(Protocol):
    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...


class MemoryStore:
    """Process-local store; nothing survives a restart."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileStore:
    """
    One ``<key>.json`` file per entry under *directory*.

    File I/O runs in a worker thread; callers still await each write before
    returning, and a write replaces the file atomically.
    """

    def __init__(self, directory: str | Path) -> None:
        self._dir = Path(directory).expanduser()

    def _path(self, key: str) -> Path:
        return self._dir / f"{key}.json"

    def _read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def _write(self, key: str, value: str) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(value, encoding="utf-8")
        os.replace(tmp, path)

    async def get(self, key: str) -> Optional[str]:
        return await asyncio.to_thread(self._read, key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._write, key, value)


class RedisStore:
    """Entries as plain string keys ``<prefix>:<key>`` in Redis."""

    def __init__(self, client: Redis, prefix: str = "worksuite:offline") -> None:
        self._client = client
        self._prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self._prefix}:{key}"

    async def get(self, key: str) -> Optional[str]:
        raw = await self._client.get(self._key(key))
        if isinstance(raw, bytes):
            return raw.decode("utf-8")
        return raw

    async def set(self, key: str, value: str) -> None:
        await self._client.set(self._key(key), value)


# ---------------------------------------------------------------------------
# OfflineStorage
# ---------------------------------------------------------------------------

class OfflineStorage:
    """Typed access to the engine's three entries on top of a store."""

    def __init__(self, store: KeyValueStore, *, fail_silently: bool = True) -> None:
        self.store = store
        self.fail_silently = fail_silently

    async def _read_json(self, key: str) -> Any:
        try:
            raw = await self.store.get(key)
        except Exception as exc:
            logger.warning("offline storage read error key=%s: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("offline storage entry %s is corrupt; treating as empty", key)
            return None

    async def _write_json(self, key: str, value: Any) -> None:
        try:
            await self.store.set(key, json.dumps(value, default=str))
        except Exception as exc:
            if not self.fail_silently:
                raise StorageError(f"Could not write {key}: {exc}") from exc
            logger.warning("offline storage write error key=%s: %s", key, exc)

    # ---- cache -----------------------------------------------------------

    async def load_cache(self) -> list[dict]:
        value = await self._read_json(CACHE_KEY)
        if not isinstance(value, list):
            return []
        return [t for t in value if isinstance(t, dict) and t.get("id")]

    async def save_cache(self, tasks: Iterable[dict]) -> None:
        await self._write_json(CACHE_KEY, list(tasks))

    # ---- queue -----------------------------------------------------------

    async def load_queue(self) -> list[PendingOperation]:
        return load_operations(await self._read_json(QUEUE_KEY))

    async def save_queue(self, operations: Iterable[PendingOperation]) -> None:
        await self._write_json(QUEUE_KEY, dump_operations(operations))

    # ---- tombstones ------------------------------------------------------

    async def load_tombstones(self) -> list[str]:
        value = await self._read_json(TOMBSTONES_KEY)
        if not isinstance(value, list):
            return []
        return [str(v) for v in value]

    async def save_tombstones(self, task_ids: Iterable[str]) -> None:
        await self._write_json(TOMBSTONES_KEY, list(task_ids))
