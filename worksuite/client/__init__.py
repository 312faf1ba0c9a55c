"""
Task Sync Client
================

Offline-capable task client for UI code.

    engine = build_sync_engine(token_provider=session.access_token)
    await engine.load()
    await engine.try_sync_if_online()
    tasks = await engine.fetch_tasks()
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

import httpx
import redis.asyncio as redis
from redis.asyncio import Redis

from worksuite.client.backend import HttpTaskBackend, TaskBackend
from worksuite.client.connectivity import ConnectivityMonitor, is_connectivity_error
from worksuite.client.errors import StorageError, TaskApiError
from worksuite.client.http import TokenProvider, build_http_client
from worksuite.client.operations import (
    CreateOperation,
    DeleteOperation,
    PendingOperation,
    UpdateOperation,
)
from worksuite.client.storage import (
    JsonFileStore,
    KeyValueStore,
    MemoryStore,
    OfflineStorage,
    RedisStore,
)
from worksuite.client.sync_engine import OfflineTaskSyncEngine, RejectedOperation, SyncReport
from worksuite.config import Settings, get_settings

logger = logging.getLogger(__name__)


def build_store(settings: Settings, redis_client: Optional[Redis] = None) -> KeyValueStore:
    """Pick the key-value store named by ``OFFLINE_STORE_BACKEND``."""
    backend = settings.OFFLINE_STORE_BACKEND
    if backend == "memory":
        return MemoryStore()
    if backend == "redis":
        client = redis_client or redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        return RedisStore(client, prefix=settings.OFFLINE_STORE_PREFIX)
    return JsonFileStore(settings.OFFLINE_STORE_PATH)


def build_sync_engine(
    settings: Optional[Settings] = None,
    token_provider: Optional[TokenProvider] = None,
    online_signal: Optional[Callable[[], bool]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    redis_client: Optional[Redis] = None,
) -> OfflineTaskSyncEngine:
    """Wire transport, backend, storage and engine from settings."""
    settings = settings or get_settings()

    client = build_http_client(settings, token_provider=token_provider, transport=transport)
    storage = OfflineStorage(
        build_store(settings, redis_client),
        fail_silently=settings.STORAGE_FAIL_SILENTLY,
    )
    engine = OfflineTaskSyncEngine(
        HttpTaskBackend(client),
        storage,
        ConnectivityMonitor(online_signal),
        drop_rejected=settings.REPLAY_DROP_REJECTED,
    )
    logger.info(
        "Task sync client ready: api=%s store=%s",
        settings.API_BASE_URL,
        settings.OFFLINE_STORE_BACKEND,
    )
    return engine


__all__ = [
    "ConnectivityMonitor",
    "CreateOperation",
    "DeleteOperation",
    "HttpTaskBackend",
    "JsonFileStore",
    "MemoryStore",
    "OfflineStorage",
    "OfflineTaskSyncEngine",
    "PendingOperation",
    "RedisStore",
    "RejectedOperation",
    "StorageError",
    "SyncReport",
    "TaskApiError",
    "TaskBackend",
    "UpdateOperation",
    "build_store",
    "build_sync_engine",
    "is_connectivity_error",
]
