"""
Offline Task Sync Engine
========================

Fetch / create / update / delete tasks with the same behavior whether or
not the server is reachable.

State (all write-through to ``OfflineStorage``):
    cache       ordered task dicts: last server snapshot + optimistic edits
    queue       pending operations, replayed FIFO
    tombstones  ids deleted locally; filtered out of fetched lists until the
                server stops returning them

Replay (``try_sync_if_online``):
    Queued -> Replaying -> Committed (dropped)
                        -> Queued    (connectivity error / retryable failure)
                        -> Rejected  (permanent 4xx, when drop_rejected is on)

After a replay that did not hit a connectivity error, one authoritative
fetch re-mirrors the cache from the server.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Awaitable, Callable, Mapping, Optional, TypeVar

from worksuite.client.backend import TaskBackend
from worksuite.client.connectivity import ConnectivityMonitor, is_connectivity_error
from worksuite.client.errors import TaskApiError
from worksuite.client.normalize import (
    DEFAULT_PRIORITY,
    DEFAULT_STATUS,
    normalize_patch,
)
from worksuite.client.operations import (
    CreateOperation,
    DeleteOperation,
    PendingOperation,
    UpdateOperation,
    is_temporary_id,
    new_temp_id,
)
from worksuite.client.storage import OfflineStorage
from worksuite.utils.helpers import to_date_key, utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class RejectedOperation:
    operation: PendingOperation
    status_code: Optional[int]
    message: str


@dataclass(slots=True)
class SyncReport:
    """Outcome of one replay pass."""

    committed: int = 0
    retained: int = 0
    rejected: list[RejectedOperation] = field(default_factory=list)
    resynced: bool = False
    skipped: bool = False


class OfflineTaskSyncEngine:
    """
    Task API for UI code with transparent offline queuing.

    Callers should run ``load()`` once at start-up and call
    ``try_sync_if_online()`` on start-up and on every transition to online.
    """

    def __init__(
        self,
        backend: TaskBackend,
        storage: OfflineStorage,
        connectivity: Optional[ConnectivityMonitor] = None,
        *,
        drop_rejected: bool = True,
    ) -> None:
        self.backend = backend
        self.storage = storage
        self.connectivity = connectivity or ConnectivityMonitor()
        self.drop_rejected = drop_rejected

        self._cache: list[dict] = []
        self._queue: list[PendingOperation] = []
        self._tombstones: list[str] = []
        # temp id -> server id, for ids resolved during this session
        self._resolved: dict[str, str] = {}
        self._replay_lock = asyncio.Lock()

    # ---- state -----------------------------------------------------------

    async def load(self) -> None:
        """Hydrate in-memory state from durable storage."""
        self._cache = await self.storage.load_cache()
        self._queue = await self.storage.load_queue()
        self._tombstones = await self.storage.load_tombstones()
        logger.info(
            "Sync engine loaded cache=%d queue=%d tombstones=%d",
            len(self._cache),
            len(self._queue),
            len(self._tombstones),
        )

    @property
    def is_offline(self) -> bool:
        return self.connectivity.is_offline

    def notify_online(self, online: bool) -> None:
        self.connectivity.notify_online(online)

    def cached_tasks(self) -> list[dict]:
        return [dict(t) for t in self._cache]

    def pending_operations(self) -> list[PendingOperation]:
        return list(self._queue)

    async def _persist(self, *, cache: bool = False, queue: bool = False, tombstones: bool = False) -> None:
        if cache:
            await self.storage.save_cache(self._cache)
        if queue:
            await self.storage.save_queue(self._queue)
        if tombstones:
            await self.storage.save_tombstones(self._tombstones)

    # ---- cache helpers ---------------------------------------------------

    def _cache_index(self, task_id: str) -> Optional[int]:
        for i, task in enumerate(self._cache):
            if task.get("id") == task_id:
                return i
        return None

    def _merge_into_cache(self, task: dict) -> dict:
        """Merge a server task into the cache (append if new, unless deleted)."""
        idx = self._cache_index(task["id"])
        if idx is None:
            if task["id"] in self._tombstones:
                return dict(task)
            self._cache.append(dict(task))
            return dict(task)
        merged = {**self._cache[idx], **task}
        self._cache[idx] = merged
        return dict(merged)

    def _remove_from_cache(self, task_id: str) -> bool:
        idx = self._cache_index(task_id)
        if idx is None:
            return False
        del self._cache[idx]
        return True

    def _pending_refs(self) -> set[str]:
        return {op.task_ref for op in self._queue}

    def _apply_server_snapshot(self, server_tasks: list[dict]) -> None:
        """
        Replace the cache with the server's list, keeping local intent:
        tombstoned ids stay hidden, queued patches stay applied and
        not-yet-replayed creates stay visible.
        """
        server_ids = {t["id"] for t in server_tasks}
        pending_refs = self._pending_refs()
        self._tombstones = [
            tid for tid in self._tombstones
            if tid in server_ids or tid in pending_refs
        ]
        hidden = set(self._tombstones)

        patches: dict[str, dict] = {}
        for op in self._queue:
            if isinstance(op, UpdateOperation):
                patches.setdefault(op.task_id, {}).update(op.patch)

        snapshot: list[dict] = []
        for task in server_tasks:
            if task["id"] in hidden:
                continue
            patch = patches.get(task["id"])
            snapshot.append({**task, **patch} if patch else dict(task))

        for op in self._queue:
            if not isinstance(op, CreateOperation) or op.temp_id in hidden:
                continue
            idx = self._cache_index(op.temp_id)
            if idx is not None:
                snapshot.append(self._cache[idx])

        self._cache = snapshot

    # ---- remote calls ----------------------------------------------------

    async def _remote(self, call: Callable[..., Awaitable[T]], *args: Any) -> T:
        """Run a backend call and record reachability from its outcome."""
        try:
            result = await call(*args)
        except Exception as exc:
            if is_connectivity_error(exc):
                self.connectivity.mark_unreachable()
            else:
                self.connectivity.mark_reachable()
            raise
        self.connectivity.mark_reachable()
        return result

    async def _enqueue(self, operation: PendingOperation) -> None:
        self._queue.append(operation)
        await self._persist(queue=True)
        logger.info(
            "Queued %s for task %s (pending=%d)",
            operation.op,
            operation.task_ref,
            len(self._queue),
        )

    # ---- fetch -----------------------------------------------------------

    async def fetch_tasks(self) -> list[dict]:
        """
        Return the task list.

        Offline: the cache, without a network call. Online: the server's
        list (which becomes the cache); on a connectivity error, the cache.
        """
        if self.is_offline:
            logger.info("Offline; serving %d cached tasks", len(self._cache))
            return self.cached_tasks()

        try:
            server_tasks = await self._remote(self.backend.list_tasks)
        except Exception as exc:
            if not is_connectivity_error(exc):
                raise
            logger.info("Fetch failed (%s); serving cached tasks", exc)
            return self.cached_tasks()

        self._apply_server_snapshot(server_tasks)
        await self._persist(cache=True, tombstones=True)
        return self.cached_tasks()

    # ---- create ----------------------------------------------------------

    async def create_task(
        self,
        title: str,
        due_date: date | str | None = None,
        priority: Optional[str] = None,
    ) -> dict:
        """Create a task; optimistic with a temporary id when offline."""
        title = (title or "").strip()
        if not title:
            raise ValueError("Title is required")

        record = {
            "title": title,
            "status": DEFAULT_STATUS,
            "priority": priority or DEFAULT_PRIORITY,
            "dueDate": to_date_key(due_date),
            "createdAt": utc_now().isoformat(),
        }

        if not self.is_offline:
            try:
                created = await self._remote(self.backend.create_task, dict(record))
            except Exception as exc:
                if not is_connectivity_error(exc):
                    raise
                logger.info("Create failed (%s); queuing offline", exc)
            else:
                merged = self._merge_into_cache(created)
                await self._persist(cache=True)
                return merged

        return await self._create_offline(record)

    async def _create_offline(self, record: dict) -> dict:
        temp_id = new_temp_id()
        while self._cache_index(temp_id) is not None:
            temp_id = new_temp_id()

        task = {"id": temp_id, **record}
        self._cache.append(task)
        await self._persist(cache=True)
        await self._enqueue(CreateOperation(temp_id=temp_id, payload=dict(record)))
        return dict(task)

    # ---- update ----------------------------------------------------------

    async def update_task(self, task_id: str, patch: Mapping[str, Any]) -> dict:
        """
        Apply a partial update (title / status / priority / dueDate).

        Tasks that still carry a temporary id are always updated locally;
        the server cannot know them yet. Updates to a task deleted on this
        client are ignored: nothing is cached or queued.
        """
        task_id = self._resolved.get(str(task_id), str(task_id))
        clean = normalize_patch(patch)

        if task_id in self._tombstones:
            logger.info("Ignoring update of deleted task %s", task_id)
            return {"id": task_id, **clean}

        if not self.is_offline and not is_temporary_id(task_id):
            try:
                updated = await self._remote(self.backend.update_task, task_id, dict(clean))
            except Exception as exc:
                if not is_connectivity_error(exc):
                    raise
                logger.info("Update of %s failed (%s); queuing offline", task_id, exc)
            else:
                merged = self._merge_into_cache(updated)
                await self._persist(cache=True)
                return merged

        return await self._update_offline(task_id, clean)

    async def _update_offline(self, task_id: str, patch: dict) -> dict:
        idx = self._cache_index(task_id)
        if idx is None:
            task = {"id": task_id, **patch}
            self._cache.append(task)
        else:
            task = {**self._cache[idx], **patch}
            self._cache[idx] = task
        await self._persist(cache=True)
        await self._enqueue(UpdateOperation(task_id=task_id, patch=dict(patch)))
        return dict(task)

    # ---- delete ----------------------------------------------------------

    async def delete_task(self, task_id: str) -> None:
        """
        Delete a task. The cache removal happens first and is never rolled
        back; the task will not reappear after a fetch or replay.
        """
        task_id = self._resolved.get(str(task_id), str(task_id))
        self._remove_from_cache(task_id)
        if task_id not in self._tombstones:
            self._tombstones.append(task_id)
        await self._persist(cache=True, tombstones=True)

        if self.is_offline or is_temporary_id(task_id):
            await self._enqueue(DeleteOperation(task_id=task_id))
            return

        try:
            await self._remote(self.backend.delete_task, task_id)
        except TaskApiError as exc:
            if exc.is_not_found:
                return
            raise
        except Exception as exc:
            if not is_connectivity_error(exc):
                raise
            logger.info("Delete of %s failed (%s); queuing offline", task_id, exc)
            await self._enqueue(DeleteOperation(task_id=task_id))

    # ---- replay ----------------------------------------------------------

    async def try_sync_if_online(self) -> SyncReport:
        """Entry point for app start-up and transition-to-online events."""
        if not self.connectivity.platform_online:
            logger.debug("Platform offline; skipping sync")
            return SyncReport(retained=len(self._queue), skipped=True)
        if not self._queue and self.connectivity.server_unreachable:
            # Nothing to send; one fetch re-checks the server.
            return SyncReport(resynced=await self._resync())
        return await self.replay_queue()

    async def replay_queue(self) -> SyncReport:
        """Replay every queued operation once, in insertion order."""
        report = SyncReport()
        if not self._queue:
            return report
        if not self.connectivity.platform_online:
            report.retained = len(self._queue)
            report.skipped = True
            return report
        if self._replay_lock.locked():
            logger.warning("Replay already running; ignoring overlapping call")
            report.retained = len(self._queue)
            report.skipped = True
            return report

        async with self._replay_lock:
            went_offline = await self._drain(report)

        if not went_offline and self.connectivity.platform_online:
            report.resynced = await self._resync()

        logger.info(
            "Replay finished committed=%d retained=%d rejected=%d resynced=%s",
            report.committed,
            report.retained,
            len(report.rejected),
            report.resynced,
        )
        return report

    async def _drain(self, report: SyncReport) -> bool:
        """
        Process the live queue front to back; returns True if a connectivity
        error stopped it.

        Kept operations stay where they are at the front of the queue, so
        ``self._queue[kept]`` is always the next one to send. Operations that
        UI calls append while a request is in flight land behind it and are
        sent in the same pass.
        """
        kept = 0
        unresolved: set[str] = set()
        went_offline = False

        while kept < len(self._queue):
            op = self._queue[kept]
            ref = op.task_ref

            if not isinstance(op, CreateOperation) and is_temporary_id(ref):
                real_id = self._resolved.get(ref)
                if real_id is not None:
                    op = op.model_copy(update={"task_id": real_id})
                    self._queue[kept] = op
                    ref = real_id
                elif ref in unresolved:
                    kept += 1
                    continue
                else:
                    # Its create was rejected or never recorded.
                    logger.warning("Dropping %s for unknown temporary id %s", op.op, ref)
                    report.rejected.append(
                        RejectedOperation(op, None, "Temporary id has no pending create")
                    )
                    del self._queue[kept]
                    await self._persist(queue=True)
                    continue

            try:
                await self._replay_one(op, kept)
            except Exception as exc:
                if is_connectivity_error(exc):
                    logger.info("Connectivity lost during replay (%s); keeping remaining operations", exc)
                    went_offline = True
                    break

                if self.drop_rejected and isinstance(exc, TaskApiError) and exc.is_permanent:
                    logger.warning(
                        "Server rejected queued %s for task %s (%s); dropping",
                        op.op,
                        ref,
                        exc,
                    )
                    report.rejected.append(RejectedOperation(op, exc.status_code, exc.message))
                    if isinstance(op, CreateOperation):
                        self._remove_from_cache(op.temp_id)
                    del self._queue[kept]
                else:
                    logger.warning("Replay of %s for task %s failed (%s); will retry", op.op, ref, exc)
                    kept += 1
                    if isinstance(op, CreateOperation):
                        unresolved.add(op.temp_id)
            else:
                report.committed += 1
                logger.debug("Replayed %s for task %s", op.op, ref)
                del self._queue[kept]

            await self._persist(cache=True, queue=True, tombstones=True)

        report.retained = len(self._queue)
        await self._persist(cache=True, queue=True, tombstones=True)
        return went_offline

    async def _replay_one(self, op: PendingOperation, index: int) -> None:
        if isinstance(op, CreateOperation):
            created = await self._remote(self.backend.create_task, dict(op.payload))
            self._resolve_temp_id(op.temp_id, created, index)
        elif isinstance(op, UpdateOperation):
            updated = await self._remote(self.backend.update_task, op.task_id, dict(op.patch))
            self._merge_into_cache(updated)
        elif isinstance(op, DeleteOperation):
            try:
                await self._remote(self.backend.delete_task, op.task_id)
            except TaskApiError as exc:
                if not exc.is_not_found:
                    raise
            self._remove_from_cache(op.task_id)

    def _resolve_temp_id(self, temp_id: str, created: dict, index: int) -> None:
        """Swap a temporary id for the server's everywhere it appears."""
        real_id = created["id"]
        self._resolved[temp_id] = real_id

        if temp_id in self._tombstones:
            self._tombstones = [real_id if t == temp_id else t for t in self._tombstones]
            self._remove_from_cache(temp_id)
        else:
            idx = self._cache_index(temp_id)
            if idx is None:
                self._cache.append(dict(created))
            else:
                self._cache[idx] = dict(created)

        for j in range(index + 1, len(self._queue)):
            later = self._queue[j]
            if not isinstance(later, CreateOperation) and later.task_id == temp_id:
                self._queue[j] = later.model_copy(update={"task_id": real_id})

        logger.debug("Temporary id %s resolved to %s", temp_id, real_id)

    async def _resync(self) -> bool:
        """One authoritative fetch after replay."""
        try:
            server_tasks = await self._remote(self.backend.list_tasks)
        except Exception as exc:
            logger.warning("Post-replay fetch failed: %s", exc)
            return False
        self._apply_server_snapshot(server_tasks)
        await self._persist(cache=True, tombstones=True)
        return True

    async def aclose(self) -> None:
        close = getattr(self.backend, "aclose", None)
        if close is not None:
            await close()
