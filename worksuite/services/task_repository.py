"""
Task Repository
===============

Owner-scoped task persistence behind a small async interface.

Two implementations:

* ``InMemoryTaskRepository`` keeps tasks in a process-local list with a
  counter for ids (``"1"``, ``"2"``, ...). Default for development and tests.
* ``SqlTaskRepository`` stores tasks through an SQLAlchemy ``AsyncSession``.

Both return tasks as API-format dicts (see ``Task.to_api_dict``), so the
endpoints never care which one is wired in.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from worksuite.models.task import DEFAULT_PRIORITY, Task, TaskStatus
from worksuite.utils.helpers import utc_now

logger = logging.getLogger(__name__)

# Fields a caller may change on an existing task.
MUTABLE_FIELDS = ("title", "status", "priority", "due_date")


class TaskRepository(Protocol):
    """CRUD capability the task endpoints depend on."""

    async def list_tasks(self, owner_id: str) -> list[dict]: ...

    async def get_task(self, owner_id: str, task_id: str) -> Optional[dict]: ...

    async def create_task(
        self,
        owner_id: str,
        *,
        title: str,
        status: TaskStatus = TaskStatus.TODO,
        priority: Optional[str] = DEFAULT_PRIORITY,
        due_date: Optional[date] = None,
    ) -> dict: ...

    async def update_task(
        self,
        owner_id: str,
        task_id: str,
        changes: dict[str, Any],
    ) -> Optional[dict]: ...

    async def delete_task(self, owner_id: str, task_id: str) -> bool: ...


def _status_value(status: TaskStatus | str) -> str:
    return status.value if isinstance(status, TaskStatus) else TaskStatus(status).value


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------

class InMemoryTaskRepository:
    """
    Process-local task list.

    Rows keep the owner next to the API fields; the owner is stripped
    before anything leaves the repository.
    """

    def __init__(self) -> None:
        self._rows: list[dict] = []
        self._next_id = 1

    @staticmethod
    def _public(row: dict) -> dict:
        return {k: v for k, v in row.items() if k != "ownerId"}

    def _find(self, owner_id: str, task_id: str) -> Optional[dict]:
        for row in self._rows:
            if row["id"] == str(task_id) and row["ownerId"] == owner_id:
                return row
        return None

    async def list_tasks(self, owner_id: str) -> list[dict]:
        return [self._public(r) for r in self._rows if r["ownerId"] == owner_id]

    async def get_task(self, owner_id: str, task_id: str) -> Optional[dict]:
        row = self._find(owner_id, task_id)
        return self._public(row) if row else None

    async def create_task(
        self,
        owner_id: str,
        *,
        title: str,
        status: TaskStatus = TaskStatus.TODO,
        priority: Optional[str] = DEFAULT_PRIORITY,
        due_date: Optional[date] = None,
    ) -> dict:
        row = {
            "id": str(self._next_id),
            "ownerId": owner_id,
            "title": title,
            "status": _status_value(status),
            "priority": priority,
            "dueDate": due_date.isoformat() if due_date else None,
            "createdAt": utc_now().isoformat(),
        }
        self._next_id += 1
        self._rows.append(row)
        logger.debug("Task created id=%s owner=%s", row["id"], owner_id)
        return self._public(row)

    async def update_task(
        self,
        owner_id: str,
        task_id: str,
        changes: dict[str, Any],
    ) -> Optional[dict]:
        row = self._find(owner_id, task_id)
        if row is None:
            return None

        if "title" in changes:
            row["title"] = changes["title"]
        if "status" in changes:
            row["status"] = _status_value(changes["status"])
        if "priority" in changes:
            row["priority"] = changes["priority"]
        if "due_date" in changes:
            due = changes["due_date"]
            row["dueDate"] = due.isoformat() if due else None

        return self._public(row)

    async def delete_task(self, owner_id: str, task_id: str) -> bool:
        row = self._find(owner_id, task_id)
        if row is None:
            return False
        self._rows.remove(row)
        logger.debug("Task deleted id=%s owner=%s", task_id, owner_id)
        return True


# ---------------------------------------------------------------------------
# SQLAlchemy
# ---------------------------------------------------------------------------

class SqlTaskRepository:
    """Task repository backed by an SQLAlchemy async session."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def _get_row(self, owner_id: str, task_id: str) -> Optional[Task]:
        try:
            pk = int(task_id)
        except (TypeError, ValueError):
            return None
        stmt = select(Task).where(
            Task.task_id == pk,
            Task.owner_id == owner_id,
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def list_tasks(self, owner_id: str) -> list[dict]:
        stmt = (
            select(Task)
            .where(Task.owner_id == owner_id)
            .order_by(Task.task_id)
        )
        result = await self.db.execute(stmt)
        return [t.to_api_dict() for t in result.scalars().all()]

    async def get_task(self, owner_id: str, task_id: str) -> Optional[dict]:
        task = await self._get_row(owner_id, task_id)
        return task.to_api_dict() if task else None

    async def create_task(
        self,
        owner_id: str,
        *,
        title: str,
        status: TaskStatus = TaskStatus.TODO,
        priority: Optional[str] = DEFAULT_PRIORITY,
        due_date: Optional[date] = None,
    ) -> dict:
        task = Task(
            owner_id=owner_id,
            title=title,
            status=TaskStatus(status),
            priority=priority,
            due_date=due_date,
            created_at=utc_now(),
        )
        self.db.add(task)
        await self.db.flush()
        return task.to_api_dict()

    async def update_task(
        self,
        owner_id: str,
        task_id: str,
        changes: dict[str, Any],
    ) -> Optional[dict]:
        task = await self._get_row(owner_id, task_id)
        if task is None:
            return None

        for field in MUTABLE_FIELDS:
            if field in changes:
                value = changes[field]
                if field == "status":
                    value = TaskStatus(value)
                setattr(task, field, value)

        await self.db.flush()
        return task.to_api_dict()

    async def delete_task(self, owner_id: str, task_id: str) -> bool:
        task = await self._get_row(owner_id, task_id)
        if task is None:
            return False
        await self.db.delete(task)
        await self.db.flush()
        return True
