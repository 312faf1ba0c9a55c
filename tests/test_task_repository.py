"""
Task Repository Tests
=====================

``SqlTaskRepository`` against an in-memory SQLite database (aiosqlite) and
the in-memory repository's id counter.
"""

from datetime import date

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from worksuite.db.base import Base
from worksuite.models.task import TaskStatus
from worksuite.services.task_repository import InMemoryTaskRepository, SqlTaskRepository


@pytest_asyncio.fixture
async def session():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as db:
        yield db

    await engine.dispose()


class TestSqlTaskRepository:

    @pytest.mark.asyncio
    async def test_create_and_list(self, session):
        repo = SqlTaskRepository(session)

        created = await repo.create_task("owner-1", title="Write report", due_date=date(2026, 2, 10))
        await repo.create_task("owner-2", title="Not mine")

        assert created["id"] == "1"
        assert created["status"] == "todo"
        assert created["priority"] == "normal"
        assert created["dueDate"] == "2026-02-10"
        assert created["createdAt"]

        tasks = await repo.list_tasks("owner-1")
        assert [t["title"] for t in tasks] == ["Write report"]

    @pytest.mark.asyncio
    async def test_update_applies_only_given_fields(self, session):
        repo = SqlTaskRepository(session)
        created = await repo.create_task("owner-1", title="Write report", due_date=date(2026, 2, 10))

        updated = await repo.update_task("owner-1", created["id"], {"status": TaskStatus.DONE})

        assert updated["status"] == "done"
        assert updated["title"] == "Write report"
        assert updated["dueDate"] == "2026-02-10"

        cleared = await repo.update_task("owner-1", created["id"], {"due_date": None})
        assert cleared["dueDate"] is None

    @pytest.mark.asyncio
    async def test_other_owner_cannot_touch(self, session):
        repo = SqlTaskRepository(session)
        created = await repo.create_task("owner-1", title="Write report")

        assert await repo.get_task("owner-2", created["id"]) is None
        assert await repo.update_task("owner-2", created["id"], {"title": "x"}) is None
        assert await repo.delete_task("owner-2", created["id"]) is False

    @pytest.mark.asyncio
    async def test_delete(self, session):
        repo = SqlTaskRepository(session)
        created = await repo.create_task("owner-1", title="Write report")

        assert await repo.delete_task("owner-1", created["id"]) is True
        assert await repo.list_tasks("owner-1") == []

    @pytest.mark.asyncio
    async def test_non_numeric_id_is_not_found(self, session):
        repo = SqlTaskRepository(session)
        assert await repo.get_task("owner-1", "tmp-123-abc") is None


class TestInMemoryTaskRepository:

    @pytest.mark.asyncio
    async def test_ids_count_up_as_strings(self):
        repo = InMemoryTaskRepository()

        first = await repo.create_task("owner-1", title="A")
        second = await repo.create_task("owner-1", title="B")

        assert (first["id"], second["id"]) == ("1", "2")
        assert "ownerId" not in first

    @pytest.mark.asyncio
    async def test_status_string_accepted(self):
        repo = InMemoryTaskRepository()
        task = await repo.create_task("owner-1", title="A")

        updated = await repo.update_task("owner-1", task["id"], {"status": "in_progress"})

        assert updated["status"] == "in_progress"
