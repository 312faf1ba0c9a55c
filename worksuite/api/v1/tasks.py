"""
Tasks API Endpoints
===================

Owner-scoped task CRUD consumed by the offline sync client.

    GET    /tasks        -> {"tasks": [...]}
    POST   /tasks        -> 201 {"task": {...}}
    PUT    /tasks/{id}   -> {"task": {...}}   (PATCH accepted too)
    DELETE /tasks/{id}   -> 204
"""

from typing import Any

from fastapi import APIRouter, Response, status

from worksuite.core.errors import ErrorCodes, NotFoundError, ValidationError
from worksuite.dependencies import CurrentOwner, Repository
from worksuite.models.task import DEFAULT_PRIORITY, TaskStatus
from worksuite.schemas.task import (
    TaskCreate,
    TaskEnvelope,
    TaskListEnvelope,
    TaskUpdate,
)

router = APIRouter()


def _task_not_found() -> NotFoundError:
    return NotFoundError(code=ErrorCodes.TASK_NOT_FOUND, message="Task not found")


def _changes_from_update(task_data: TaskUpdate) -> dict[str, Any]:
    """
    Build the repository change-set from a partial update body.

    - title is applied only when non-blank after trimming
    - status/priority are applied when given
    - dueDate is applied whenever present, ``null`` clears it
    """
    provided = task_data.model_fields_set
    changes: dict[str, Any] = {}

    if task_data.title is not None and task_data.title.strip():
        changes["title"] = task_data.title.strip()
    if task_data.status is not None:
        changes["status"] = task_data.status
    if task_data.priority is not None:
        changes["priority"] = task_data.priority
    if "due_date" in provided:
        changes["due_date"] = task_data.due_date

    return changes


@router.get(
    "",
    response_model=TaskListEnvelope,
)
async def list_tasks(
    current_owner: CurrentOwner,
    repository: Repository,
):
    """
    List tasks for the current user.
    """
    tasks = await repository.list_tasks(current_owner)
    return {"tasks": tasks}


@router.post(
    "",
    response_model=TaskEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def create_task(
    task_data: TaskCreate,
    current_owner: CurrentOwner,
    repository: Repository,
):
    """
    Create a new task.
    """
    title = (task_data.title or "").strip()
    if not title:
        raise ValidationError(message="Title is required", field="title")

    task = await repository.create_task(
        current_owner,
        title=title,
        status=task_data.status or TaskStatus.TODO,
        priority=task_data.priority or DEFAULT_PRIORITY,
        due_date=task_data.due_date,
    )
    return {"task": task}


@router.put(
    "/{task_id}",
    response_model=TaskEnvelope,
)
@router.patch(
    "/{task_id}",
    response_model=TaskEnvelope,
)
async def update_task(
    task_id: str,
    task_data: TaskUpdate,
    current_owner: CurrentOwner,
    repository: Repository,
):
    """
    Partially update a task (title / status / priority / dueDate).
    """
    task = await repository.update_task(
        current_owner,
        task_id,
        _changes_from_update(task_data),
    )
    if task is None:
        raise _task_not_found()
    return {"task": task}


@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_task(
    task_id: str,
    current_owner: CurrentOwner,
    repository: Repository,
):
    """
    Delete a task.
    """
    deleted = await repository.delete_task(current_owner, task_id)
    if not deleted:
        raise _task_not_found()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
