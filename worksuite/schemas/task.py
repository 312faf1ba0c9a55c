"""
Task Schemas
============

Pydantic schemas for the task resource endpoints.

Field names on the wire are camelCase to match the client contract;
snake_case names are accepted on input as well.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from worksuite.models.task import TaskStatus


# =============================================================================
# Request Schemas
# =============================================================================

class TaskCreate(BaseModel):
    """
    Request schema for creating a task.

    ``title`` is optional at the schema level so that a missing or blank
    title is reported as a 400 by the endpoint rather than a 422.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: Optional[str] = Field(None, max_length=200)
    status: Optional[TaskStatus] = None
    priority: Optional[str] = Field(None, max_length=32)
    due_date: Optional[date] = Field(None, alias="dueDate")


class TaskUpdate(BaseModel):
    """
    Request schema for partially updating a task.

    Merge semantics: only fields present in the body are applied.
    ``dueDate: null`` clears the due date.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    title: Optional[str] = Field(None, max_length=200)
    status: Optional[TaskStatus] = None
    priority: Optional[str] = Field(None, max_length=32)
    due_date: Optional[date] = Field(None, alias="dueDate")


# =============================================================================
# Response Schemas
# =============================================================================

class TaskApiResponse(BaseModel):
    """A task in the API format (camelCase)."""

    id: str
    title: str
    status: str
    priority: Optional[str] = None
    dueDate: Optional[str] = None
    createdAt: Optional[str] = None


class TaskEnvelope(BaseModel):
    """Single-task response: ``{"task": {...}}``."""

    task: TaskApiResponse


class TaskListEnvelope(BaseModel):
    """Task list response: ``{"tasks": [...]}``."""

    tasks: list[TaskApiResponse] = []
