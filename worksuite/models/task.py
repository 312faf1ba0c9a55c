"""
Task Models
===========

SQLAlchemy model for owner-scoped tasks.
"""

from datetime import date
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Date,
    Enum as SQLEnum,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from worksuite.db.base import Base, TimestampMixin


# =============================================================================
# Enums
# =============================================================================

class TaskStatus(str, Enum):
    """Task workflow status."""
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    DONE = "done"


DEFAULT_PRIORITY = "normal"


# =============================================================================
# Models
# =============================================================================

class Task(Base, TimestampMixin):
    """
    Task model.

    Every row belongs to exactly one owner; tasks are never shared.
    """

    __tablename__ = "tasks"

    # Primary Key
    task_id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    owner_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
    )

    # Task details
    title: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )
    status: Mapped[TaskStatus] = mapped_column(
        SQLEnum(TaskStatus, name="taskstatus", create_constraint=True, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
        default=TaskStatus.TODO,
    )
    priority: Mapped[Optional[str]] = mapped_column(
        String(32),
        nullable=True,
        default=DEFAULT_PRIORITY,
    )
    due_date: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
    )

    __table_args__ = (
        Index("idx_task_owner", "owner_id", "task_id"),
    )

    def __repr__(self) -> str:
        return f"<Task(task_id={self.task_id}, title={self.title[:30]})>"

    def to_api_dict(self) -> dict:
        """
        Serialize to the API response format expected by the client.

        Maps internal field names to the API contract:
            task_id  → id (string)
            due_date → dueDate
            created_at → createdAt
        """
        return {
            "id": str(self.task_id),
            "title": self.title,
            "status": self.status.value,
            "priority": self.priority,
            "dueDate": self.due_date.isoformat() if self.due_date else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
