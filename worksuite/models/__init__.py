"""
Database Models
===============

SQLAlchemy ORM models.

All models are imported here to ensure they are registered
with SQLAlchemy's metadata.
"""

from worksuite.models.task import DEFAULT_PRIORITY, Task, TaskStatus

__all__ = [
    "DEFAULT_PRIORITY",
    "Task",
    "TaskStatus",
]
