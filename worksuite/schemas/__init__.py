"""
Pydantic Schemas
================

Request/response schemas for API validation.
"""

from worksuite.schemas.common import ErrorResponse, HealthResponse
from worksuite.schemas.task import (
    TaskApiResponse,
    TaskCreate,
    TaskEnvelope,
    TaskListEnvelope,
    TaskUpdate,
)

__all__ = [
    "ErrorResponse",
    "HealthResponse",
    "TaskApiResponse",
    "TaskCreate",
    "TaskEnvelope",
    "TaskListEnvelope",
    "TaskUpdate",
]
