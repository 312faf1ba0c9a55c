"""
Pending Operations
==================

Tagged mutations queued while the server is unreachable.

Stored form (JSON, discriminator ``op``)::

    {"op": "create", "tempId": "tmp-...", "payload": {...}, "timestamp": "..."}
    {"op": "update", "taskId": "42", "patch": {...}, "timestamp": "..."}
    {"op": "delete", "taskId": "42", "timestamp": "..."}
"""

from __future__ import annotations

import logging
import secrets
import time
from typing import Annotated, Any, Iterable, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from worksuite.utils.helpers import utc_now

logger = logging.getLogger(__name__)

TEMP_ID_PREFIX = "tmp-"


def new_temp_id() -> str:
    """``tmp-<epoch ms>-<random hex>``; unique across sessions in practice."""
    return f"{TEMP_ID_PREFIX}{int(time.time() * 1000)}-{secrets.token_hex(4)}"


def is_temporary_id(task_id: str) -> bool:
    return str(task_id).startswith(TEMP_ID_PREFIX)


def _now() -> str:
    return utc_now().isoformat()


class _Operation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    timestamp: str = Field(default_factory=_now)


class CreateOperation(_Operation):
    op: Literal["create"] = "create"
    temp_id: str = Field(alias="tempId")
    payload: dict[str, Any]

    @property
    def task_ref(self) -> str:
        return self.temp_id


class UpdateOperation(_Operation):
    op: Literal["update"] = "update"
    task_id: str = Field(alias="taskId")
    patch: dict[str, Any]

    @property
    def task_ref(self) -> str:
        return self.task_id


class DeleteOperation(_Operation):
    op: Literal["delete"] = "delete"
    task_id: str = Field(alias="taskId")

    @property
    def task_ref(self) -> str:
        return self.task_id


PendingOperation = Annotated[
    Union[CreateOperation, UpdateOperation, DeleteOperation],
    Field(discriminator="op"),
]

_operation_adapter: TypeAdapter[PendingOperation] = TypeAdapter(PendingOperation)


def dump_operations(operations: Iterable[PendingOperation]) -> list[dict]:
    return [op.model_dump(by_alias=True) for op in operations]


def load_operations(raw: Any) -> list[PendingOperation]:
    """
    Parse a stored queue. Entries that fail validation are dropped with a
    warning; a non-list value reads as an empty queue.
    """
    if not isinstance(raw, list):
        return []

    operations: list[PendingOperation] = []
    for item in raw:
        try:
            operations.append(_operation_adapter.validate_python(item))
        except PydanticValidationError as exc:
            logger.warning("Discarding unreadable queued operation: %s", exc.errors()[:1])
    return operations
