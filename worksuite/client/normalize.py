"""
Response Normalization
======================

Turns whatever the task server sends into canonical task dicts:

    {"id", "title", "status", "priority", "dueDate", "createdAt"}

Accepted envelopes:
    lists   -> bare list | {"tasks": [...]} | {"data": [...]}
    single  -> bare object | {"task": {...}} | {"data": {...}}
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any, Optional

from worksuite.utils.helpers import to_date_key

logger = logging.getLogger(__name__)

TASK_STATUSES = ("todo", "in_progress", "done")
DEFAULT_STATUS = "todo"
DEFAULT_PRIORITY = "normal"

_ID_KEYS = ("id", "_id", "taskId", "task_id")

# Patch keys accepted from callers -> canonical field.
_PATCH_FIELDS = {
    "title": "title",
    "status": "status",
    "priority": "priority",
    "dueDate": "dueDate",
    "due_date": "dueDate",
}


def _first(raw: Mapping, *keys: str) -> Any:
    for key in keys:
        if key in raw and raw[key] is not None:
            return raw[key]
    return None


def _status(value: Any) -> str:
    value = getattr(value, "value", value)
    return value if value in TASK_STATUSES else DEFAULT_STATUS


def _date_or_none(value: Any) -> Optional[str]:
    try:
        return to_date_key(value)
    except ValueError:
        logger.debug("Dropping unparseable due date %r", value)
        return None


def _timestamp(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def normalize_task(raw: Any) -> dict:
    """Normalize one task object; raises ``ValueError`` if it has no id."""
    if not isinstance(raw, Mapping):
        raise ValueError(f"Expected a task object, got {type(raw).__name__}")

    task_id = _first(raw, *_ID_KEYS)
    if task_id is None or str(task_id) == "":
        raise ValueError("Task object has no id")

    return {
        "id": str(task_id),
        "title": str(raw.get("title") or ""),
        "status": _status(raw.get("status")),
        "priority": raw.get("priority"),
        "dueDate": _date_or_none(_first(raw, "dueDate", "due_date")),
        "createdAt": _timestamp(_first(raw, "createdAt", "created_at")),
    }


def unwrap_task(payload: Any) -> Mapping:
    """Strip a ``{"task": ...}`` / ``{"data": ...}`` envelope if present."""
    if not isinstance(payload, Mapping):
        raise ValueError(f"Unrecognized task response: {type(payload).__name__}")
    for key in ("task", "data"):
        inner = payload.get(key)
        if isinstance(inner, Mapping):
            return inner
    return payload


def normalize_single(payload: Any) -> dict:
    """Normalize a single-task response in any accepted envelope."""
    return normalize_task(unwrap_task(payload))


def normalize_task_list(payload: Any) -> list[dict]:
    """
    Normalize a task list response in any accepted envelope.

    Items that cannot be normalized are skipped with a warning.
    """
    if isinstance(payload, list):
        items = payload
    elif isinstance(payload, Mapping) and isinstance(payload.get("tasks"), list):
        items = payload["tasks"]
    elif isinstance(payload, Mapping) and isinstance(payload.get("data"), list):
        items = payload["data"]
    else:
        raise ValueError(f"Unrecognized task list response: {type(payload).__name__}")

    tasks: list[dict] = []
    for item in items:
        try:
            tasks.append(normalize_task(item))
        except ValueError as exc:
            logger.warning("Skipping malformed task in list: %s", exc)
    return tasks


def normalize_patch(patch: Mapping) -> dict:
    """
    Validate a partial update and map it to canonical field names.

    Accepts any subset of title / status / priority / dueDate
    (``due_date`` is accepted as an alias).
    """
    if not isinstance(patch, Mapping):
        raise ValueError("Patch must be a mapping")

    clean: dict[str, Any] = {}
    for key, value in patch.items():
        field = _PATCH_FIELDS.get(key)
        if field is None:
            raise ValueError(f"Unsupported task field: {key}")

        if field == "title":
            if not isinstance(value, str) or not value.strip():
                raise ValueError("Title must be a non-empty string")
            value = value.strip()
        elif field == "status":
            value = getattr(value, "value", value)
            if value not in TASK_STATUSES:
                raise ValueError(f"Invalid status: {value!r}")
        elif field == "dueDate":
            value = to_date_key(value)
        elif value is not None:
            value = str(value)

        clean[field] = value
    return clean
