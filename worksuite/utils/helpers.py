"""
Helper Functions
================

Common utility functions used across the application.
"""

from datetime import date, datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Get current UTC datetime with timezone info."""
    return datetime.now(timezone.utc)


def to_date_key(value: object) -> Optional[str]:
    """
    Reduce a date-ish value to ``YYYY-MM-DD``.

    Accepts ``date``/``datetime`` objects and ISO strings; a full ISO
    timestamp keeps only its date part to avoid timezone shifts.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    if len(text) < 10:
        raise ValueError(f"Not an ISO date: {value!r}")
    key = text[:10]
    date.fromisoformat(key)
    return key
