"""Helpers for rendering stored values on the camelCase JSON wire."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any


def money(value: Any) -> Any:
    """Prices go out as JSON numbers, not the strings pydantic makes of Decimal."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value


def iso(value: Any) -> Any:
    return value.isoformat() if hasattr(value, "isoformat") else value


def uuid_or_none(value: Any) -> str | None:
    """Canonical form of a path or body id; None if it is not a UUID.

    Ids are UUID columns, so anything else is rejected before it reaches SQL.
    """
    try:
        return str(uuid.UUID(str(value).strip()))
    except (ValueError, TypeError, AttributeError):
        return None
