"""Deployment-wide booking settings.

Loaded from the single row of the ``settings`` table; anything missing there
falls back to environment variables, then to built-in defaults.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any

from .db import fetchone, txn


@dataclass(frozen=True)
class BookingSettings:
    """Calendar and capacity limits applied to every cabin."""

    min_booking_length: int = 1
    max_booking_length: int = 90
    max_guests_per_booking: int = 8

    def max_length_for(self, cabin_max: int | None) -> int:
        """Effective maximum stay for a cabin that may carry its own limit."""
        if cabin_max:
            return min(cabin_max, self.max_booking_length)
        return self.max_booking_length


def get_booking_settings() -> BookingSettings:
    """Load booking settings (database first, then environment)."""
    return _merge_with_env(_load_from_db())


def _load_from_db() -> dict[str, Any]:
    with txn(dict_rows=True) as cur:
        row = fetchone(
            cur,
            """
            SELECT min_booking_length, max_booking_length,
                   max_guests_per_booking
            FROM settings
            ORDER BY id
            LIMIT 1
            """,
        )
    return dict(row) if row else {}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _merge_with_env(db_settings: dict[str, Any]) -> BookingSettings:
    defaults = BookingSettings()

    def pick(key: str, env_name: str, default: int) -> int:
        value = db_settings.get(key)
        return int(value) if value is not None else _env_int(env_name, default)

    return BookingSettings(
        min_booking_length=pick("min_booking_length", "MIN_BOOKING_LENGTH", defaults.min_booking_length),
        max_booking_length=pick("max_booking_length", "MAX_BOOKING_LENGTH", defaults.max_booking_length),
        max_guests_per_booking=pick(
            "max_guests_per_booking", "MAX_GUESTS_PER_BOOKING", defaults.max_guests_per_booking
        ),
    )
