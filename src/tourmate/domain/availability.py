"""Availability and pricing for a cabin date-range selection.

Pure functions: callers pass in the cabin, the already-booked days and the
candidate selection, and get back derived values to render or store.

Day granularity everywhere: a ``datetime`` is reduced to its calendar day
before it is compared, so time-of-day never affects overlap or night counts.

Night count is inclusive of both ends (``to - from`` in days, plus one),
matching how the booking calendar counts the highlighted cells.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Any, Iterable

from tourmate.infra.time import utc_today

Number = int | float | Decimal


@dataclass(frozen=True)
class RangeSelection:
    """A candidate ``(from, to)`` stay. Either end may still be unset."""

    from_date: date | None = None
    to_date: date | None = None

    @property
    def is_complete(self) -> bool:
        return self.from_date is not None and self.to_date is not None

    def to_dict(self) -> dict:
        return {
            "from": self.from_date.isoformat() if self.from_date else None,
            "to": self.to_date.isoformat() if self.to_date else None,
        }


EMPTY_RANGE = RangeSelection()


@dataclass(frozen=True)
class Cabin:
    """Pricing view of a cabin. Read-only for the booking engine."""

    id: str
    regular_price: Number
    discount: Number = 0
    name: str | None = None
    max_capacity: int | None = None
    max_booking_length: int | None = None

    @property
    def nightly_price(self) -> Number:
        return self.regular_price - (self.discount or 0)

    @classmethod
    def from_row(cls, row: dict) -> Cabin:
        return cls(
            id=str(row["id"]),
            regular_price=row["regular_price"],
            discount=row.get("discount") or 0,
            name=row.get("name"),
            max_capacity=row.get("max_capacity"),
            max_booking_length=row.get("max_booking_length"),
        )


def as_day(value: Any) -> date | None:
    """Coerce a date, datetime or ISO string to a calendar day.

    Returns None for anything that cannot be read as a day.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.strip()).date()
        except ValueError:
            return None
    return None


def normalize_booked_dates(values: Iterable[Any] | None) -> list[date]:
    """Turn whatever the storage layer returned into calendar days, dropping junk."""
    if not values:
        return []
    days = (as_day(v) for v in values)
    return [d for d in days if d is not None]


def is_overlapping(selection: RangeSelection | None, booked_dates: Iterable[Any] | None) -> bool:
    """True if any booked day falls inside the selection's closed interval.

    The selection is normalized first, so a range picked "backwards" behaves
    like its forward equivalent. An incomplete selection never overlaps.
    """
    if selection is None or not selection.is_complete:
        return False

    booked = normalize_booked_dates(booked_dates)
    if not booked:
        return False

    start = min(selection.from_date, selection.to_date)
    end = max(selection.from_date, selection.to_date)
    return any(start <= day <= end for day in booked)


def display_range(selection: RangeSelection | None, booked_dates: Iterable[Any] | None) -> RangeSelection:
    """Selection to render: blanked out while it overlaps booked days.

    The caller's stored selection is left untouched; the guest has to clear or
    reselect it.
    """
    if selection is None or is_overlapping(selection, booked_dates):
        return EMPTY_RANGE
    return selection


def is_date_disabled(day: date | datetime, booked_dates: Iterable[Any] | None, today: date | None = None) -> bool:
    """True if ``day`` is before today or is already booked.

    Compared by calendar day in UTC, so today stays selectable for the whole
    day. Time of day on ``day`` is ignored.
    """
    target = as_day(day)
    if target is None:
        return True
    if target < (today or utc_today()):
        return True
    return target in set(normalize_booked_dates(booked_dates))


def compute_nights(selection: RangeSelection | None) -> int:
    if selection is None or not selection.is_complete:
        return 0
    return (selection.to_date - selection.from_date).days + 1


def compute_price(cabin: Cabin, num_nights: int) -> Number:
    if num_nights == 0:
        return 0
    return cabin.nightly_price * num_nights


def within_booking_length(num_nights: int, min_booking_length: int, max_booking_length: int) -> bool:
    """Whether the calendar would accept a selection of ``num_nights``.

    The calendar requires strictly more than ``min_booking_length`` days and at
    most ``max_booking_length``.
    """
    return min_booking_length + 1 <= num_nights <= max_booking_length


def booked_days(bookings: Iterable[dict], since: date | None = None) -> list[date]:
    """Expand bookings into the individual days they occupy, both ends included.

    With ``since``, bookings starting before that day are skipped unless the
    guest is checked in.
    """
    days: list[date] = []
    for booking in bookings:
        start = as_day(booking.get("start_date"))
        end = as_day(booking.get("end_date"))
        if start is None or end is None:
            continue
        if since is not None and start < since and booking.get("status") != "checked-in":
            continue
        days.extend(start + timedelta(days=offset) for offset in range((end - start).days + 1))
    return days
