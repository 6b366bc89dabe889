"""In-progress date selection for one booking flow.

A ReservationContext is created when a guest opens a cabin's booking flow and
thrown away when the flow is abandoned or the booking is submitted. Pass the
instance explicitly to whatever needs it; there is no shared module-level
selection, so two flows (two tabs, two tests) never see each other's state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from tourmate.domain.availability import (
    EMPTY_RANGE,
    Cabin,
    Number,
    RangeSelection,
    compute_nights,
    compute_price,
    display_range,
)


@dataclass(frozen=True)
class BookingDraft:
    """Structured data submitted alongside the create-booking form.

    Values are kept as received; the lifecycle manager validates them again
    on the server.
    """

    cabin_id: str
    cabin_price: Any
    num_nights: Any
    start_date: Any
    end_date: Any


class ReservationContext:
    """Holds the guest's current range selection for a single cabin flow."""

    def __init__(self, cabin_id: str | None = None, initial: RangeSelection | None = None) -> None:
        self.cabin_id = cabin_id
        self._range = initial or EMPTY_RANGE

    @property
    def range(self) -> RangeSelection:
        return self._range

    def set_range(self, new_range: RangeSelection | None) -> None:
        """Replace the selection as-is (no merging with the previous one)."""
        self._range = new_range or EMPTY_RANGE

    def reset_range(self) -> None:
        self._range = EMPTY_RANGE

    def display_range(self, booked_dates: Iterable[Any] | None) -> RangeSelection:
        return display_range(self._range, booked_dates)

    def num_nights(self, booked_dates: Iterable[Any] | None) -> int:
        return compute_nights(self.display_range(booked_dates))

    def cabin_price(self, cabin: Cabin, booked_dates: Iterable[Any] | None) -> Number:
        return compute_price(cabin, self.num_nights(booked_dates))

    def to_draft(self, cabin: Cabin, booked_dates: Iterable[Any] | None) -> BookingDraft:
        """Build the draft for the currently displayed range.

        An overlapping selection yields an empty draft (no dates, zero nights),
        which the server will reject.
        """
        shown = self.display_range(booked_dates)
        num_nights = compute_nights(shown)
        return BookingDraft(
            cabin_id=cabin.id,
            cabin_price=compute_price(cabin, num_nights),
            num_nights=num_nights,
            start_date=shown.from_date.isoformat() if shown.from_date else None,
            end_date=shown.to_date.isoformat() if shown.to_date else None,
        )
