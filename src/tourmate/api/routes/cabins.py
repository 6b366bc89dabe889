"""Cabin endpoints backing the cabin list and the cabin detail/booking page.

GET /cabins                          → list
GET /cabins/{cabin_id}               → {cabin, bookedDates}
GET /cabins/{cabin_id}/quote?from&to → nights, price and overlap for a selection

Cabin detail is cached per path and revalidated when a booking is created.
"""

from __future__ import annotations

from datetime import date

import psycopg2
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from tourmate.api.deps import get_view_cache
from tourmate.api.wire import money, uuid_or_none
from tourmate.domain.availability import (
    Cabin,
    RangeSelection,
    is_overlapping,
    within_booking_length,
)
from tourmate.domain.bookings import cabin_path
from tourmate.domain.errors import NotFound
from tourmate.domain.reservation_context import ReservationContext
from tourmate.infra.booking_settings import get_booking_settings
from tourmate.infra.view_cache import ViewCache
from tourmate.observability.logging import get_logger

router = APIRouter(prefix="/cabins", tags=["cabins"])

logger = get_logger(__name__)

CABIN_NOT_FOUND = {"message": "Cabin not found"}


def _cabin_to_dict(row: dict) -> dict:
    return {
        "id": str(row["id"]),
        "name": row.get("name"),
        "maxCapacity": row.get("max_capacity"),
        "regularPrice": money(row.get("regular_price")),
        "discount": money(row.get("discount")),
        "maxBookingLength": row.get("max_booking_length"),
        "description": row.get("description"),
        "image": row.get("image"),
    }


def _load_cabin_detail(cabin_id: str) -> dict:
    """Cabin row plus its booked days. Raises NotFound for an unknown cabin."""
    from tourmate.infra.db import txn
    from tourmate.infra.repositories.cabins_repository import (
        get_booked_dates_by_cabin_id,
        get_cabin,
    )

    with txn(dict_rows=True) as cur:
        cabin = get_cabin(cur, cabin_id)
        if cabin is None:
            raise NotFound(f"Cabin {cabin_id} not found")
        booked_dates = get_booked_dates_by_cabin_id(cur, cabin_id)

    return {"cabin": cabin, "booked_dates": booked_dates}


def _list_cabins() -> list[dict]:
    from tourmate.infra.db import txn
    from tourmate.infra.repositories.cabins_repository import list_cabins

    with txn(dict_rows=True) as cur:
        return list_cabins(cur)


@router.get("")
def get_cabins(cache: ViewCache = Depends(get_view_cache)) -> list[dict]:
    """All cabins, ordered by name."""
    rows = cache.get_or_load("/cabins", _list_cabins)
    return [_cabin_to_dict(r) for r in rows]


@router.get("/{cabin_id}")
def get_cabin_detail(cabin_id: str, cache: ViewCache = Depends(get_view_cache)):
    """Cabin and its booked days.

    Failures never propagate: an unknown or malformed cabin id is a 404, a
    storage failure a 503, both with the same ``{"message": "Cabin not found"}`` body.
    """
    cabin_id = uuid_or_none(cabin_id)
    if cabin_id is None:
        return JSONResponse(status_code=404, content=CABIN_NOT_FOUND)
    try:
        detail = cache.get_or_load(cabin_path(cabin_id), lambda: _load_cabin_detail(cabin_id))
    except NotFound:
        return JSONResponse(status_code=404, content=CABIN_NOT_FOUND)
    except psycopg2.Error as exc:
        logger.error(
            "cabin lookup failed",
            extra={"extra_fields": {"cabin_id": cabin_id, "error": type(exc).__name__}},
        )
        return JSONResponse(status_code=503, content=CABIN_NOT_FOUND)

    return {
        "cabin": _cabin_to_dict(detail["cabin"]),
        "bookedDates": [d.isoformat() for d in detail["booked_dates"]],
    }


@router.get("/{cabin_id}/quote")
def quote_selection(
    cabin_id: str,
    from_date: date | None = Query(None, alias="from"),
    to_date: date | None = Query(None, alias="to"),
    cache: ViewCache = Depends(get_view_cache),
):
    """Price a candidate selection the way the booking calendar does.

    Advisory only: the booking is re-checked when it is submitted.
    """
    cabin_id = uuid_or_none(cabin_id)
    if cabin_id is None:
        return JSONResponse(status_code=404, content=CABIN_NOT_FOUND)
    try:
        detail = cache.get_or_load(cabin_path(cabin_id), lambda: _load_cabin_detail(cabin_id))
        settings = get_booking_settings()
    except NotFound:
        return JSONResponse(status_code=404, content=CABIN_NOT_FOUND)
    except psycopg2.Error as exc:
        logger.error(
            "quote lookup failed",
            extra={"extra_fields": {"cabin_id": cabin_id, "error": type(exc).__name__}},
        )
        return JSONResponse(status_code=503, content=CABIN_NOT_FOUND)

    cabin = Cabin.from_row(detail["cabin"])
    booked_dates = detail["booked_dates"]

    context = ReservationContext(cabin_id=cabin.id)
    context.set_range(RangeSelection(from_date, to_date))

    num_nights = context.num_nights(booked_dates)
    draft = context.to_draft(cabin, booked_dates)

    return {
        "range": context.range.to_dict(),
        "displayRange": context.display_range(booked_dates).to_dict(),
        "overlapping": is_overlapping(context.range, booked_dates),
        "numNights": num_nights,
        "cabinPrice": money(context.cabin_price(cabin, booked_dates)),
        "withinBookingLength": within_booking_length(
            num_nights,
            settings.min_booking_length,
            settings.max_length_for(cabin.max_booking_length),
        ),
        "maxGuests": min(
            settings.max_guests_per_booking,
            cabin.max_capacity or settings.max_guests_per_booking,
        ),
        "draft": {
            "cabinId": draft.cabin_id,
            "cabinPrice": money(draft.cabin_price),
            "numNights": draft.num_nights,
            "startDate": draft.start_date,
            "endDate": draft.end_date,
        },
    }
