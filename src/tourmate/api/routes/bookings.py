"""Booking endpoints for signed-in guests.

POST   /bookings                          → create (unconfirmed)
GET    /account/reservations              → the caller's bookings
GET    /account/reservations/{id}         → one booking for the edit view
PATCH  /account/reservations/{id}         → change guest count / observations
DELETE /account/reservations/{id}         → delete

Only the owning guest can see or touch a booking. Requests for someone
else's booking get the same 401 as requests for a booking that does not exist.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Path
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from tourmate.api.auth import CurrentGuestDep, get_session
from tourmate.api.deps import get_lifecycle_manager, get_view_cache, http_error
from tourmate.api.wire import iso, money, uuid_or_none
from tourmate.domain.authorizer import Identity
from tourmate.domain.bookings import (
    RESERVATIONS_PATH,
    BookingLifecycleManager,
    reservation_edit_path,
)
from tourmate.domain.errors import BookingError, NotFound, Unauthorized
from tourmate.domain.reservation_context import BookingDraft
from tourmate.infra.view_cache import ViewCache

router = APIRouter(tags=["bookings"])

FormNumber = str | int | float | None


def _booking_id_or_401(raw: str) -> str:
    """Malformed ids get the same 401 as unknown or foreign bookings."""
    booking_id = uuid_or_none(raw)
    if booking_id is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return booking_id


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class DraftPayload(_CamelModel):
    """Structured draft computed by the booking calendar."""

    cabin_id: str | int
    cabin_price: FormNumber = None
    num_nights: FormNumber = None
    start_date: str | None = None
    end_date: str | None = None


class CreateBookingRequest(_CamelModel):
    draft: DraftPayload
    num_guests: FormNumber = None
    observations: str | None = None
    has_breakfast: str | None = Field(default=None, description='"on" when checked')


class UpdateReservationRequest(_CamelModel):
    num_guests: FormNumber = None
    observations: str | None = None


def _booking_to_dict(row: dict) -> dict:
    data = {
        "id": str(row["id"]),
        "cabinId": str(row["cabin_id"]),
        "guestId": str(row["guest_id"]),
        "startDate": iso(row.get("start_date")),
        "endDate": iso(row.get("end_date")),
        "numNights": row.get("num_nights"),
        "cabinPrice": money(row.get("cabin_price")),
        "extrasPrice": money(row.get("extras_price")),
        "totalPrice": money(row.get("total_price")),
        "numGuests": row.get("num_guests"),
        "observations": row.get("observations"),
        "hasBreakfast": row.get("has_breakfast"),
        "isPaid": row.get("is_paid"),
        "status": row.get("status"),
        "createdAt": iso(row.get("created_at")),
    }
    if "cabin_name" in row:
        data["cabin"] = {
            "name": row.get("cabin_name"),
            "image": row.get("cabin_image"),
            "maxCapacity": row.get("cabin_max_capacity"),
        }
    return data


def _list_reservations(guest_id: str) -> list[dict]:
    from tourmate.infra.db import txn
    from tourmate.infra.repositories.bookings_repository import list_guest_bookings

    with txn(dict_rows=True) as cur:
        return list_guest_bookings(cur, guest_id)


def _get_reservation(guest_id: str, booking_id: str) -> dict | None:
    from tourmate.infra.db import txn
    from tourmate.infra.repositories.bookings_repository import get_guest_booking

    with txn(dict_rows=True) as cur:
        return get_guest_booking(cur, guest_id, booking_id)


@router.post("/bookings", status_code=201)
def create_booking(
    body: CreateBookingRequest,
    session: Identity | None = Depends(get_session),
    manager: BookingLifecycleManager = Depends(get_lifecycle_manager),
) -> dict:
    """Create an unconfirmed booking for the signed-in guest."""
    cabin_id = uuid_or_none(body.draft.cabin_id)
    if cabin_id is None:
        raise http_error(Unauthorized() if session is None else NotFound("Cabin not found"))
    draft = BookingDraft(
        cabin_id=cabin_id,
        cabin_price=body.draft.cabin_price,
        num_nights=body.draft.num_nights,
        start_date=body.draft.start_date,
        end_date=body.draft.end_date,
    )
    form = {
        "numGuests": body.num_guests,
        "observations": body.observations,
        "hasBreakfast": body.has_breakfast,
    }
    try:
        result = manager.create_booking(draft, form)
    except BookingError as exc:
        raise http_error(exc) from exc

    return {"booking": _booking_to_dict(result.data), "redirectTo": result.redirect_to}


@router.get("/account/reservations")
def list_reservations(
    guest: Identity = CurrentGuestDep,
    cache: ViewCache = Depends(get_view_cache),
) -> list[dict]:
    """The caller's bookings, latest stay first."""
    rows = cache.get_or_load(RESERVATIONS_PATH, lambda: _list_reservations(guest.id), scope=guest.id)
    return [_booking_to_dict(r) for r in rows]


@router.get("/account/reservations/{booking_id}")
def get_reservation(
    booking_id: str = Path(..., description="Booking id"),
    guest: Identity = CurrentGuestDep,
    cache: ViewCache = Depends(get_view_cache),
) -> dict:
    """One of the caller's bookings, for the edit form."""
    booking_id = _booking_id_or_401(booking_id)
    row = cache.get_or_load(
        reservation_edit_path(booking_id),
        lambda: _get_reservation(guest.id, booking_id),
        scope=guest.id,
    )
    if row is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return _booking_to_dict(row)


@router.patch("/account/reservations/{booking_id}")
def update_reservation(
    body: UpdateReservationRequest,
    booking_id: str = Path(..., description="Booking id"),
    manager: BookingLifecycleManager = Depends(get_lifecycle_manager),
) -> dict:
    """Change guest count and observations. Cabin, dates and price are fixed."""
    booking_id = _booking_id_or_401(booking_id)
    form = {"numGuests": body.num_guests, "observations": body.observations}
    try:
        result = manager.update_reservation(booking_id, form)
    except BookingError as exc:
        raise http_error(exc) from exc

    return {"booking": _booking_to_dict(result.data), "redirectTo": result.redirect_to}


@router.delete("/account/reservations/{booking_id}")
def delete_reservation(
    booking_id: str = Path(..., description="Booking id"),
    manager: BookingLifecycleManager = Depends(get_lifecycle_manager),
) -> dict:
    """Delete one of the caller's bookings."""
    booking_id = _booking_id_or_401(booking_id)
    try:
        result = manager.delete_booking(booking_id)
    except BookingError as exc:
        raise http_error(exc) from exc

    return {"deleted": True, "redirectTo": result.redirect_to}
