"""Guest profile endpoints.

GET   /account/profile → the caller's profile
PATCH /account/profile → nationality / country flag / national ID
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from tourmate.api.auth import CurrentGuestDep
from tourmate.api.deps import get_lifecycle_manager, get_view_cache, http_error
from tourmate.domain.authorizer import Identity
from tourmate.domain.bookings import PROFILE_PATH, BookingLifecycleManager
from tourmate.domain.errors import BookingError
from tourmate.infra.view_cache import ViewCache

router = APIRouter(prefix="/account/profile", tags=["profile"])


class UpdateProfileRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    national_id: str | None = Field(default=None, alias="nationalID")
    nationality: str | None = Field(default=None, description='"<nationality>%<flag url>"')


def _guest_to_dict(row: dict) -> dict:
    return {
        "id": str(row["id"]),
        "fullName": row.get("full_name"),
        "email": row.get("email"),
        "nationality": row.get("nationality"),
        "countryFlag": row.get("country_flag"),
        "nationalID": row.get("national_id"),
    }


def _get_profile(guest_id: str) -> dict | None:
    from tourmate.infra.db import txn
    from tourmate.infra.repositories.guests_repository import get_guest

    with txn(dict_rows=True) as cur:
        return get_guest(cur, guest_id)


@router.get("")
def get_profile(
    guest: Identity = CurrentGuestDep,
    cache: ViewCache = Depends(get_view_cache),
) -> dict:
    row = cache.get_or_load(PROFILE_PATH, lambda: _get_profile(guest.id), scope=guest.id)
    if row is None:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return _guest_to_dict(row)


@router.patch("")
def update_profile(
    body: UpdateProfileRequest,
    manager: BookingLifecycleManager = Depends(get_lifecycle_manager),
) -> dict:
    """Update the caller's nationality and national ID."""
    form = {"nationalID": body.national_id, "nationality": body.nationality}
    try:
        result = manager.update_profile(form)
    except BookingError as exc:
        raise http_error(exc) from exc

    return {"profile": _guest_to_dict(result.data), "redirectTo": result.redirect_to}
