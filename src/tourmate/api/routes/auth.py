"""Auth routes - session identity and sign-in/sign-out redirects."""

from fastapi import APIRouter, Query
from fastapi.responses import RedirectResponse

from tourmate.api.auth import CurrentGuestDep, sign_in_url, sign_out_url
from tourmate.domain.authorizer import Identity

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/whoami")
def whoami(guest: Identity = CurrentGuestDep) -> dict:
    """Return the signed-in guest: id, email, name."""
    return {"id": guest.id, "email": guest.email, "name": guest.name}


@router.get("/signin")
def sign_in(
    provider: str = Query("google"),
    redirect_to: str = Query("/account", alias="redirectTo"),
) -> RedirectResponse:
    return RedirectResponse(sign_in_url(provider, redirect_to), status_code=303)


@router.get("/signout")
def sign_out(redirect_to: str = Query("/", alias="redirectTo")) -> RedirectResponse:
    return RedirectResponse(sign_out_url(redirect_to), status_code=303)
