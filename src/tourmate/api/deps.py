"""Shared FastAPI dependencies for the booking routes."""

from __future__ import annotations

from fastapi import Depends, HTTPException

from tourmate.api.auth import get_session
from tourmate.domain.authorizer import BookingAuthorizer, Identity
from tourmate.domain.bookings import BookingLifecycleManager
from tourmate.domain.errors import (
    BookingConflict,
    BookingError,
    NotFound,
    PersistenceError,
    Unauthorized,
    ValidationError,
)
from tourmate.infra.storage import StorageGateway
from tourmate.infra.view_cache import ViewCache, view_cache

# Module-level gateway (stateless; each call opens its own transaction)
_storage = StorageGateway()


def get_storage() -> StorageGateway:
    """Storage gateway (overridable in tests)."""
    return _storage


def get_view_cache() -> ViewCache:
    """Shared view cache (overridable in tests)."""
    return view_cache


def get_lifecycle_manager(
    session: Identity | None = Depends(get_session),
    storage: StorageGateway = Depends(get_storage),
    cache: ViewCache = Depends(get_view_cache),
) -> BookingLifecycleManager:
    """Lifecycle manager bound to the current request's session."""
    authorizer = BookingAuthorizer(lambda: session, storage)
    return BookingLifecycleManager(storage, authorizer, revalidate=cache.revalidate)


def http_error(exc: BookingError) -> HTTPException:
    """Translate a booking engine error into the HTTP response the guest sees."""
    if isinstance(exc, Unauthorized):
        return HTTPException(status_code=401, detail="Unauthorized")
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, BookingConflict):
        return HTTPException(status_code=409, detail=str(exc))
    if isinstance(exc, NotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, PersistenceError):
        return HTTPException(status_code=500, detail=str(exc))
    return HTTPException(status_code=500, detail="Something went wrong")
