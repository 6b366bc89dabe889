"""Session and ownership checks for booking mutations.

Ownership is never cached: who owns which booking can change between two
requests, so every check goes back to storage.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from tourmate.domain.errors import PersistenceError, Unauthorized
from tourmate.infra.storage import StorageGateway
from tourmate.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class Identity:
    """The signed-in guest. ``id`` is the guests.id ownership key."""

    id: str
    email: str | None = None
    name: str | None = None


SessionProvider = Callable[[], "Identity | None"]


class BookingAuthorizer:
    def __init__(self, session_provider: SessionProvider, storage: StorageGateway) -> None:
        self._session_provider = session_provider
        self._storage = storage

    def require_session(self) -> Identity:
        """Return the caller's identity or raise Unauthorized."""
        identity = self._session_provider()
        if identity is None:
            raise Unauthorized()
        return identity

    def require_ownership(self, booking_id: str, identity: Identity) -> None:
        """Raise Unauthorized unless ``booking_id`` belongs to ``identity``.

        A single select filtered on both id and guest_id; a missing booking
        and someone else's booking are indistinguishable to the caller.
        """
        result = self._storage.select(
            "bookings",
            {"id": booking_id, "guest_id": identity.id},
            columns=["id"],
        )
        if result.error:
            logger.error(
                "ownership lookup failed",
                extra={"extra_fields": {"booking_id": booking_id, "error_code": result.error.code}},
            )
            raise PersistenceError("Reservation could not be loaded")
        if not result.data:
            raise Unauthorized()
