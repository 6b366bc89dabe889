"""Booking lifecycle - create, update and delete bookings, update guest profiles.

Every operation follows the same order:
session → input validation → authorization → one storage write →
revalidation of the affected views → navigation target.

Input is re-validated here even though the booking form already checked it;
the form and calendar are convenience only. Night count and price are
recomputed from the dates and the stored cabin rate and must match the draft.
Storage failures are logged with context and re-raised as PersistenceError
carrying a generic message; the underlying database text never leaves this
module.

Only creation into ``unconfirmed`` is implemented. Later states
(confirmed, checked-in, checked-out) are driven by staff tooling.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Mapping

from tourmate.domain.authorizer import BookingAuthorizer
from tourmate.domain.availability import (
    Cabin,
    RangeSelection,
    booked_days,
    compute_nights,
    compute_price,
    is_overlapping,
)
from tourmate.domain.errors import (
    BookingConflict,
    NotFound,
    PersistenceError,
    Unauthorized,
    ValidationError,
)
from tourmate.domain.reservation_context import BookingDraft
from tourmate.infra.storage import CONFLICT, MISSING_REFERENCE, StorageGateway, StorageResult
from tourmate.observability.logging import get_logger
from tourmate.observability.redaction import redact_string, safe_log_context

logger = get_logger(__name__)

MAX_OBSERVATIONS_LENGTH = 500
NATIONAL_ID_PATTERN = re.compile(r"^[A-Za-z0-9]{6,12}$")

STATUS_UNCONFIRMED = "unconfirmed"

THANK_YOU_PATH = "/cabins/thankyou"
RESERVATIONS_PATH = "/account/reservations"
PROFILE_PATH = "/account/profile"


def cabin_path(cabin_id: str) -> str:
    return f"/cabins/{cabin_id}"


def reservation_edit_path(booking_id: str) -> str:
    return f"{RESERVATIONS_PATH}/edit/{booking_id}"


@dataclass(frozen=True)
class LifecycleResult:
    """Successful outcome: where the guest goes next, plus any stored record."""

    redirect_to: str
    data: Any = None


# ── Input parsing ─────────────────────────────────────────────────────────────


def parse_number(value: Any) -> Decimal | None:
    """Read a form value as a number; None if it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        number = Decimal(str(value).strip())
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def parse_timestamp(value: Any) -> datetime | None:
    """Read a draft date as a UTC timestamp; None if unparsable.

    Plain dates and naive timestamps are taken as UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def truncate_observations(value: Any) -> str:
    if value is None:
        return ""
    return str(value)[:MAX_OBSERVATIONS_LENGTH]


def _num_guests(form: Mapping[str, Any]) -> int:
    number = parse_number(form.get("numGuests"))
    if number is None or number <= 0:
        raise ValidationError("Number of guests must be a positive number")
    if number != number.to_integral_value():
        raise ValidationError("Number of guests must be a whole number")
    return int(number)


# ── Lifecycle manager ─────────────────────────────────────────────────────────


class BookingLifecycleManager:
    """Applies validation and ownership rules before delegating to storage.

    Args:
        storage:    Storage gateway for the bookings/guests tables.
        authorizer: Session and ownership checks for the current caller.
        revalidate: Called with each view path to drop after a confirmed write.
    """

    def __init__(
        self,
        storage: StorageGateway,
        authorizer: BookingAuthorizer,
        revalidate: Callable[[str], None] | None = None,
    ) -> None:
        self._storage = storage
        self._authorizer = authorizer
        self._revalidate = revalidate or (lambda path: None)

    def create_booking(self, draft: BookingDraft, form: Mapping[str, Any]) -> LifecycleResult:
        """Create an unconfirmed booking for the signed-in guest.

        Raises:
            Unauthorized: No session.
            ValidationError: Bad guest count or dates, or a price or night count
                that does not match the dates and the cabin's rate.
            NotFound: The cabin does not exist.
            BookingConflict: The dates overlap an existing booking of the cabin.
            PersistenceError: Storage failed.
        """
        identity = self._authorizer.require_session()

        num_guests = _num_guests(form)

        start_date = parse_timestamp(draft.start_date)
        end_date = parse_timestamp(draft.end_date)
        if start_date is None or end_date is None:
            raise ValidationError("Please select valid booking dates")
        if start_date >= end_date:
            raise ValidationError("Check-out must be after check-in")

        cabin_price = parse_number(draft.cabin_price)
        if cabin_price is None or cabin_price < 0:
            raise ValidationError("Invalid cabin price")

        num_nights = parse_number(draft.num_nights)
        if num_nights is None or num_nights <= 0:
            raise ValidationError("Please select at least one night")
        stay_nights = compute_nights(RangeSelection(start_date.date(), end_date.date()))
        if num_nights != stay_nights:
            raise ValidationError("Number of nights does not match the selected dates")

        cabin = self._load_cabin(draft.cabin_id)
        if cabin_price != Decimal(str(compute_price(cabin, stay_nights))):
            raise ValidationError("Cabin price does not match the selected dates")

        booking = {
            "cabin_id": draft.cabin_id,
            "guest_id": identity.id,
            "start_date": start_date,
            "end_date": end_date,
            "num_nights": stay_nights,
            "cabin_price": cabin_price,
            "extras_price": Decimal("0"),
            "total_price": cabin_price,
            "num_guests": num_guests,
            "observations": truncate_observations(form.get("observations")),
            "has_breakfast": form.get("hasBreakfast") == "on",
            "is_paid": False,
            "status": STATUS_UNCONFIRMED,
        }

        self._assert_available(draft.cabin_id, start_date.date(), end_date.date())

        result = self._storage.insert("bookings", booking)
        if result.error and result.error.code == CONFLICT:
            logger.warning(
                "booking rejected by overlap constraint",
                extra={"extra_fields": {"cabin_id": draft.cabin_id, "guest_id": identity.id}},
            )
            raise BookingConflict(draft.cabin_id)
        if result.error and result.error.code == MISSING_REFERENCE:
            raise NotFound("Cabin not found")
        self._raise_on_error(result, "Booking could not be created", op="create_booking", cabin_id=draft.cabin_id)

        created = result.data
        logger.info(
            "booking created",
            extra={
                "extra_fields": {
                    "booking_id": str(created["id"]) if created else None,
                    "cabin_id": draft.cabin_id,
                    "num_nights": stay_nights,
                }
            },
        )

        self._revalidate(cabin_path(draft.cabin_id))
        self._revalidate(RESERVATIONS_PATH)
        return LifecycleResult(redirect_to=THANK_YOU_PATH, data=created)

    def update_reservation(self, booking_id: str, form: Mapping[str, Any]) -> LifecycleResult:
        """Change guest count and observations of one of the caller's bookings.

        Nothing else about the booking (cabin, dates, price) can be changed.
        """
        identity = self._authorizer.require_session()

        num_guests = _num_guests(form)
        observations = truncate_observations(form.get("observations"))

        self._authorizer.require_ownership(booking_id, identity)

        result = self._storage.update(
            "bookings",
            {"id": booking_id, "guest_id": identity.id},
            {"num_guests": num_guests, "observations": observations},
        )
        self._raise_on_error(result, "Reservation could not be updated", op="update_reservation", booking_id=booking_id)
        if not result.data:
            # Ownership changed or the booking disappeared since the check
            raise Unauthorized()

        self._revalidate(RESERVATIONS_PATH)
        self._revalidate(reservation_edit_path(booking_id))
        return LifecycleResult(redirect_to=RESERVATIONS_PATH, data=result.data[0])

    def delete_booking(self, booking_id: str) -> LifecycleResult:
        """Delete one of the caller's bookings.

        One delete filtered by id and guest_id. No affected row means
        Unauthorized, whether the booking is missing or belongs to someone else.
        """
        identity = self._authorizer.require_session()

        result = self._storage.delete("bookings", {"id": booking_id, "guest_id": identity.id})
        self._raise_on_error(result, "Booking could not be deleted", op="delete_booking", booking_id=booking_id)
        if not result.data:
            raise Unauthorized()

        logger.info("booking deleted", extra={"extra_fields": {"booking_id": booking_id}})

        self._revalidate(RESERVATIONS_PATH)
        for row in result.data:
            self._revalidate(cabin_path(str(row["cabin_id"])))
        return LifecycleResult(redirect_to=RESERVATIONS_PATH)

    def update_profile(self, form: Mapping[str, Any]) -> LifecycleResult:
        """Update nationality, country flag and national ID of the caller.

        ``nationality`` arrives as one ``"<nationality>%<flag url>"`` token.
        """
        identity = self._authorizer.require_session()

        national_id = form.get("nationalID")
        if not isinstance(national_id, str) or not NATIONAL_ID_PATTERN.fullmatch(national_id):
            raise ValidationError("Please provide a valid national ID")

        token = form.get("nationality")
        if not isinstance(token, str) or not token:
            raise ValidationError("Please select a country")
        nationality, _, country_flag = token.partition("%")

        patch = {
            "nationality": nationality,
            "country_flag": country_flag or None,
            "national_id": national_id,
        }
        result = self._storage.update("guests", {"id": identity.id}, patch)
        self._raise_on_error(result, "Guest could not be updated", op="update_profile", guest_id=identity.id)
        if not result.data:
            raise Unauthorized()

        self._revalidate(PROFILE_PATH)
        return LifecycleResult(redirect_to=PROFILE_PATH, data=result.data[0])

    # ── helpers ───────────────────────────────────────────────────────────────

    def _load_cabin(self, cabin_id: str) -> Cabin:
        result = self._storage.select(
            "cabins",
            {"id": cabin_id},
            columns=["id", "regular_price", "discount", "max_booking_length"],
        )
        self._raise_on_error(result, "Booking could not be created", op="cabin_lookup", cabin_id=cabin_id)
        if not result.data:
            raise NotFound("Cabin not found")
        return Cabin.from_row(result.data[0])

    def _assert_available(self, cabin_id: str, start: date, end: date) -> None:
        """Re-check the range against the cabin's stored bookings.

        The calendar only hides booked days; two guests can still submit the
        same range. The bookings table carries an exclusion constraint as the
        final guard.
        """
        result = self._storage.select(
            "bookings",
            {"cabin_id": cabin_id},
            columns=["start_date", "end_date", "status"],
        )
        self._raise_on_error(result, "Booking could not be created", op="availability_check", cabin_id=cabin_id)

        taken = booked_days(result.data)
        if is_overlapping(RangeSelection(start, end), taken):
            logger.warning(
                "booking rejected, dates already taken",
                extra={
                    "extra_fields": {
                        "cabin_id": cabin_id,
                        "requested_start": start.isoformat(),
                        "requested_end": end.isoformat(),
                    }
                },
            )
            raise BookingConflict(cabin_id)

    def _raise_on_error(self, result: StorageResult, message: str, **context: Any) -> None:
        if result.error is None:
            return
        logger.error(
            message,
            extra={
                "extra_fields": {
                    **safe_log_context(**context),
                    "error_code": result.error.code,
                    "error": redact_string(result.error.message),
                }
            },
        )
        raise PersistenceError(message)
