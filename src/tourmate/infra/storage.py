"""Storage gateway - filtered CRUD over the booking tables.

Every call runs in its own short transaction and returns a ``StorageResult``
instead of raising on database errors, so callers decide how a failure is
logged and what the client gets to see:

    result = storage.delete("bookings", {"id": booking_id, "guest_id": guest_id})
    if result.error:
        ...
    deleted_rows = result.data

Filters are equality conjunctions (``col1 = %s AND col2 = %s``). A filter
with several keys is evaluated by the database in one statement, which is
what makes ownership-scoped writes atomic.

Uses raw SQL with psycopg2 (no ORM). Table and column names are checked
against ``TABLE_COLUMNS`` before any SQL is built; values are always bound.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Sequence

import psycopg2
from psycopg2 import errors as pg_errors

from .db import txn

TABLE_COLUMNS: dict[str, frozenset[str]] = {
    "cabins": frozenset(
        {
            "id",
            "name",
            "max_capacity",
            "regular_price",
            "discount",
            "max_booking_length",
            "description",
            "image",
            "created_at",
        }
    ),
    "settings": frozenset(
        {
            "id",
            "min_booking_length",
            "max_booking_length",
            "max_guests_per_booking",
        }
    ),
    "guests": frozenset(
        {
            "id",
            "full_name",
            "email",
            "nationality",
            "country_flag",
            "national_id",
            "created_at",
        }
    ),
    "bookings": frozenset(
        {
            "id",
            "cabin_id",
            "guest_id",
            "start_date",
            "end_date",
            "num_nights",
            "cabin_price",
            "extras_price",
            "total_price",
            "num_guests",
            "observations",
            "has_breakfast",
            "is_paid",
            "status",
            "created_at",
        }
    ),
}

CONFLICT = "conflict"
MISSING_REFERENCE = "missing_reference"
DB_ERROR = "db_error"


@dataclass(frozen=True)
class StorageError:
    """A failed storage call. ``message`` is for server-side logs only."""

    code: str
    message: str


@dataclass(frozen=True)
class StorageResult:
    """Outcome of a storage call: exactly one of data/error is meaningful."""

    data: Any = None
    error: StorageError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _check_columns(table: str, columns: Sequence[str]) -> None:
    allowed = TABLE_COLUMNS.get(table)
    if allowed is None:
        raise ValueError(f"Unknown table: {table}")
    unknown = [c for c in columns if c not in allowed]
    if unknown:
        raise ValueError(f"Unknown column(s) for {table}: {', '.join(unknown)}")


def _where(filters: Mapping[str, Any]) -> tuple[str, list[Any]]:
    if not filters:
        return "", []
    clause = " AND ".join(f"{col} = %s" for col in filters)
    return f" WHERE {clause}", list(filters.values())


def _error_from(exc: psycopg2.Error) -> StorageError:
    if isinstance(exc, (pg_errors.ExclusionViolation, pg_errors.UniqueViolation)):
        return StorageError(code=CONFLICT, message=str(exc).strip())
    if isinstance(exc, pg_errors.ForeignKeyViolation):
        return StorageError(code=MISSING_REFERENCE, message=str(exc).strip())
    return StorageError(code=DB_ERROR, message=str(exc).strip())


class StorageGateway:
    """psycopg2-backed gateway for the ``cabins``/``settings``/``guests``/``bookings`` tables."""

    def select(
        self,
        table: str,
        filters: Mapping[str, Any] | None = None,
        *,
        columns: Sequence[str] | None = None,
        order_by: str | None = None,
        descending: bool = False,
    ) -> StorageResult:
        """Return matching rows as a list of dicts."""
        filters = dict(filters or {})
        selected = list(columns) if columns else sorted(TABLE_COLUMNS.get(table, ()))
        _check_columns(table, [*selected, *filters, *([order_by] if order_by else [])])

        where, params = _where(filters)
        order = f" ORDER BY {order_by} {'DESC' if descending else 'ASC'}" if order_by else ""
        query = f"SELECT {', '.join(selected)} FROM {table}{where}{order}"  # noqa: S608
        return self._run(query, params, many=True)

    def insert(self, table: str, row: Mapping[str, Any]) -> StorageResult:
        """Insert one row and return it as stored (defaults filled in)."""
        if not row:
            raise ValueError("Refusing to insert an empty row")
        _check_columns(table, list(row))

        cols = ", ".join(row)
        placeholders = ", ".join(["%s"] * len(row))
        query = f"INSERT INTO {table} ({cols}) VALUES ({placeholders}) RETURNING *"  # noqa: S608
        return self._run(query, list(row.values()), many=False)

    def update(
        self,
        table: str,
        filters: Mapping[str, Any],
        patch: Mapping[str, Any],
    ) -> StorageResult:
        """Apply ``patch`` to the rows matching ``filters``; return the updated rows."""
        if not filters:
            raise ValueError("Refusing to update without a filter")
        if not patch:
            raise ValueError("Refusing to apply an empty patch")
        _check_columns(table, [*patch, *filters])

        assignments = ", ".join(f"{col} = %s" for col in patch)
        where, where_params = _where(filters)
        query = f"UPDATE {table} SET {assignments}{where} RETURNING *"  # noqa: S608
        return self._run(query, [*patch.values(), *where_params], many=True)

    def delete(self, table: str, filters: Mapping[str, Any]) -> StorageResult:
        """Delete the rows matching ``filters``; return the deleted rows."""
        if not filters:
            raise ValueError("Refusing to delete without a filter")
        _check_columns(table, list(filters))

        where, params = _where(filters)
        query = f"DELETE FROM {table}{where} RETURNING *"  # noqa: S608
        return self._run(query, params, many=True)

    def _run(self, query: str, params: list[Any], *, many: bool) -> StorageResult:
        try:
            with txn(dict_rows=True) as cur:
                cur.execute(query, params)
                if many:
                    data: Any = [dict(r) for r in cur.fetchall()]
                else:
                    row = cur.fetchone()
                    data = dict(row) if row is not None else None
        except psycopg2.Error as exc:
            return StorageResult(error=_error_from(exc))
        return StorageResult(data=data)
