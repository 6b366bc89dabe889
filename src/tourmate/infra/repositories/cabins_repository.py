"""Cabins repository - read side of the cabin detail page.

Uses raw SQL with psycopg2 (no ORM). Cursors are expected to be dict cursors
(``txn(dict_rows=True)``).
"""

from datetime import date

from psycopg2.extensions import cursor as PgCursor

from tourmate.domain.availability import booked_days
from tourmate.infra.time import utc_today


def get_cabin(cur: PgCursor, cabin_id: str) -> dict | None:
    """Fetch one cabin by id, or None."""
    cur.execute(
        """
        SELECT id, name, max_capacity, regular_price, discount,
               max_booking_length, description, image
        FROM cabins
        WHERE id = %s
        """,
        (cabin_id,),
    )
    row = cur.fetchone()
    return dict(row) if row else None


def list_cabins(cur: PgCursor) -> list[dict]:
    """All cabins ordered by name, without the long description."""
    cur.execute(
        """
        SELECT id, name, max_capacity, regular_price, discount, image
        FROM cabins
        ORDER BY name
        """
    )
    return [dict(r) for r in cur.fetchall()]


def get_booked_dates_by_cabin_id(cur: PgCursor, cabin_id: str, today: date | None = None) -> list[date]:
    """Every calendar day currently taken for the cabin.

    Upcoming bookings plus stays that are checked in right now; each is
    expanded to the days from start to end inclusive.
    """
    today = today or utc_today()
    cur.execute(
        """
        SELECT start_date, end_date, status
        FROM bookings
        WHERE cabin_id = %s
          AND (start_date >= %s OR status = 'checked-in')
        ORDER BY start_date
        """,
        (cabin_id, today),
    )
    return booked_days((dict(r) for r in cur.fetchall()), since=today)
