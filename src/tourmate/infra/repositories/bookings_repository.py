"""Bookings repository - account views over a guest's own bookings.

Uses raw SQL with psycopg2 (no ORM). Every query is scoped by guest_id.
Cursors are expected to be dict cursors (``txn(dict_rows=True)``).
"""

from psycopg2.extensions import cursor as PgCursor

_BOOKING_COLUMNS = """
    b.id, b.cabin_id, b.guest_id, b.start_date, b.end_date, b.num_nights,
    b.cabin_price, b.extras_price, b.total_price, b.num_guests,
    b.observations, b.has_breakfast, b.is_paid, b.status, b.created_at,
    c.name AS cabin_name, c.image AS cabin_image, c.max_capacity AS cabin_max_capacity
"""


def list_guest_bookings(cur: PgCursor, guest_id: str) -> list[dict]:
    """All bookings of a guest with cabin name/image, latest stay first."""
    cur.execute(
        f"""
        SELECT {_BOOKING_COLUMNS}
        FROM bookings b
        JOIN cabins c ON c.id = b.cabin_id
        WHERE b.guest_id = %s
        ORDER BY b.start_date DESC
        """,  # noqa: S608
        (guest_id,),
    )
    return [dict(r) for r in cur.fetchall()]


def get_guest_booking(cur: PgCursor, guest_id: str, booking_id: str) -> dict | None:
    """One booking, only if it belongs to ``guest_id``."""
    cur.execute(
        f"""
        SELECT {_BOOKING_COLUMNS}
        FROM bookings b
        JOIN cabins c ON c.id = b.cabin_id
        WHERE b.guest_id = %s AND b.id = %s
        """,  # noqa: S608
        (guest_id, booking_id),
    )
    row = cur.fetchone()
    return dict(row) if row else None
