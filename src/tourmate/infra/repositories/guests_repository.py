"""Guests repository - identity resolution for signed-in callers.

Uses raw SQL with psycopg2 (no ORM).

A guest is keyed by e-mail. The first authenticated request of a new e-mail
creates the row; ``INSERT ... ON CONFLICT`` keeps two concurrent first
requests from creating duplicates. The caller runs this inside
``txn(dict_rows=True)``.
"""

from psycopg2.extensions import cursor as PgCursor

_GUEST_COLUMNS = "id, full_name, email, nationality, country_flag, national_id"


def get_or_create_guest(cur: PgCursor, *, email: str, full_name: str | None = None) -> tuple[str, bool]:
    """Resolve the guest id for ``email``, creating the guest if needed.

    Args:
        cur:       Database cursor (inside a transaction).
        email:     Normalised (lower-case) e-mail from the identity token.
        full_name: Display name from the token. Only used on insert.

    Returns:
        Tuple of (guest_id, created).
    """
    cur.execute(
        """
        INSERT INTO guests (email, full_name)
        VALUES (%s, %s)
        ON CONFLICT (email) DO NOTHING
        RETURNING id
        """,
        (email, full_name),
    )
    row = cur.fetchone()
    if row is not None:
        return (str(row["id"]), True)

    cur.execute("SELECT id FROM guests WHERE email = %s", (email,))
    row = cur.fetchone()
    return (str(row["id"]), False)


def get_guest(cur: PgCursor, guest_id: str) -> dict | None:
    """Fetch a guest profile by id, or None."""
    cur.execute(
        f"SELECT {_GUEST_COLUMNS} FROM guests WHERE id = %s",  # noqa: S608
        (guest_id,),
    )
    row = cur.fetchone()
    return dict(row) if row else None
