"""Database access layer (psycopg2, raw SQL, no ORM).

Provides:
- get_conn(): open a connection from DATABASE_URL
- txn(): short transaction scope yielding a cursor
- fetchone: small query helper
"""

import os
from contextlib import contextmanager
from typing import Any, Iterator, Sequence
from urllib.parse import urlparse

import psycopg2
from psycopg2.extensions import connection as PgConnection, cursor as PgCursor
from psycopg2.extras import RealDictCursor


def _dsn_has_password(dsn: str) -> bool:
    if "://" in dsn:
        return bool(urlparse(dsn).password)
    return any(part.startswith("password=") for part in dsn.split())


def get_conn() -> PgConnection:
    """Open a new connection using DATABASE_URL.

    Both URL (``postgres://...``) and libpq key=value DSNs are accepted. When
    the DSN carries no password, DB_PASSWORD is passed separately.

    Raises:
        RuntimeError: If DATABASE_URL is not set.
        psycopg2.Error: On connection failure.
    """
    dsn = os.environ.get("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL environment variable not set")

    db_password = os.environ.get("DB_PASSWORD")
    if db_password and not _dsn_has_password(dsn):
        return psycopg2.connect(dsn, password=db_password)
    return psycopg2.connect(dsn)


@contextmanager
def txn(conn: PgConnection | None = None, *, dict_rows: bool = False) -> Iterator[PgCursor]:
    """Run the body inside one transaction.

    Commits on normal exit, rolls back on any exception. A connection opened
    here is closed on exit; a caller-supplied one is left open.

    Args:
        conn: Existing connection to reuse, or None to open one.
        dict_rows: Yield a RealDictCursor so rows come back as dicts.

    Example:
        with txn(dict_rows=True) as cur:
            cur.execute("SELECT id, name FROM cabins WHERE id = %s", (cabin_id,))
            cabin = cur.fetchone()
    """
    owns_conn = conn is None
    if owns_conn:
        conn = get_conn()

    cursor_factory = RealDictCursor if dict_rows else None
    try:
        with conn.cursor(cursor_factory=cursor_factory) as cur:
            yield cur
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        if owns_conn:
            conn.close()


def fetchone(
    cur: PgCursor,
    query: str,
    params: Sequence[Any] | None = None,
) -> Any | None:
    """Execute ``query`` and return the first row, or None."""
    cur.execute(query, params)
    return cur.fetchone()
